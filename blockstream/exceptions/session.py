"""Session-related exceptions."""

from typing import Any, Dict, Optional

from blockstream.exceptions.base import ValidationError


class SessionError(ValidationError):
    """Base exception for session-related errors."""

    pass


class SessionValidationError(SessionError):
    """Raised when a generation request fails validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="INVALID_REQUEST", message=message, details=details or {})


class InvalidSessionStateError(SessionError):
    """Raised when the controller is in an invalid state for the requested operation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="INVALID_SESSION_STATE", message=message, details=details or {})
