"""Base exception classes for blockstream.

Every exception carries a machine readable ``code``, a human readable
``message`` and an optional ``details`` mapping, so the hosting UI can decide
what to show without parsing text.
"""

from typing import Any, Dict, Optional


class BlockstreamError(Exception):
    """Root of the blockstream exception hierarchy."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(BlockstreamError):
    """Raised when caller supplied input is invalid."""


class ResourceNotFoundError(BlockstreamError):
    """Raised when a referenced resource does not exist."""


class ConfigurationError(BlockstreamError):
    """Raised when configuration values are invalid."""


__all__ = [
    "BlockstreamError",
    "ValidationError",
    "ResourceNotFoundError",
    "ConfigurationError",
]
