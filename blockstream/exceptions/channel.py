"""Channel exceptions."""

from typing import Any, Dict, Optional

from blockstream.exceptions.base import BlockstreamError


class ChannelError(BlockstreamError):
    """Raised when the duplex channel cannot connect or send."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="CHANNEL_ERROR", message=message, details=details or {})
