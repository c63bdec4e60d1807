"""Custom exceptions for the streaming materialization protocol.

Stale events and out-of-order announces are not errors and never raise;
these exceptions cover caller mistakes, document conflicts and transport
failures.
"""

from blockstream.exceptions.base import (
    BlockstreamError,
    ConfigurationError,
    ResourceNotFoundError,
    ValidationError,
)
from blockstream.exceptions.channel import ChannelError
from blockstream.exceptions.document import (
    AnchorLostError,
    MutationError,
    ScaffoldNotFoundError,
)
from blockstream.exceptions.session import (
    InvalidSessionStateError,
    SessionError,
    SessionValidationError,
)

__all__ = [
    # Base exceptions
    "BlockstreamError",
    "ValidationError",
    "ResourceNotFoundError",
    "ConfigurationError",
    # Specific exceptions
    "SessionError",
    "SessionValidationError",
    "InvalidSessionStateError",
    "MutationError",
    "ScaffoldNotFoundError",
    "AnchorLostError",
    "ChannelError",
]
