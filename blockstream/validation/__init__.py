"""Wire models exchanged with the content producer."""

from blockstream.validation.events import (
    GENERATE_EVENT,
    AnnounceEvent,
    CompleteEvent,
    ErrorEvent,
    EventName,
    FinalizeEvent,
    GenerationRequest,
    StreamEvent,
    parse_event,
)

__all__ = [
    "GENERATE_EVENT",
    "AnnounceEvent",
    "CompleteEvent",
    "ErrorEvent",
    "EventName",
    "FinalizeEvent",
    "GenerationRequest",
    "StreamEvent",
    "parse_event",
]
