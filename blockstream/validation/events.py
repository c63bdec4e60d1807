"""Wire models for the generation channel using Pydantic v2.

Python attributes use snake_case; the JSON exchanged with the producer keeps
its camelCase names (``requestId``, ``assignmentId``, ``blockIndex`` ...).
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from blockstream.document.schema import NodeSpec

GENERATE_EVENT = "generate"


class EventName(str, Enum):
    ANNOUNCE = "block-start"
    FINALIZE = "block-complete"
    COMPLETE = "generation-complete"
    ERROR = "stream-error"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GenerationRequest(_WireModel):
    """Request sent to the producer when a session starts.

    Args:
        subject_id: Document/entity being authored
        correlation_id: Fresh token of the new session
        prompt: User prompt
        auxiliary_references: Ids of other subjects to use as context
    """

    subject_id: str = Field(alias="assignmentId", min_length=1)
    correlation_id: str = Field(alias="requestId", min_length=1)
    prompt: str = Field(min_length=1)
    auxiliary_references: List[str] = Field(default_factory=list, alias="taggedAssignmentIds")


class StreamEvent(_WireModel):
    """Fields common to every producer event."""

    correlation_id: str = Field(alias="requestId")
    subject_id: str = Field(alias="assignmentId")

    name: EventName  # set by subclasses


class AnnounceEvent(StreamEvent):
    name: EventName = EventName.ANNOUNCE
    index: int = Field(alias="blockIndex", ge=0)
    kind: str = Field(alias="blockType", min_length=1)


class FinalizeEvent(StreamEvent):
    name: EventName = EventName.FINALIZE
    index: int = Field(alias="blockIndex", ge=0)
    payload: NodeSpec = Field(alias="block")


class CompleteEvent(StreamEvent):
    name: EventName = EventName.COMPLETE
    success: bool = True


class ErrorEvent(StreamEvent):
    """Producer-side failure.

    ``recoverable`` may be omitted by the producer; the controller then
    decides from ``code``.
    """

    name: EventName = EventName.ERROR
    message: str = "Generation failed"
    code: Optional[str] = None
    recoverable: Optional[bool] = None


EVENT_MODELS: Dict[EventName, Type[StreamEvent]] = {
    EventName.ANNOUNCE: AnnounceEvent,
    EventName.FINALIZE: FinalizeEvent,
    EventName.COMPLETE: CompleteEvent,
    EventName.ERROR: ErrorEvent,
}


def parse_event(name: str, data: Mapping[str, Any]) -> StreamEvent:
    """
    Validate a raw channel message.

    Args:
        name: Channel event name (``block-start`` ...)
        data: Raw JSON payload

    Returns:
        The typed event

    Raises:
        ValueError: If ``name`` is not a known event
        pydantic.ValidationError: If ``data`` does not match the event schema
    """
    event_name = EventName(name)
    payload = {key: value for key, value in data.items() if key != "name"}
    return EVENT_MODELS[event_name].model_validate(payload)
