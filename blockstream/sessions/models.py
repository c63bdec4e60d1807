"""Session models for generation streams."""

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    IDLE = "idle"
    AWAITING_CHANNEL = "awaiting-channel"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({SessionStatus.AWAITING_CHANNEL, SessionStatus.STREAMING})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GenerationSession(BaseModel):
    """One generation attempt against a subject document."""

    model_config = ConfigDict(extra="ignore")

    correlation_id: str
    subject_id: str
    anchor_handle: str  # Request node; units are inserted right after it
    prompt: str
    auxiliary_references: List[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.IDLE
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def set_status(self, status: SessionStatus) -> None:
        self.status = status
        self.updated_at = _now()
