"""Terminal outcome of a generation session, reported to the host UI."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    SOFT_COMPLETED = "soft-completed"  # error after usable output; kept silently
    FAILED = "failed"
    CANCELLED = "cancelled"


class StreamOutcome(BaseModel):
    """How a session ended.

    Args:
        correlation_id: Session token
        subject_id: Subject the session targeted
        status: Terminal status
        message: Error or cancellation message, if any
        code: Machine readable error code, if any
        finalized_count: Units whose content made it into the document
        scaffolds_removed: Scaffolds deleted by the terminal cleanup
    """

    model_config = ConfigDict(extra="ignore")

    correlation_id: str
    subject_id: str
    status: OutcomeStatus
    message: Optional[str] = None
    code: Optional[str] = None
    finalized_count: int = 0
    scaffolds_removed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status in (OutcomeStatus.COMPLETED, OutcomeStatus.SOFT_COMPLETED)

    @property
    def is_user_visible_error(self) -> bool:
        return not self.succeeded
