"""Session bookkeeping for generation streams."""
from blockstream.sessions.ledger import Admission, BlockLedger, Unit, UnitState
from blockstream.sessions.models import GenerationSession, SessionStatus
from blockstream.sessions.registry import CorrelationRegistry
from blockstream.sessions.resolver import PositionResolver

__all__ = [
    "Admission",
    "BlockLedger",
    "CorrelationRegistry",
    "GenerationSession",
    "PositionResolver",
    "SessionStatus",
    "Unit",
    "UnitState",
]
