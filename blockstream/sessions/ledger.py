"""Block ledger: ordered per-session record of unit state."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from blockstream.document.schema import NodeSpec
from blockstream.logger import Logger, session_logger


class UnitState(str, Enum):
    PENDING = "pending"
    PLACEHOLDER_INSERTED = "placeholder-inserted"
    FINALIZED = "finalized"
    DROPPED = "dropped"  # scaffold removed by the user before finalize


class Admission(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class Unit:
    """One generated block."""

    index: int
    kind: str
    state: UnitState = UnitState.PENDING
    handle: Optional[str] = None
    payload: Optional[NodeSpec] = None


class BlockLedger:
    """Append-only record of the units of one session.

    Announces are admitted strictly in index order: an announce whose index is
    not ``next_expected_index`` is rejected and dropped, never buffered.
    Rejections are logged, not raised.
    """

    def __init__(self, correlation_id: str = "", logger: Optional[Logger] = None) -> None:
        self.correlation_id = correlation_id
        self.logger = logger or session_logger
        self._units: Dict[int, Unit] = {}
        self._next_expected_index = 0

    @property
    def next_expected_index(self) -> int:
        return self._next_expected_index

    def admit_announce(self, index: int, kind: str) -> Admission:
        """Admit the announce of unit ``index`` if it is the next expected one."""
        if index != self._next_expected_index:
            reason = "duplicate" if index in self._units else "out_of_order"
            self.logger.warning(
                "Announce rejected",
                correlation_id=self.correlation_id,
                index=index,
                expected=self._next_expected_index,
                reason=reason,
            )
            return Admission.REJECTED

        self._units[index] = Unit(index=index, kind=kind)
        self._next_expected_index += 1
        return Admission.ACCEPTED

    def mark_inserted(self, index: int, handle: str) -> None:
        """Record that the scaffold of a pending unit is in the document.

        Raises:
            KeyError: If the unit was never admitted
            ValueError: If the unit is not pending
        """
        unit = self._units[index]
        if unit.state is not UnitState.PENDING:
            raise ValueError(f"Unit {index} is {unit.state.value}, expected pending")
        unit.state = UnitState.PLACEHOLDER_INSERTED
        unit.handle = handle

    def admit_finalize(self, index: int, payload: NodeSpec) -> Admission:
        """Admit the finalized content of unit ``index``.

        Only a unit whose scaffold is in place can finalize; a finalize for an
        unknown, still pending or already finalized unit is rejected.
        """
        unit = self._units.get(index)
        if unit is None or unit.state is not UnitState.PLACEHOLDER_INSERTED:
            self.logger.warning(
                "Finalize rejected",
                correlation_id=self.correlation_id,
                index=index,
                state=unit.state.value if unit else "missing",
            )
            return Admission.REJECTED

        unit.state = UnitState.FINALIZED
        unit.payload = payload
        return Admission.ACCEPTED

    def mark_dropped(self, index: int) -> None:
        """Record that a unit's scaffold left the document before its content arrived.

        A dropped unit never finalizes and contributes no output.

        Raises:
            KeyError: If the unit was never admitted
            ValueError: If the unit is not placeholder-inserted
        """
        unit = self._units[index]
        if unit.state is not UnitState.PLACEHOLDER_INSERTED:
            raise ValueError(f"Unit {index} is {unit.state.value}, expected placeholder-inserted")
        unit.state = UnitState.DROPPED
        self.logger.info(
            "Unit dropped", correlation_id=self.correlation_id, index=index, handle=unit.handle
        )

    def get(self, index: int) -> Optional[Unit]:
        return self._units.get(index)

    def all_units(self) -> List[Unit]:
        return [self._units[index] for index in sorted(self._units)]

    def has_finalized_any(self) -> bool:
        return any(unit.state is UnitState.FINALIZED for unit in self._units.values())

    @property
    def finalized_count(self) -> int:
        return sum(1 for unit in self._units.values() if unit.state is UnitState.FINALIZED)

    def __len__(self) -> int:
        return len(self._units)
