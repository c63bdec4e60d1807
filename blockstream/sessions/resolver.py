"""Position resolver: where the next unit goes in the live document."""

from typing import Optional

from blockstream.document.model import Document
from blockstream.document.schema import SCAFFOLD_NODE_SIZE
from blockstream.logger import Logger, session_logger
from blockstream.sessions.ledger import BlockLedger, Unit, UnitState
from blockstream.sessions.models import GenerationSession


class PositionResolver:
    """Computes insert offsets from the current document state.

    Nothing is cached between calls: the anchor is looked up by handle and
    every admitted unit is re-measured each time, so user edits and earlier
    finalizations are always reflected.
    """

    def __init__(self, document: Document, logger: Optional[Logger] = None) -> None:
        self.document = document
        self.logger = logger or session_logger

    def resolve_anchor(self, session: GenerationSession) -> Optional[int]:
        """Position immediately after the session's request node, or None if it is gone."""
        located = self.document.find(session.anchor_handle)
        if located is None:
            self.logger.warning(
                "Anchor node not found",
                correlation_id=session.correlation_id,
                handle=session.anchor_handle,
            )
            return None
        pos, node = located
        return pos + node.size

    def footprint(self, unit: Unit) -> int:
        if unit.state is UnitState.FINALIZED:
            # Rendered size; zero if the user has since removed the block
            size = self.document.measure(unit.handle) if unit.handle else None
            return size or 0
        if unit.state is UnitState.PLACEHOLDER_INSERTED:
            if unit.handle and self.document.contains(unit.handle):
                return SCAFFOLD_NODE_SIZE
            return 0
        return 0

    def resolve_insert_position(
        self, session: GenerationSession, ledger: BlockLedger
    ) -> Optional[int]:
        """
        Offset at which the next admitted unit must be inserted.

        Returns:
            The offset, or None when the anchor no longer exists
        """
        offset = self.resolve_anchor(session)
        if offset is None:
            return None
        for unit in ledger.all_units():
            if unit.index >= ledger.next_expected_index:
                break
            offset += self.footprint(unit)
        return offset
