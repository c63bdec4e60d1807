"""Document mutations performed on behalf of a generation stream."""

from typing import List, Optional

from blockstream.document.model import Document, Node
from blockstream.document.schema import SCAFFOLD_TYPE, NodeSpec, scaffold_label
from blockstream.exceptions import MutationError, ScaffoldNotFoundError
from blockstream.logger import Logger, session_logger


class DocumentMutator:
    """The only writer to the document on the protocol's behalf.

    Each public method runs exactly one document transaction.
    """

    def __init__(self, document: Document, logger: Optional[Logger] = None) -> None:
        """
        Initialize the mutator.

        Args:
            document: Shared document to mutate
            logger: Logger instance
        """
        self.document = document
        self.logger = logger or session_logger

    def insert_scaffold(
        self,
        offset: int,
        kind: str,
        *,
        index: int,
        correlation_id: str,
        subject_id: str,
    ) -> str:
        """
        Insert a scaffold node for an announced unit.

        Args:
            offset: Insert position, freshly computed by the position resolver
            kind: Node type the unit will materialize as
            index: Unit index within the session
            correlation_id: Session the scaffold belongs to
            subject_id: Subject the scaffold belongs to

        Returns:
            Stable handle of the inserted scaffold

        Raises:
            MutationError: If ``offset`` is not a valid insert position
        """
        scaffold = Node.create(
            SCAFFOLD_TYPE,
            attrs={
                "blockType": kind,
                "blockIndex": index,
                "correlationId": correlation_id,
                "subjectId": subject_id,
                "label": scaffold_label(kind),
            },
        )
        with self.document.transaction() as tr:
            tr.insert(offset, scaffold)

        self.logger.debug(
            "Scaffold inserted",
            correlation_id=correlation_id,
            index=index,
            kind=kind,
            offset=offset,
            handle=scaffold.handle,
        )
        return scaffold.handle

    def has_scaffold(self, handle: str) -> bool:
        """True if the scaffold identified by ``handle`` is still in the document."""
        located = self.document.find(handle)
        return located is not None and located[1].type == SCAFFOLD_TYPE

    def replace_scaffold(self, handle: str, payload: NodeSpec) -> Node:
        """
        Replace a scaffold with its finalized content, in place.

        The scaffold is located by handle, never by offset; the content node
        inherits the handle.

        Args:
            handle: Handle returned by :meth:`insert_scaffold`
            payload: Finalized node

        Returns:
            The inserted content node

        Raises:
            ScaffoldNotFoundError: If the scaffold is no longer in the document
        """
        located = self.document.find(handle)
        if located is None or located[1].type != SCAFFOLD_TYPE:
            raise ScaffoldNotFoundError(handle)

        content = Node.from_spec(payload, handle=handle)
        with self.document.transaction() as tr:
            tr.replace(handle, content)

        self.logger.debug(
            "Scaffold replaced",
            handle=handle,
            position=located[0],
            kind=payload.type,
            size=content.size,
        )
        return content

    def remove_all_scaffolds(self, subject_id: str) -> int:
        """
        Delete every scaffold of ``subject_id`` left in the document.

        The whole document is scanned and all scaffolds are deleted in a
        single transaction, highest position first so pending positions stay
        valid.

        Returns:
            Number of scaffolds removed
        """
        positions: List[int] = [
            pos
            for pos, node in self.document.nodes_of_type(SCAFFOLD_TYPE)
            if node.attrs.get("subjectId") in (None, subject_id)
        ]
        if not positions:
            return 0

        with self.document.transaction() as tr:
            for pos in sorted(positions, reverse=True):
                tr.delete_at(pos)

        self.logger.info("Scaffolds removed", subject_id=subject_id, count=len(positions))
        return len(positions)

    def remove_node(self, handle: str) -> bool:
        """
        Delete the node identified by ``handle``.

        Returns:
            True if the node was removed, False if it was already gone
        """
        if not self.document.contains(handle):
            return False
        try:
            with self.document.transaction() as tr:
                tr.delete(handle)
        except MutationError as exc:
            self.logger.error("Failed to remove node", handle=handle, error=str(exc))
            raise
        self.logger.debug("Node removed", handle=handle)
        return True
