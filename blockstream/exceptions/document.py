"""Document mutation exceptions."""

from typing import Any, Dict, Optional

from blockstream.exceptions.base import BlockstreamError


class MutationError(BlockstreamError):
    """Raised when a document transaction cannot be applied.

    The transaction is discarded; the document is left exactly as it was.
    """

    def __init__(
        self,
        message: str,
        code: str = "MUTATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code=code, message=message, details=details or {})


class ScaffoldNotFoundError(MutationError):
    """Raised when a scaffold handle no longer resolves to a node."""

    def __init__(self, handle: str):
        super().__init__(
            message=f"Scaffold '{handle}' not found in document",
            code="SCAFFOLD_NOT_FOUND",
            details={"handle": handle},
        )
        self.handle = handle


class AnchorLostError(MutationError):
    """Raised when the node a session is anchored to has left the document."""

    def __init__(self, handle: str):
        super().__init__(
            message=f"Anchor node '{handle}' is no longer part of the document",
            code="ANCHOR_LOST",
            details={"handle": handle},
        )
        self.handle = handle
