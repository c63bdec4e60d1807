"""Block document model and protocol-side mutations."""

from blockstream.document.model import Document, Node, Transaction
from blockstream.document.mutator import DocumentMutator
from blockstream.document.schema import (
    REQUEST_NODE_TYPE,
    SCAFFOLD_NODE_SIZE,
    SCAFFOLD_TYPE,
    NodeSpec,
    describe_kind,
)

__all__ = [
    "Document",
    "Node",
    "Transaction",
    "DocumentMutator",
    "NodeSpec",
    "REQUEST_NODE_TYPE",
    "SCAFFOLD_NODE_SIZE",
    "SCAFFOLD_TYPE",
    "describe_kind",
]
