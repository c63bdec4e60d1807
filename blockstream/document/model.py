"""In-memory block document with atomic transactions.

The document is an immutable tree of :class:`Node` objects. A
:class:`Transaction` works on its own copy of the top-level sequence and the
document swaps it in only when the ``with`` block exits cleanly, so a reader
never observes a half-applied change.
"""

from __future__ import annotations

import dataclasses
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from blockstream.document.schema import TEXT_TYPE, NodeSpec, is_container
from blockstream.exceptions import MutationError, ValidationError
from blockstream.logger import Logger, session_logger

DocumentListener = Callable[["Document"], None]


def _new_handle() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Node:
    """A document node. Nodes are never mutated in place."""

    type: str
    attrs: Mapping[str, Any] = field(default_factory=dict)
    content: Tuple["Node", ...] = ()
    text: Optional[str] = None
    marks: Optional[Tuple[Mapping[str, Any], ...]] = None
    handle: str = field(default_factory=_new_handle, compare=False)

    @property
    def is_text(self) -> bool:
        return self.type == TEXT_TYPE

    @property
    def is_leaf(self) -> bool:
        return not self.is_text and not is_container(self.type)

    @property
    def size(self) -> int:
        if self.is_text:
            return len(self.text or "")
        if self.is_leaf:
            return 1
        return 2 + sum(child.size for child in self.content)

    def with_handle(self, handle: str) -> "Node":
        return dataclasses.replace(self, handle=handle)

    def with_content(self, content: Iterable["Node"]) -> "Node":
        return dataclasses.replace(self, content=tuple(content))

    @classmethod
    def create(
        cls,
        type: str,
        attrs: Optional[Mapping[str, Any]] = None,
        content: Iterable["Node"] = (),
        text: Optional[str] = None,
    ) -> "Node":
        return cls(type=type, attrs=dict(attrs or {}), content=tuple(content), text=text)

    @classmethod
    def from_spec(cls, spec: NodeSpec, handle: Optional[str] = None) -> "Node":
        node = cls(
            type=spec.type,
            attrs=dict(spec.attrs),
            content=tuple(cls.from_spec(child) for child in spec.content or []),
            text=spec.text,
            marks=tuple(spec.marks) if spec.marks else None,
        )
        return node.with_handle(handle) if handle else node

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Node":
        """Build a node from its JSON form.

        Raises:
            pydantic.ValidationError: If the JSON does not describe a valid node
        """
        return cls.from_spec(NodeSpec.model_validate(data))

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        if self.is_text:
            data["text"] = self.text
            if self.marks:
                data["marks"] = [dict(mark) for mark in self.marks]
        elif self.content:
            data["content"] = [child.to_json() for child in self.content]
        return data


# ----------------------------------------------------------------------
# Tree helpers
# ----------------------------------------------------------------------


def _walk(nodes: Tuple[Node, ...], start: int) -> Iterator[Tuple[int, Node]]:
    pos = start
    for node in nodes:
        yield pos, node
        if node.content:
            yield from _walk(node.content, pos + 1)
        pos += node.size


def _boundary_index(nodes: Tuple[Node, ...], pos: int) -> Optional[int]:
    offset = 0
    for index, node in enumerate(nodes):
        if offset == pos:
            return index
        offset += node.size
    return len(nodes) if offset == pos else None


def _replace(
    nodes: Tuple[Node, ...], handle: str, replacement: Node
) -> Tuple[Tuple[Node, ...], bool]:
    result: List[Node] = []
    found = False
    for node in nodes:
        if found:
            result.append(node)
        elif node.handle == handle:
            result.append(replacement)
            found = True
        elif node.content:
            content, found = _replace(node.content, handle, replacement)
            result.append(node.with_content(content) if found else node)
        else:
            result.append(node)
    return tuple(result), found


def _delete_at(
    nodes: Tuple[Node, ...], start: int, pos: int
) -> Tuple[Tuple[Node, ...], Optional[Node]]:
    offset = start
    for index, node in enumerate(nodes):
        if offset == pos:
            return nodes[:index] + nodes[index + 1 :], node
        end = offset + node.size
        if node.content and offset < pos < end:
            content, removed = _delete_at(node.content, offset + 1, pos)
            if removed is None:
                return nodes, None
            return nodes[:index] + (node.with_content(content),) + nodes[index + 1 :], removed
        offset = end
    return nodes, None


def _content_size(nodes: Tuple[Node, ...]) -> int:
    return sum(node.size for node in nodes)


class Transaction:
    """A batch of steps applied to a private copy of the document content.

    Positions passed to a step refer to the content as left by the previous
    steps of the same transaction.
    """

    def __init__(self, nodes: Tuple[Node, ...]) -> None:
        self._nodes = nodes
        self.steps = 0

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def content_size(self) -> int:
        return _content_size(self._nodes)

    def find(self, handle: str) -> Optional[Tuple[int, Node]]:
        for pos, node in _walk(self._nodes, 0):
            if node.handle == handle:
                return pos, node
        return None

    def insert(self, pos: int, node: Node) -> None:
        """Insert a top-level node at ``pos``.

        Raises:
            MutationError: If ``pos`` is not a boundary between top-level nodes
        """
        index = _boundary_index(self._nodes, pos)
        if index is None:
            raise MutationError(
                f"Position {pos} is not a block boundary",
                code="INVALID_POSITION",
                details={"position": pos, "content_size": self.content_size},
            )
        self._nodes = self._nodes[:index] + (node,) + self._nodes[index:]
        self.steps += 1

    def replace(self, handle: str, node: Node) -> None:
        """Replace the node identified by ``handle``; the new node keeps the handle.

        Raises:
            MutationError: If no node carries ``handle``
        """
        nodes, found = _replace(self._nodes, handle, node.with_handle(handle))
        if not found:
            raise MutationError(
                f"Node '{handle}' not found", code="NODE_NOT_FOUND", details={"handle": handle}
            )
        self._nodes = nodes
        self.steps += 1

    def delete_at(self, pos: int) -> Node:
        """Delete the node starting at ``pos`` (at any depth) and return it.

        Raises:
            MutationError: If no node starts at ``pos``
        """
        nodes, removed = _delete_at(self._nodes, 0, pos)
        if removed is None:
            raise MutationError(
                f"No node starts at position {pos}",
                code="INVALID_POSITION",
                details={"position": pos},
            )
        self._nodes = nodes
        self.steps += 1
        return removed

    def delete(self, handle: str) -> Node:
        located = self.find(handle)
        if located is None:
            raise MutationError(
                f"Node '{handle}' not found", code="NODE_NOT_FOUND", details={"handle": handle}
            )
        return self.delete_at(located[0])


class Document:
    """Shared, user-editable block document."""

    def __init__(self, nodes: Iterable[Node] = (), logger: Optional[Logger] = None) -> None:
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self._version = 0
        self._listeners: List[DocumentListener] = []
        self._in_transaction = False
        self.logger = logger or session_logger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def version(self) -> int:
        return self._version

    @property
    def content_size(self) -> int:
        return _content_size(self._nodes)

    def descendants(self) -> Iterator[Tuple[int, Node]]:
        """Yield ``(position, node)`` for every node, depth first."""
        return _walk(self._nodes, 0)

    def node_at(self, pos: int) -> Optional[Node]:
        """Return the outermost node starting at ``pos``."""
        for node_pos, node in self.descendants():
            if node_pos == pos:
                return node
            if node_pos > pos:
                break
        return None

    def find(self, handle: str) -> Optional[Tuple[int, Node]]:
        for pos, node in self.descendants():
            if node.handle == handle:
                return pos, node
        return None

    def position_of(self, handle: str) -> Optional[int]:
        located = self.find(handle)
        return located[0] if located else None

    def contains(self, handle: str) -> bool:
        return self.find(handle) is not None

    def is_top_level(self, handle: str) -> bool:
        """True if ``handle`` names a direct child of the document root."""
        return any(node.handle == handle for node in self._nodes)

    def measure(self, handle: str) -> Optional[int]:
        located = self.find(handle)
        return located[1].size if located else None

    def nodes_of_type(self, node_type: str) -> List[Tuple[int, Node]]:
        return [(pos, node) for pos, node in self.descendants() if node.type == node_type]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def subscribe(self, listener: DocumentListener) -> Callable[[], None]:
        """Register a listener called after every committed transaction.

        Returns:
            A callable removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Open an atomic transaction.

        All steps become visible together when the block exits normally; an
        exception discards every step.

        Raises:
            MutationError: If another transaction is already open
        """
        if self._in_transaction:
            raise MutationError("A transaction is already in progress", code="NESTED_TRANSACTION")
        tr = Transaction(self._nodes)
        self._in_transaction = True
        try:
            yield tr
        finally:
            self._in_transaction = False
        if tr.steps == 0:
            return
        self._nodes = tr.nodes
        self._version += 1
        self.logger.debug(
            "Document transaction committed", version=self._version, steps=tr.steps
        )
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        return {"type": "doc", "content": [node.to_json() for node in self._nodes]}

    @classmethod
    def from_json(cls, data: Mapping[str, Any], logger: Optional[Logger] = None) -> "Document":
        """Build a document from ``{"type": "doc", "content": [...]}`` JSON."""
        if data.get("type") != "doc":
            raise ValidationError(
                code="INVALID_DOCUMENT", message="Document JSON must have type 'doc'"
            )
        return cls([Node.from_json(item) for item in data.get("content") or []], logger=logger)
