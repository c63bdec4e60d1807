"""Node schema for the block document.

Sizes follow the usual structured-editor position model: a text node
occupies one position per character, a leaf (atom) node occupies exactly one
position, and a container occupies its children plus an opening and a closing
token.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TEXT_TYPE = "text"
SCAFFOLD_TYPE = "generatingBlock"
REQUEST_NODE_TYPE = "aiBlock"

# Node types whose content is a sequence of child nodes
CONTAINER_TYPES = frozenset(
    {
        "paragraph",
        "heading",
        "blockquote",
        "bulletList",
        "orderedList",
        "listItem",
        "taskList",
        "taskItem",
        "codeBlock",
        "table",
        "tableRow",
        "tableCell",
        "tableHeader",
    }
)

# A scaffold is an atom leaf
SCAFFOLD_NODE_SIZE = 1

_KIND_LABELS = {
    "paragraph": "paragraph",
    "heading": "heading",
    "codeBlock": "code block",
    "bulletList": "bullet list",
    "orderedList": "ordered list",
    "blockquote": "blockquote",
    "horizontalRule": "divider",
    "mcqBlock": "multiple choice question",
    "fillInTheBlankBlock": "fill in the blank question",
    "shortAnswerBlock": "short answer question",
    "parsonsProblemBlock": "Parsons problem",
    "dragDropMatchingBlock": "matching question",
    "clickableAreaBlock": "clickable area question",
    "ideBlock": "code exercise",
    "pollBlock": "poll",
    "alertBlock": "alert",
    "tabbedContentBlock": "tabbed content",
    "revealContentBlock": "reveal content",
    "embedBlock": "embed",
    "imageBlock": "image",
}


def is_container(node_type: str) -> bool:
    return node_type in CONTAINER_TYPES


def describe_kind(kind: str) -> str:
    """Human readable name of a block kind, used for scaffold labels."""
    return _KIND_LABELS.get(kind, kind)


def scaffold_label(kind: str) -> str:
    return f"Generating {describe_kind(kind)}..."


class NodeSpec(BaseModel):
    """JSON shape of a document node as produced on the wire.

    Args:
        type: Node type name (``paragraph``, ``text``, ``mcqBlock`` ...)
        attrs: Node attributes
        content: Child nodes (containers only)
        text: Text of a ``text`` node
        marks: Inline marks of a ``text`` node, carried through untouched
    """

    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1)
    attrs: Dict[str, Any] = Field(default_factory=dict)
    content: Optional[List["NodeSpec"]] = None
    text: Optional[str] = None
    marks: Optional[List[Dict[str, Any]]] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "NodeSpec":
        if self.type == TEXT_TYPE:
            if not self.text:
                raise ValueError("text nodes require non-empty 'text'")
            if self.content:
                raise ValueError("text nodes cannot have 'content'")
        elif self.content and not is_container(self.type):
            raise ValueError(f"'{self.type}' is a leaf node and cannot have 'content'")
        return self

    def measure(self) -> int:
        """Size in document positions of the node this spec describes."""
        if self.type == TEXT_TYPE:
            return len(self.text or "")
        if not is_container(self.type):
            return 1
        return 2 + sum(child.measure() for child in self.content or [])


NodeSpec.model_rebuild()
