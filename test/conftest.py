"""Pytest configuration and fixtures

Provides shared fixtures for all tests: a recording logger, a document holding
a request node between two paragraphs, an in-memory channel and a wired
stream controller, plus a factory for wire events.

Layout of the default document (positions)::

    0  paragraph "Intro"   (size 7)
    7  aiBlock request     (size 1)
    8  paragraph "Outro"   (size 7)

so the first generated unit is inserted at offset 8.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Add project root to sys.path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from blockstream.channel import InMemoryChannel
from blockstream.config import StreamSettings
from blockstream.document import REQUEST_NODE_TYPE, Document, Node
from blockstream.logger import Logger
from blockstream.sessions import CorrelationRegistry
from blockstream.stream import StreamController

SUBJECT_ID = "assignment-1"
ANCHOR_OFFSET = 8


# ============================================================================
# LOGGING
# ============================================================================


class RecordingLogger(Logger):
    """Logger that keeps every record in memory for assertions."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str, Dict[str, Any]]] = []

    def _record(self, level: str, message: str, kwargs: Dict[str, Any]) -> None:
        self.records.append((level, message, kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._record("debug", message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._record("info", message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._record("warning", message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._record("error", message, kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._record("critical", message, kwargs)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [message for lvl, message, _ in self.records if level is None or lvl == level]


# ============================================================================
# DOCUMENT HELPERS
# ============================================================================


def make_paragraph(text: str) -> Node:
    return Node.create("paragraph", content=[Node.create("text", text=text)])


def paragraph_json(text: str) -> Dict[str, Any]:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def texts(document: Document) -> List[str]:
    """Top-level node summary: paragraph text, or the node type for anything else."""
    summary = []
    for node in document.nodes:
        if node.type == "paragraph" and node.content:
            summary.append(node.content[0].text)
        else:
            summary.append(node.type)
    return summary


class EventFactory:
    """Builds ``(event_name, data)`` pairs as they arrive on the channel."""

    def __init__(self, correlation_id: str = "", subject_id: str = SUBJECT_ID) -> None:
        self.correlation_id = correlation_id
        self.subject_id = subject_id

    def bind(self, correlation_id: str, subject_id: Optional[str] = None) -> "EventFactory":
        return EventFactory(correlation_id, subject_id or self.subject_id)

    def _ids(self) -> Dict[str, Any]:
        return {"requestId": self.correlation_id, "assignmentId": self.subject_id}

    def announce(self, index: int, kind: str = "paragraph") -> Tuple[str, Dict[str, Any]]:
        return "block-start", {**self._ids(), "blockIndex": index, "blockType": kind}

    def finalize(self, index: int, block: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        return "block-complete", {**self._ids(), "blockIndex": index, "block": block}

    def complete(self, success: bool = True) -> Tuple[str, Dict[str, Any]]:
        return "generation-complete", {**self._ids(), "success": success}

    def error(
        self,
        message: str = "Generation failed",
        code: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        data: Dict[str, Any] = {**self._ids(), "message": message}
        if code is not None:
            data["code"] = code
        if recoverable is not None:
            data["recoverable"] = recoverable
        return "stream-error", data


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def request_node() -> Node:
    return Node.create(REQUEST_NODE_TYPE, attrs={"prompt": "Write a short quiz"})


@pytest.fixture
def document(logger, request_node) -> Document:
    return Document(
        [make_paragraph("Intro"), request_node, make_paragraph("Outro")], logger=logger
    )


@pytest.fixture
def channel(logger) -> InMemoryChannel:
    return InMemoryChannel(logger=logger)


@pytest.fixture
def registry(logger) -> CorrelationRegistry:
    return CorrelationRegistry(logger=logger)


@pytest.fixture
def settings() -> StreamSettings:
    return StreamSettings()


@pytest.fixture
def outcomes() -> list:
    return []


@pytest.fixture
def controller(document, channel, registry, settings, outcomes, logger) -> StreamController:
    return StreamController(
        subject_id=SUBJECT_ID,
        document=document,
        channel=channel,
        registry=registry,
        settings=settings,
        on_outcome=outcomes.append,
        logger=logger,
    )


@pytest.fixture
def events() -> EventFactory:
    return EventFactory()
