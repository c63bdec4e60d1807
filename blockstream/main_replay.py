"""Replay a recorded generation transcript against an in-memory document.

Each transcript line is one JSON object ``{"event": "<name>", "data": {...}}``
as received on the channel. The resulting document JSON and the session
outcome are printed to stdout.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from blockstream.channel import InMemoryChannel
from blockstream.components import initialize_components
from blockstream.config import Config, StreamSettings
from blockstream.document import REQUEST_NODE_TYPE, Document, Node
from blockstream.exceptions import BlockstreamError, ValidationError
from blockstream.logger import Logger, session_logger
from blockstream.stream import StreamOutcome

logger: Logger = session_logger

TranscriptEntry = Tuple[str, Dict[str, Any]]


def load_transcript(lines: Iterable[str]) -> List[TranscriptEntry]:
    """
    Parse transcript lines. Blank lines are skipped.

    Raises:
        ValidationError: If a line is not a ``{"event", "data"}`` object
    """
    entries: List[TranscriptEntry] = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                code="INVALID_TRANSCRIPT",
                message=f"Line {number} is not valid JSON",
                details={"line": number, "error": str(exc)},
            ) from exc
        if not isinstance(record, dict) or not isinstance(record.get("event"), str):
            raise ValidationError(
                code="INVALID_TRANSCRIPT",
                message=f"Line {number} must be an object with an 'event' name",
                details={"line": number},
            )
        entries.append((record["event"], record.get("data") or {}))
    return entries


def _ensure_request_node(document: Document, prompt: str) -> str:
    located = document.nodes_of_type(REQUEST_NODE_TYPE)
    if located:
        return located[0][1].handle
    node = Node.create(REQUEST_NODE_TYPE, attrs={"prompt": prompt})
    with document.transaction() as tr:
        tr.insert(tr.content_size, node)
    return node.handle


async def replay_transcript(
    entries: Iterable[TranscriptEntry],
    document: Optional[Document] = None,
    *,
    subject_id: str = "replay",
    prompt: str = "Replay",
    rebind: bool = False,
    settings: Optional[StreamSettings] = None,
    logger: Logger = session_logger,
) -> Tuple[Document, Optional[StreamOutcome]]:
    """
    Run a transcript through a fresh controller.

    Args:
        entries: Parsed transcript
        document: Starting document (empty if omitted); its first request node
            is used as the anchor, or one is appended
        subject_id: Subject id of the replayed session
        prompt: Prompt sent with the generate request
        rebind: Rewrite every event's ids to the replayed session, so
            transcripts recorded under another correlation id still apply
        settings: Settings snapshot (defaults if omitted)
        logger: Logger

    Returns:
        The document after replay and the session outcome (None if the
        transcript never ended the session)
    """
    document = document if document is not None else Document(logger=logger)
    request_handle = _ensure_request_node(document, prompt)

    channel = InMemoryChannel(logger=logger)
    components = initialize_components(
        subject_id=subject_id,
        document=document,
        logger=logger,
        channel=channel,
        settings=settings or StreamSettings(),
    )
    controller = components.controller
    session = await controller.start(prompt, request_handle)

    for event, data in entries:
        if rebind:
            data = {**data, "requestId": session.correlation_id, "assignmentId": subject_id}
        await channel.deliver(event, data)

    if controller.is_active:
        logger.warning(
            "Transcript ended with the session still open",
            correlation_id=session.correlation_id,
            state=controller.state.value,
        )
        return document, None
    return document, controller.last_outcome


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="blockstream replay - apply a recorded event transcript to a document"
    )
    parser.add_argument("transcript", type=str, help="Path to a JSONL event transcript")
    parser.add_argument(
        "--document",
        type=str,
        default=None,
        help="Starting document JSON ({\"type\": \"doc\", ...}) (default: empty document)",
    )
    parser.add_argument(
        "--subject",
        type=str,
        default="replay",
        help="Subject id of the replayed session (default: replay)",
    )
    parser.add_argument(
        "--prompt",
        type=str,
        default="Replay",
        help="Prompt sent with the generate request (default: Replay)",
    )
    parser.add_argument(
        "--rebind",
        action="store_true",
        help="Rewrite event ids to the replayed session",
    )
    args = parser.parse_args(argv)

    try:
        settings = Config.load_settings()
        session_logger.set_level(Config.get_log_level_value())

        entries = load_transcript(Path(args.transcript).read_text(encoding="utf-8").splitlines())
        document = None
        if args.document:
            document = Document.from_json(
                json.loads(Path(args.document).read_text(encoding="utf-8")), logger=logger
            )

        document, outcome = asyncio.run(
            replay_transcript(
                entries,
                document,
                subject_id=args.subject,
                prompt=args.prompt,
                rebind=args.rebind,
                settings=settings,
                logger=logger,
            )
        )
    except BlockstreamError as e:
        logger.error("Replay failed", code=e.code, error=e.message)
        return 1
    except (OSError, ValueError) as e:
        logger.error("Replay failed", error=str(e), error_type=type(e).__name__)
        return 1

    json.dump(
        {
            "document": document.to_json(),
            "outcome": outcome.model_dump(mode="json") if outcome else None,
        },
        sys.stdout,
        indent=2,
    )
    sys.stdout.write("\n")
    return 0 if outcome is not None and outcome.succeeded else 2


if __name__ == "__main__":
    sys.exit(main())
