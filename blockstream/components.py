"""Component initialization for a subject document.

Wires the registry, resolver, mutator, channel and controller of one subject
so hosts (and the replay tool) build them the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from blockstream.channel import Channel, SocketIOChannel
from blockstream.config import Config, StreamSettings
from blockstream.document import Document, DocumentMutator
from blockstream.logger import Logger
from blockstream.sessions import CorrelationRegistry, PositionResolver
from blockstream.stream import OutcomeCallback, StreamController


@dataclass
class StreamComponents:
    settings: StreamSettings
    registry: CorrelationRegistry
    channel: Channel
    resolver: PositionResolver
    mutator: DocumentMutator
    controller: StreamController


def initialize_components(
    *,
    subject_id: str,
    document: Document,
    logger: Logger,
    channel: Optional[Channel] = None,
    settings: Optional[StreamSettings] = None,
    registry: Optional[CorrelationRegistry] = None,
    on_outcome: Optional[OutcomeCallback] = None,
) -> StreamComponents:
    """Initialize all components for one subject.

    Args:
            subject_id: Subject whose document is edited
            document: Live document of the subject
            logger: Logger
            channel: Channel to the producer (Socket.IO from settings if omitted)
            settings: Settings snapshot (read from the environment if omitted)
            registry: Registry shared between subjects (a new one if omitted)
            on_outcome: Terminal outcome callback
    """
    settings = settings or Config.load_settings()
    registry = registry or CorrelationRegistry(logger=logger)
    if channel is None:
        channel = SocketIOChannel(settings, logger=logger)
        logger.info(
            "Socket.IO channel configured",
            url=settings.channel_url,
            namespace=settings.channel_namespace,
        )

    resolver = PositionResolver(document, logger=logger)
    mutator = DocumentMutator(document, logger=logger)
    controller = StreamController(
        subject_id=subject_id,
        document=document,
        channel=channel,
        registry=registry,
        resolver=resolver,
        mutator=mutator,
        settings=settings,
        on_outcome=on_outcome,
        logger=logger,
    )
    logger.debug("Stream components initialized", subject_id=subject_id)

    return StreamComponents(
        settings=settings,
        registry=registry,
        channel=channel,
        resolver=resolver,
        mutator=mutator,
        controller=controller,
    )
