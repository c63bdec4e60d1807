"""Socket.IO channel to a remote generation server."""

from typing import Any, Dict, Optional

import socketio
from socketio import exceptions as socketio_exceptions

from blockstream.channel.base import Channel, EventHandler
from blockstream.config import StreamSettings
from blockstream.exceptions import ChannelError
from blockstream.logger import Logger, session_logger

TRANSPORTS = ["websocket", "polling"]


class SocketIOChannel(Channel):
    """Channel backed by a ``socketio.AsyncClient``.

    The client reconnects on its own using the configured policy. Inbound
    handlers run on the event loop one message at a time.
    """

    def __init__(
        self,
        settings: StreamSettings,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[socketio.AsyncClient] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """
        Args:
            settings: Channel URL, namespace and reconnection policy
            headers: Extra HTTP headers for the handshake (session cookie ...)
            client: Pre-built client, mainly for tests
            logger: Logger instance
        """
        self.settings = settings
        self.headers = headers or {}
        self.logger = logger or session_logger
        self.client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=settings.reconnect_attempts,
            reconnection_delay=settings.reconnect_delay,
            reconnection_delay_max=settings.reconnect_delay_max,
            logger=False,
        )
        self.client.on("connect", self._on_connect, namespace=self.namespace)
        self.client.on("disconnect", self._on_disconnect, namespace=self.namespace)
        self.client.on("connect_error", self._on_connect_error, namespace=self.namespace)

    @property
    def namespace(self) -> str:
        return self.settings.channel_namespace

    @property
    def connected(self) -> bool:
        return bool(self.client.connected)

    async def connect(self) -> None:
        if self.connected:
            return
        try:
            await self.client.connect(
                self.settings.channel_url,
                headers=self.headers,
                namespaces=[self.namespace],
                transports=TRANSPORTS,
            )
        except socketio_exceptions.ConnectionError as exc:
            self.logger.error(
                "Channel connection failed",
                url=self.settings.channel_url,
                namespace=self.namespace,
                error=str(exc),
            )
            raise ChannelError(
                f"Could not connect to {self.settings.channel_url}{self.namespace}",
                details={"error": str(exc)},
            ) from exc

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.connected:
            raise ChannelError("Channel is not connected", details={"event": event})
        try:
            await self.client.emit(event, payload, namespace=self.namespace)
        except socketio_exceptions.SocketIOError as exc:
            raise ChannelError(
                f"Failed to send '{event}'", details={"event": event, "error": str(exc)}
            ) from exc

    def on(self, event: str, handler: EventHandler) -> None:
        self.client.on(event, handler, namespace=self.namespace)

    async def disconnect(self) -> None:
        if self.connected:
            await self.client.disconnect()

    # ------------------------------------------------------------------
    # Lifecycle logging
    # ------------------------------------------------------------------

    def _on_connect(self) -> None:
        self.logger.info(
            "Channel connected", url=self.settings.channel_url, namespace=self.namespace
        )

    def _on_disconnect(self, *args: Any) -> None:
        self.logger.info("Channel disconnected", namespace=self.namespace)

    def _on_connect_error(self, data: Any = None) -> None:
        self.logger.warning("Channel connection error", namespace=self.namespace, error=data)
