"""Tests for the Socket.IO channel.

Uses a mock AsyncClient -- no server needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio
from socketio import exceptions as socketio_exceptions

from blockstream.channel import SocketIOChannel
from blockstream.config import StreamSettings
from blockstream.exceptions import ChannelError


def _make_mock_client(connected: bool = False) -> MagicMock:
    """Return a mock AsyncClient with awaitable connect/emit/disconnect."""
    client = MagicMock()
    client.connected = connected
    client.connect = AsyncMock()
    client.emit = AsyncMock()
    client.disconnect = AsyncMock()
    return client


@pytest.fixture
def stream_settings() -> StreamSettings:
    return StreamSettings(channel_url="http://generator:3001", channel_namespace="/ai")


class TestSocketIOChannelSetup:
    """Client construction."""

    def test_builds_client_with_reconnection_policy(self, logger):
        settings = StreamSettings(reconnect_attempts=7, reconnect_delay=2.0, reconnect_delay_max=9.0)

        channel = SocketIOChannel(settings, logger=logger)

        assert isinstance(channel.client, socketio.AsyncClient)
        assert channel.client.reconnection is True
        assert channel.client.reconnection_attempts == 7
        assert channel.client.reconnection_delay == 2.0
        assert channel.client.reconnection_delay_max == 9.0
        assert channel.connected is False

    def test_lifecycle_handlers_use_namespace(self, stream_settings, logger):
        client = _make_mock_client()

        SocketIOChannel(stream_settings, client=client, logger=logger)

        registered = {call.args[0]: call.kwargs["namespace"] for call in client.on.call_args_list}
        assert registered == {"connect": "/ai", "disconnect": "/ai", "connect_error": "/ai"}

    def test_event_handlers_are_registered_on_namespace(self, stream_settings, logger):
        client = _make_mock_client()
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        def handler(data):
            return None

        channel.on("block-start", handler)

        client.on.assert_called_with("block-start", handler, namespace="/ai")


class TestSocketIOChannelIO:
    """Connect, send and disconnect."""

    @pytest.mark.asyncio
    async def test_connect_uses_settings(self, stream_settings, logger):
        client = _make_mock_client()
        channel = SocketIOChannel(
            stream_settings, headers={"Cookie": "session=abc"}, client=client, logger=logger
        )

        await channel.connect()

        client.connect.assert_awaited_once_with(
            "http://generator:3001",
            headers={"Cookie": "session=abc"},
            namespaces=["/ai"],
            transports=["websocket", "polling"],
        )

    @pytest.mark.asyncio
    async def test_connect_is_skipped_when_connected(self, stream_settings, logger):
        client = _make_mock_client(connected=True)
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        await channel.connect()

        client.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connect_failure_raises_channel_error(self, stream_settings, logger):
        client = _make_mock_client()
        client.connect.side_effect = socketio_exceptions.ConnectionError("refused")
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        with pytest.raises(ChannelError) as exc_info:
            await channel.connect()

        assert exc_info.value.code == "CHANNEL_ERROR"
        assert "http://generator:3001/ai" in exc_info.value.message
        assert "Channel connection failed" in logger.messages("error")

    @pytest.mark.asyncio
    async def test_send_emits_on_namespace(self, stream_settings, logger):
        client = _make_mock_client(connected=True)
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        await channel.send("generate", {"requestId": "req_1"})

        client.emit.assert_awaited_once_with("generate", {"requestId": "req_1"}, namespace="/ai")

    @pytest.mark.asyncio
    async def test_send_when_disconnected(self, stream_settings, logger):
        client = _make_mock_client(connected=False)
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        with pytest.raises(ChannelError):
            await channel.send("generate", {})
        client.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_raises_channel_error(self, stream_settings, logger):
        client = _make_mock_client(connected=True)
        client.emit.side_effect = socketio_exceptions.BadNamespaceError("/ai is not connected")
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        with pytest.raises(ChannelError) as exc_info:
            await channel.send("generate", {})
        assert exc_info.value.details["event"] == "generate"

    @pytest.mark.asyncio
    async def test_disconnect(self, stream_settings, logger):
        client = _make_mock_client(connected=True)
        channel = SocketIOChannel(stream_settings, client=client, logger=logger)

        await channel.disconnect()

        client.disconnect.assert_awaited_once()
