"""Duplex channels between the client and the content producer."""

from blockstream.channel.base import Channel, EventHandler
from blockstream.channel.memory import InMemoryChannel
from blockstream.channel.socketio_channel import SocketIOChannel

__all__ = ["Channel", "EventHandler", "InMemoryChannel", "SocketIOChannel"]
