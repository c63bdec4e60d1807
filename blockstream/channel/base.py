"""Duplex channel interface."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Union

EventHandler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class Channel(ABC):
    """Abstract duplex channel between the client and the content producer.

    Implementations reconnect on their own after a drop; a reconnect never
    resumes a generation session.
    """

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish the connection.

        Raises:
            ChannelError: If the connection cannot be established
        """
        pass

    @abstractmethod
    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        """
        Send one message to the producer.

        Raises:
            ChannelError: If the channel is not connected or the send fails
        """
        pass

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for inbound messages named ``event``."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass
