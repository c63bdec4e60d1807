"""In-process loopback channel."""

import inspect
from typing import Any, Dict, List, Optional, Tuple

from blockstream.channel.base import Channel, EventHandler
from blockstream.exceptions import ChannelError
from blockstream.logger import Logger, session_logger


class InMemoryChannel(Channel):
    """Channel whose producer side lives in the same process.

    Outbound messages are recorded in :attr:`sent`; the producer side calls
    :meth:`deliver` to push inbound events to the registered handlers.
    Used by the test suite, the replay tool and embedded producers.
    """

    def __init__(
        self,
        connect_error: Optional[str] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """
        Args:
            connect_error: If set, :meth:`connect` fails with this message
            logger: Logger instance
        """
        self.logger = logger or session_logger
        self.connect_error = connect_error
        self.sent: List[Tuple[str, Dict[str, Any]]] = []
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self.connect_error:
            raise ChannelError(self.connect_error)
        self._connected = True

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        if not self._connected:
            raise ChannelError("Channel is not connected", details={"event": event})
        self.sent.append((event, dict(payload)))

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    async def disconnect(self) -> None:
        self._connected = False

    async def deliver(self, event: str, data: Dict[str, Any]) -> int:
        """
        Deliver an inbound event to its handlers, in registration order.

        Events are dropped while disconnected, as a real transport would.

        Returns:
            Number of handlers invoked
        """
        if not self._connected:
            self.logger.debug("Dropping event on disconnected channel", event=event)
            return 0
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            result = handler(data)
            if inspect.isawaitable(result):
                await result
        return len(handlers)

    def last_sent(self, event: str) -> Optional[Dict[str, Any]]:
        for name, payload in reversed(self.sent):
            if name == event:
                return payload
        return None
