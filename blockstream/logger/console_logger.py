"""Console logger backed by the standard logging module."""

import logging
import sys
from typing import Any, Optional

from .base import Logger

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ConsoleLogger(Logger):
    """Logger writing ``message key=value ...`` lines to stderr."""

    def __init__(
        self,
        name: str = "blockstream",
        level: int = logging.INFO,
        fmt: Optional[str] = None,
    ) -> None:
        """
        Args:
            name: Name of the underlying ``logging.Logger``
            level: Minimum level emitted
            fmt: Optional ``logging.Formatter`` format string
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
            self._logger.addHandler(handler)
            self._logger.propagate = False

    @property
    def name(self) -> str:
        return self._logger.name

    def set_level(self, level: int) -> None:
        self._logger.setLevel(level)

    @staticmethod
    def _render(message: str, fields: dict) -> str:
        if not fields:
            return message
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} {rendered}"

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._render(message, kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._render(message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._render(message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self._render(message, kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        self._logger.critical(self._render(message, kwargs))
