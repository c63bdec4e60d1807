"""Centralized configuration and defaults for the blockstream client.

All options are read from BLOCKSTREAM_* environment variables.
"""

# =============================================================================
# ENVIRONMENT VARIABLES REFERENCE
# =============================================================================

# Channel
# -------
# BLOCKSTREAM_CHANNEL_URL: Base URL of the generation server
#   (default: http://localhost:3001)
# BLOCKSTREAM_CHANNEL_NAMESPACE: Socket.IO namespace carrying generation events
#   (default: /ai)
# BLOCKSTREAM_RECONNECT_ATTEMPTS: Reconnection attempts after a drop (default: 5)
# BLOCKSTREAM_RECONNECT_DELAY: Initial reconnection delay in seconds (default: 1.0)
# BLOCKSTREAM_RECONNECT_DELAY_MAX: Maximum reconnection delay in seconds (default: 5.0)
#
# Stream policy
# -------------
# BLOCKSTREAM_RECOVERABLE_CODES: Comma separated error codes treated as
#   recoverable when an error event does not say so itself (default: PARSE_ERROR)
#
# Development & Testing
# ---------------------
# BLOCKSTREAM_LOG_LEVEL: Logging verbosity (default: INFO)
#   Values: DEBUG, INFO, WARNING, ERROR, CRITICAL

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet

from blockstream.exceptions import ConfigurationError

ENV_PREFIX = "BLOCKSTREAM"

# =============================================================================
# CONFIGURATION DEFAULTS
# =============================================================================

DEFAULT_CHANNEL_URL = "http://localhost:3001"
DEFAULT_CHANNEL_NAMESPACE = "/ai"
DEFAULT_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_DELAY = 1.0
DEFAULT_RECONNECT_DELAY_MAX = 5.0
DEFAULT_RECOVERABLE_CODES = frozenset({"PARSE_ERROR"})
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _env(name: str) -> str:
    return f"{ENV_PREFIX}_{name}"


def _parse_positive_int_env(name: str, default: int, minimum: int = 1) -> int:
    """Parse a positive integer from an environment variable with fallback."""
    raw = os.environ.get(_env(name))
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(
            code="INVALID_CONFIG",
            message=f"{_env(name)} must be an integer, got '{raw}'",
            details={"variable": _env(name), "value": raw},
        )
    if value < minimum:
        raise ConfigurationError(
            code="INVALID_CONFIG",
            message=f"{_env(name)} must be >= {minimum}, got {value}",
            details={"variable": _env(name), "value": raw},
        )
    return value


def _parse_positive_float_env(name: str, default: float) -> float:
    raw = os.environ.get(_env(name))
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(
            code="INVALID_CONFIG",
            message=f"{_env(name)} must be a number, got '{raw}'",
            details={"variable": _env(name), "value": raw},
        )
    if value <= 0:
        raise ConfigurationError(
            code="INVALID_CONFIG",
            message=f"{_env(name)} must be positive, got {value}",
            details={"variable": _env(name), "value": raw},
        )
    return value


@dataclass(frozen=True)
class StreamSettings:
    """Immutable snapshot of the configuration used by one set of components."""

    channel_url: str = DEFAULT_CHANNEL_URL
    channel_namespace: str = DEFAULT_CHANNEL_NAMESPACE
    reconnect_attempts: int = DEFAULT_RECONNECT_ATTEMPTS
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    reconnect_delay_max: float = DEFAULT_RECONNECT_DELAY_MAX
    recoverable_codes: FrozenSet[str] = field(default_factory=lambda: DEFAULT_RECOVERABLE_CODES)
    log_level: str = DEFAULT_LOG_LEVEL

    def is_recoverable_code(self, code) -> bool:
        return code is not None and code in self.recoverable_codes


class Config:
    """Environment backed configuration accessors."""

    @staticmethod
    def get_channel_url() -> str:
        return os.environ.get(_env("CHANNEL_URL"), DEFAULT_CHANNEL_URL).rstrip("/")

    @staticmethod
    def get_channel_namespace() -> str:
        namespace = os.environ.get(_env("CHANNEL_NAMESPACE"), DEFAULT_CHANNEL_NAMESPACE)
        return namespace if namespace.startswith("/") else f"/{namespace}"

    @staticmethod
    def get_reconnect_attempts() -> int:
        return _parse_positive_int_env(
            "RECONNECT_ATTEMPTS", DEFAULT_RECONNECT_ATTEMPTS, minimum=0
        )

    @staticmethod
    def get_reconnect_delay() -> float:
        return _parse_positive_float_env("RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY)

    @staticmethod
    def get_reconnect_delay_max() -> float:
        return _parse_positive_float_env("RECONNECT_DELAY_MAX", DEFAULT_RECONNECT_DELAY_MAX)

    @staticmethod
    def get_recoverable_codes() -> FrozenSet[str]:
        raw = os.environ.get(_env("RECOVERABLE_CODES"))
        if raw is None:
            return DEFAULT_RECOVERABLE_CODES
        return frozenset(code.strip() for code in raw.split(",") if code.strip())

    @staticmethod
    def get_log_level() -> str:
        level = os.environ.get(_env("LOG_LEVEL"), DEFAULT_LOG_LEVEL).upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError(
                code="INVALID_CONFIG",
                message=(
                    f"{_env('LOG_LEVEL')} must be one of "
                    f"{', '.join(sorted(_LOG_LEVELS))}, got '{level}'"
                ),
            )
        return level

    @classmethod
    def get_log_level_value(cls) -> int:
        return getattr(logging, cls.get_log_level())

    @classmethod
    def load_settings(cls) -> StreamSettings:
        """Read every setting from the environment.

        Raises:
            ConfigurationError: If any variable holds an invalid value
        """
        delay = cls.get_reconnect_delay()
        delay_max = cls.get_reconnect_delay_max()
        if delay_max < delay:
            raise ConfigurationError(
                code="INVALID_CONFIG",
                message=(
                    f"{_env('RECONNECT_DELAY_MAX')} ({delay_max}) must not be lower than "
                    f"{_env('RECONNECT_DELAY')} ({delay})"
                ),
            )
        return StreamSettings(
            channel_url=cls.get_channel_url(),
            channel_namespace=cls.get_channel_namespace(),
            reconnect_attempts=cls.get_reconnect_attempts(),
            reconnect_delay=delay,
            reconnect_delay_max=delay_max,
            recoverable_codes=cls.get_recoverable_codes(),
            log_level=cls.get_log_level(),
        )


def get_config_summary() -> dict:
    """Get a summary of current configuration from environment."""
    settings = Config.load_settings()
    return {
        "channel_url": settings.channel_url,
        "channel_namespace": settings.channel_namespace,
        "reconnect_attempts": settings.reconnect_attempts,
        "reconnect_delay": settings.reconnect_delay,
        "reconnect_delay_max": settings.reconnect_delay_max,
        "recoverable_codes": sorted(settings.recoverable_codes),
        "log_level": settings.log_level,
    }
