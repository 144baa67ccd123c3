"""
Application configuration for RelayASGI.

Settings come from code, from ``RELAY_*`` environment variables, or both:

    config = AppConfig.from_env(port=8000)   # env first, explicit overrides win
    app = RelayASGI(config=config)

Values are validated when the config is created so mistakes fail at
startup rather than on the first request.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError

LOG_FORMATS = ("text", "json")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class AppConfig:
    """
    Configuration for a RelayASGI application and the server running it.

    Attributes:
        host: Interface to bind when serving
        port: Port to bind when serving
        debug: Include exception details in error responses
        log_level: Level name for the ``relayasgi`` loggers
        log_format: 'text' or 'json' log lines
        request_timeout: Seconds before a request is answered with 504; None disables
        max_body_size: Largest accepted request body in bytes
    """

    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "text"
    request_timeout: Optional[float] = None
    max_body_size: int = 10 * 1024 * 1024

    def __post_init__(self):
        self.log_level = str(self.log_level).upper()
        if not 0 <= int(self.port) <= 65535:
            raise ConfigurationError(f"Port must be between 0 and 65535, got {self.port}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Invalid log format: {self.log_format}. Must be one of {LOG_FORMATS}"
            )
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.max_body_size <= 0:
            raise ConfigurationError("max_body_size must be positive")

    @classmethod
    def from_env(cls, prefix: str = "RELAY_", **overrides: Any) -> "AppConfig":
        """
        Build a config from environment variables.

        ``RELAY_PORT=8000`` sets ``port``, ``RELAY_DEBUG=true`` sets ``debug``
        and so on. Keyword overrides take precedence over the environment.

        Raises:
            ConfigurationError: If a variable cannot be converted
        """
        values: Dict[str, Any] = {}
        for field in fields(cls):
            raw = os.environ.get(prefix + field.name.upper())
            if raw is not None:
                values[field.name] = _convert(field.name, raw)
        values.update(overrides)
        return cls(**values)

    def to_uvicorn_kwargs(self) -> Dict[str, Any]:
        """Arguments for ``uvicorn.run``."""
        return {
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level.lower(),
        }


def _convert(name: str, raw: str) -> Any:
    raw = raw.strip()
    try:
        if name == "debug":
            lowered = raw.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(raw)
        if name in ("port", "max_body_size"):
            return int(raw)
        if name == "request_timeout":
            return float(raw) if raw else None
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from None
    return raw
