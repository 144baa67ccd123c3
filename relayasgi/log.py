"""
Logging setup for RelayASGI.

Library modules only create loggers (``logging.getLogger(__name__)``);
applications call :func:`configure_logging` once to decide where the output
goes.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Union

from .exceptions import ConfigurationError

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_HANDLER_NAME = "relayasgi"


class JSONFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: Union[str, int] = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Attach a stream handler to the ``relayasgi`` logger.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Level name or number
        log_format: 'text' or 'json'

    Returns:
        The configured ``relayasgi`` logger
    """
    if log_format == "json":
        formatter: logging.Formatter = JSONFormatter()
    elif log_format == "text":
        formatter = logging.Formatter(TEXT_FORMAT)
    else:
        raise ConfigurationError(f"Invalid log format: {log_format}")

    root = logging.getLogger("relayasgi")
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return root
