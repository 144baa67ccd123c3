"""
Request logging middleware for RelayASGI.

Logs every request on the ``relayasgi.access`` logger:

    --> GET /api/users
    <-- GET /api/users 200 (3.12ms)

Configure the output with standard logging, e.g.::

    logging.getLogger("relayasgi.access").setLevel(logging.INFO)
"""

import json
import logging
import time
from typing import Any, Dict, Union

from ..context import RequestContext
from ..exceptions import ConfigurationError
from .pipeline import CallNext


class RequestLoggerMiddleware:
    """Logs request start, completion status and duration."""

    def __init__(
        self,
        logger_name: str = "relayasgi.access",
        log_format: str = "text",
        level: int = logging.INFO,
    ):
        if log_format not in ("text", "json"):
            raise ConfigurationError(f"Invalid log format: {log_format}")
        self.logger = logging.getLogger(logger_name)
        self.log_format = log_format
        self.level = level

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        request = context.request
        start = time.perf_counter()
        if self.log_format == "text":
            self.logger.log(self.level, "--> %s %s", request.method, request.path)

        try:
            await call_next()
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.error(
                "<-- %s %s failed after %.2fms", request.method, request.path, duration_ms
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        # The app answers an unanswered request itself, so there is no status yet
        status = context.response.status_code if context.responded else "-"
        if self.log_format == "json":
            self.logger.log(self.level, json.dumps(self._entry(context, status, duration_ms)))
        else:
            self.logger.log(
                self.level,
                "<-- %s %s %s (%.2fms)",
                request.method,
                request.path,
                status,
                duration_ms,
            )

    @staticmethod
    def _entry(context: RequestContext, status: Union[int, str], duration_ms: float) -> Dict[str, Any]:
        request = context.request
        client = request.client
        return {
            "method": request.method,
            "path": request.path,
            "query": request.query_string,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "client": client[0] if client else None,
            "user_agent": request.get_header("user-agent"),
        }
