"""
Timeout middleware for RelayASGI.
"""

import asyncio
import logging

from ..context import RequestContext
from ..exceptions import ConfigurationError
from ..response import error_response
from ..status import HTTPStatus
from .pipeline import CallNext

logger = logging.getLogger(__name__)


class _DownstreamTimeout(Exception):
    """Carries a timeout raised downstream past ``wait_for``."""

    def __init__(self, error: BaseException):
        super().__init__(error)
        self.error = error


class TimeoutMiddleware:
    """
    Bounds the time the downstream chain may take.

    When ``timeout`` seconds pass before ``call_next`` returns, the
    downstream work is cancelled and a 504 response is produced instead.
    A ``TimeoutError`` raised by a handler or unit itself propagates
    unchanged. Place it near the front of the chain.
    """

    def __init__(self, timeout: float):
        if timeout is None or timeout <= 0:
            raise ConfigurationError(f"Timeout must be a positive number, got {timeout!r}")
        self.timeout = timeout

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        async def downstream() -> None:
            try:
                await call_next()
            except (asyncio.TimeoutError, TimeoutError) as e:
                raise _DownstreamTimeout(e) from e

        try:
            await asyncio.wait_for(downstream(), timeout=self.timeout)
        except _DownstreamTimeout as e:
            raise e.error from None
        except asyncio.TimeoutError:
            logger.warning(
                "%s %s timed out after %.2fs",
                context.request.method,
                context.request.path,
                self.timeout,
            )
            context.respond(
                error_response(
                    HTTPStatus.HTTP_504_GATEWAY_TIMEOUT,
                    f"Request did not complete within {self.timeout:g}s",
                )
            )
