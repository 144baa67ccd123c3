"""
Exception handling middleware for RelayASGI.

Register it first so that its "after" phase sees every failure raised
further down the chain and turns it into a JSON error response.
"""

import logging
import traceback
from typing import Any, Dict

from ..context import RequestContext
from ..exceptions import ConfigurationError, HTTPException, MiddlewareError
from ..response import error_response, json_response
from ..status import HTTPStatus
from .pipeline import CallNext

logger = logging.getLogger(__name__)


class ExceptionMiddleware:
    """
    Converts downstream exceptions into error responses.

    Modes:
        production: generic message, no internals leaked
        debug: exception type, message and traceback in the body
    """

    MODES = ("production", "debug")

    def __init__(self, mode: str = "production"):
        if mode not in self.MODES:
            raise ConfigurationError(
                f"Invalid ExceptionMiddleware mode: {mode}. Must be one of {self.MODES}"
            )
        self.mode = mode

    @property
    def debug(self) -> bool:
        return self.mode == "debug"

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        try:
            await call_next()
        except HTTPException as exc:
            context.respond(
                error_response(exc.status_code, exc.detail, headers=exc.headers)
            )
        except MiddlewareError as exc:
            logger.warning(
                "Middleware error on %s %s: %s",
                context.request.method,
                context.request.path,
                exc.message,
            )
            details = exc.details or None
            if self.debug:
                context.respond(self._debug_response(exc, exc.status_code))
            else:
                context.respond(error_response(exc.status_code, exc.message, details))
        except Exception as exc:
            logger.exception(
                "Unhandled error on %s %s", context.request.method, context.request.path
            )
            if self.debug:
                context.respond(
                    self._debug_response(exc, HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR)
                )
            else:
                context.respond(
                    json_response(
                        {"error": {"message": "Internal Server Error"}},
                        status_code=HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR,
                    )
                )

    def _debug_response(self, exc: Exception, status_code: int):
        error: Dict[str, Any] = {
            "type": type(exc).__name__,
            "message": str(exc),
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }
        return json_response({"error": error}, status_code=status_code)
