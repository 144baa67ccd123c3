"""
Exception types for RelayASGI.
"""

import http
from typing import Any, Dict, Optional


class RelayASGIError(Exception):
    """Base class for all RelayASGI errors."""


class ConfigurationError(RelayASGIError, ValueError):
    """
    Raised at build time when required inputs are missing or invalid.

    Examples: a pipeline without a terminal handler, a non-callable
    middleware, an invalid route pattern or a bad configuration value.
    """


class MiddlewareError(RelayASGIError):
    """
    Failure raised by a middleware unit or terminal handler.

    The pipeline never wraps or swallows errors; this type exists so units
    have a common way to signal failure with extra information attached.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ProtocolViolation(RelayASGIError):
    """
    Raised when a middleware unit misuses its ``call_next`` capability.

    Calling ``call_next`` more than once, or after the unit has returned,
    breaks the at-most-once execution guarantee of the pipeline.
    """

    def __init__(self, message: str, *, unit: Any = None, index: Optional[int] = None):
        super().__init__(message)
        self.unit = unit
        self.index = index


class HTTPException(RelayASGIError):
    """
    Raised by handlers or middleware to produce a specific error response.

    Example:
        @app.get("/users/{user_id:int}")
        async def get_user(user_id: int):
            if user_id not in users:
                raise HTTPException(404, "User not found")
            return users[user_id]
    """

    def __init__(
        self,
        status_code: int,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if detail is None:
            try:
                detail = http.HTTPStatus(status_code).phrase
            except ValueError:
                detail = "HTTP Error"
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.headers = headers or {}

    def __repr__(self) -> str:
        return f"HTTPException(status_code={self.status_code}, detail={self.detail!r})"
