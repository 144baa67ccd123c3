from .relayasgi import RelayASGI
from .config import AppConfig
from .context import RequestContext
from .exceptions import (
    RelayASGIError,
    ConfigurationError,
    MiddlewareError,
    ProtocolViolation,
    HTTPException,
)
from .request import Request
from .response import (
    Headers,
    Response,
    text_response,
    html_response,
    json_response,
    redirect_response,
    error_response,
)
from .status import HTTPStatus
from .routing import APIRouter, Route
from .middleware import Pipeline, MiddlewareChain

__version__ = "0.4.0"
__all__ = [
    "RelayASGI",
    "AppConfig",
    "RequestContext",
    "RelayASGIError",
    "ConfigurationError",
    "MiddlewareError",
    "ProtocolViolation",
    "HTTPException",
    "Request",
    "Headers",
    "Response",
    "HTTPStatus",
    "APIRouter",
    "Route",
    "Pipeline",
    "MiddlewareChain",
    "text_response",
    "html_response",
    "json_response",
    "redirect_response",
    "error_response",
]
