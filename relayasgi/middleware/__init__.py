"""
RelayASGI middleware package.

Provides the pipeline that runs middleware, the registration chain used by
applications, and the built-in middleware units.
"""

from .pipeline import CallNext, MiddlewareCallable, Pipeline, TerminalHandler
from .chain import MiddlewareChain
from .cors import CORSMiddleware
from .exception import ExceptionMiddleware
from .logger import RequestLoggerMiddleware
from .security import SecurityHeadersMiddleware
from .timeout import TimeoutMiddleware

__all__ = [
    "CallNext",
    "MiddlewareCallable",
    "Pipeline",
    "TerminalHandler",
    "MiddlewareChain",
    "CORSMiddleware",
    "ExceptionMiddleware",
    "RequestLoggerMiddleware",
    "SecurityHeadersMiddleware",
    "TimeoutMiddleware",
]
