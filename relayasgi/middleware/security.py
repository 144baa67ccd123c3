"""
Security headers middleware for RelayASGI.
"""

from typing import Dict, Optional

from ..context import RequestContext
from .pipeline import CallNext


class SecurityHeadersMiddleware:
    """
    Adds common security headers to every response.

    Headers are placed on the context before the downstream chain runs, so
    they survive short-circuits further down. A handler that sets one of
    these headers itself keeps its own value.
    """

    def __init__(
        self,
        frame_options: Optional[str] = "DENY",
        content_type_options: Optional[str] = "nosniff",
        xss_protection: Optional[str] = "1; mode=block",
        referrer_policy: Optional[str] = "strict-origin-when-cross-origin",
        hsts_max_age: Optional[int] = None,
        hsts_include_subdomains: bool = True,
    ):
        self.headers: Dict[str, str] = {}
        if frame_options:
            self.headers["X-Frame-Options"] = frame_options
        if content_type_options:
            self.headers["X-Content-Type-Options"] = content_type_options
        if xss_protection:
            self.headers["X-XSS-Protection"] = xss_protection
        if referrer_policy:
            self.headers["Referrer-Policy"] = referrer_policy
        if hsts_max_age is not None:
            hsts = f"max-age={int(hsts_max_age)}"
            if hsts_include_subdomains:
                hsts += "; includeSubDomains"
            self.headers["Strict-Transport-Security"] = hsts

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        for name, value in self.headers.items():
            context.set_header(name, value)
        await call_next()
