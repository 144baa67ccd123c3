"""
CORS middleware for RelayASGI.
"""

from typing import Optional, Sequence

from ..context import RequestContext
from ..response import Response
from ..status import HTTPStatus
from .pipeline import CallNext


class CORSMiddleware:
    """
    Cross-Origin Resource Sharing middleware.

    Preflight requests (OPTIONS with an Access-Control-Request-Method header)
    are answered directly with 204 and never reach the route. Other requests
    get CORS headers added after the downstream chain has produced a response.

    Example:
        app.add_middleware(
            CORSMiddleware(
                allow_origins=["http://localhost:3000"],
                allow_credentials=True,
            )
        )
    """

    def __init__(
        self,
        allow_origins: Sequence[str] = ("*",),
        allow_methods: Sequence[str] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"),
        allow_headers: Sequence[str] = ("Content-Type", "Authorization", "X-Requested-With"),
        allow_credentials: bool = False,
        expose_headers: Sequence[str] = (),
        max_age: int = 600,
    ):
        self.allow_origins = list(allow_origins)
        if "*" in allow_methods:
            allow_methods = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")
        self.allow_methods = [method.upper() for method in allow_methods]
        self.allow_headers = list(allow_headers)
        self.allow_credentials = allow_credentials
        self.expose_headers = list(expose_headers)
        self.max_age = max_age

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        request = context.request
        origin = request.get_header("origin", "")

        if request.method == "OPTIONS" and request.get_header("access-control-request-method"):
            self._handle_preflight(context, origin)
            return

        await call_next()
        self._add_cors_headers(context.response, origin)

    def _handle_preflight(self, context: RequestContext, origin: str) -> None:
        response = context.respond(Response(status_code=HTTPStatus.HTTP_204_NO_CONTENT))
        if not self._add_cors_headers(response, origin):
            return

        response.headers["Access-Control-Allow-Methods"] = ", ".join(self.allow_methods)
        requested_headers = context.request.get_header("access-control-request-headers")
        if "*" in self.allow_headers and requested_headers:
            response.headers["Access-Control-Allow-Headers"] = requested_headers
        elif self.allow_headers:
            response.headers["Access-Control-Allow-Headers"] = ", ".join(self.allow_headers)
        response.headers["Access-Control-Max-Age"] = str(self.max_age)

    def allowed_origin(self, origin: str) -> Optional[str]:
        """Value for Access-Control-Allow-Origin, or None if the origin is not allowed."""
        if "*" in self.allow_origins:
            # Credentials cannot be combined with a literal "*"
            if self.allow_credentials and origin:
                return origin
            return "*"
        if origin in self.allow_origins:
            return origin
        return None

    def _add_cors_headers(self, response: Response, origin: str) -> bool:
        allowed = self.allowed_origin(origin)
        if allowed is None:
            return False

        response.headers["Access-Control-Allow-Origin"] = allowed
        if self.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"
        if self.expose_headers:
            response.headers["Access-Control-Expose-Headers"] = ", ".join(self.expose_headers)
        if allowed != "*":
            vary = response.headers.get("Vary", "")
            if "origin" not in vary.lower():
                response.headers["Vary"] = f"{vary}, Origin".lstrip(", ")
        return True
