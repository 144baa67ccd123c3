"""
APIRouter for RelayASGI framework.

Groups routes under a common prefix, finds the route for a request and acts
as the terminal handler of the application pipeline.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..context import RequestContext
from ..middleware.pipeline import MiddlewareCallable
from ..response import error_response
from ..status import HTTPStatus
from .route import Route

logger = logging.getLogger(__name__)


class APIRouter:
    """
    Collection of routes sharing a URL prefix.

    Example:
        users = APIRouter(prefix="/users")

        @users.get("/{user_id:int}")
        async def get_user(user_id: int):
            return {"id": user_id}

        app.include_router(users, prefix="/api")   # -> /api/users/{user_id:int}
    """

    def __init__(self, prefix: str = ""):
        """
        Args:
            prefix: URL prefix applied to every route registered on this router
        """
        self.prefix = prefix.rstrip("/")
        self.routes: List[Route] = []
        self._ordered: Optional[List[Route]] = None

    def add_route(
        self,
        path: str,
        handler: Callable,
        methods: Optional[Set[str]] = None,
        name: Optional[str] = None,
        priority: int = 0,
        middleware: Optional[Iterable[MiddlewareCallable]] = None,
    ) -> Route:
        """Create a route under this router's prefix and register it."""
        route = Route(
            self.prefix + path,
            handler,
            methods=methods,
            name=name,
            priority=priority,
            middleware=middleware,
        )
        self._register(route)
        return route

    def _register(self, route: Route) -> None:
        self.routes.append(route)
        self._ordered = None

    def include_router(self, router: "APIRouter", prefix: str = "") -> None:
        """
        Copy another router's routes into this one.

        Routes end up at ``self.prefix + prefix + <route path>``; route
        middleware is preserved.
        """
        mount = self.prefix + prefix.rstrip("/")
        for route in router.routes:
            self._register(route.with_prefix(mount))

    def route(
        self,
        path: str,
        methods: Optional[Set[str]] = None,
        name: Optional[str] = None,
        priority: int = 0,
        middleware: Optional[Iterable[MiddlewareCallable]] = None,
    ):
        """
        Decorator for registering routes.

        Args:
            path: URL path pattern (supports {param} and {param:type})
            methods: Set of HTTP methods this route accepts
            name: Optional name for the route
            priority: Route priority for matching order (higher = checked first)
            middleware: Route-level middleware units

        Returns:
            Decorator function. The decorated handler is returned unchanged;
            the Route is available as ``handler.route``.
        """

        def decorator(func):
            route = self.add_route(path, func, methods, name, priority, middleware)
            func.route = route
            return func

        return decorator

    def get(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for GET routes."""
        return self.route(path, {"GET"}, name, priority, middleware)

    def post(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for POST routes."""
        return self.route(path, {"POST"}, name, priority, middleware)

    def put(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for PUT routes."""
        return self.route(path, {"PUT"}, name, priority, middleware)

    def delete(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for DELETE routes."""
        return self.route(path, {"DELETE"}, name, priority, middleware)

    def patch(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for PATCH routes."""
        return self.route(path, {"PATCH"}, name, priority, middleware)

    def head(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for HEAD routes."""
        return self.route(path, {"HEAD"}, name, priority, middleware)

    def options(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for OPTIONS routes."""
        return self.route(path, {"OPTIONS"}, name, priority, middleware)

    @property
    def ordered_routes(self) -> List[Route]:
        """Routes in matching order: higher priority first, then registration order."""
        if self._ordered is None:
            self._ordered = sorted(self.routes, key=lambda route: -route.priority)
        return self._ordered

    def find_route(self, path: str, method: str) -> Optional[Tuple[Route, Dict[str, Any]]]:
        """
        Find the route for a request.

        HEAD requests fall back to the GET route for the path when no route
        declares HEAD itself.

        Returns:
            (route, path_params) or None if nothing matches
        """
        for route in self.ordered_routes:
            matched, params = route.matches(path, method)
            if matched:
                return route, params
        if method.upper() == "HEAD":
            return self.find_route(path, "GET")
        return None

    def allowed_methods(self, path: str) -> Set[str]:
        """All methods accepted by routes whose pattern matches ``path``."""
        methods: Set[str] = set()
        for route in self.ordered_routes:
            if route.matches_path(path)[0]:
                methods |= route.methods
        if "GET" in methods:
            methods.add("HEAD")
        return methods

    async def handle_request(self, context: RequestContext) -> None:
        """
        Terminal handler of the application pipeline.

        Dispatches to the matching route, or responds 404 / 405.
        """
        request = context.request
        result = self.find_route(request.path, request.method)
        if result is None:
            allowed = self.allowed_methods(request.path)
            if allowed:
                logger.debug("Method %s not allowed for %s", request.method, request.path)
                context.respond(
                    error_response(
                        HTTPStatus.HTTP_405_METHOD_NOT_ALLOWED,
                        f"Method {request.method} not allowed for {request.path}",
                        headers={"Allow": ", ".join(sorted(allowed))},
                    )
                )
            else:
                context.respond(
                    error_response(
                        HTTPStatus.HTTP_404_NOT_FOUND, f"No route for {request.path}"
                    )
                )
            return

        route, params = result
        request.path_params = params
        context.route = route
        await route.handle(context)
        if request.method.upper() == "HEAD" and "HEAD" not in route.methods:
            context.response.body = b""
