"""
Route class for RelayASGI framework.

Represents an individual route with path, methods, handler and the route's
own middleware pipeline.
"""

import re
import uuid
import inspect
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..context import RequestContext
from ..exceptions import ConfigurationError
from ..middleware.pipeline import MiddlewareCallable, Pipeline
from ..response import Response
from ..status import HTTPStatus

VALID_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}

# Handler parameters filled from the request rather than the path
INJECTED_PARAMS = {"request", "context"}

PARAM_TYPES: Dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "uuid": uuid.UUID,
    "path": "path",  # marker: matches the rest of the path, slashes included
}

PARAM_REGEX: Dict[Any, str] = {
    str: r"([^/]+)",
    int: r"(\d+)",
    float: r"(\d+(?:\.\d+)?)",
    uuid.UUID: r"([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})",
    "path": r"(.*)",
}


class Route:
    """
    A single route: path pattern, HTTP method(s), handler and route middleware.

    Supports dynamic path segments with type conversion and priority.
    Route middleware runs after the application middleware, only for
    requests matched to this route:

        route = app.get("/admin")(admin_handler)
        route.use(auth_middleware).use(admin_middleware)
    """

    def __init__(
        self,
        path: str,
        handler: Callable[..., Awaitable[Any]],
        methods: Optional[Set[str]] = None,
        name: Optional[str] = None,
        priority: int = 0,
        middleware: Optional[Iterable[MiddlewareCallable]] = None,
    ):
        """
        Initialize a Route.

        Args:
            path: URL path pattern (e.g., "/users", "/users/{user_id:int}", "/files/{filepath:path}")
            handler: Async function that handles the request
            methods: Set of HTTP methods this route accepts (default: {"GET"})
            name: Optional name for the route
            priority: Route priority for matching order (higher = checked first, default: 0)
            middleware: Route-level middleware units, in execution order

        Raises:
            ConfigurationError: If the pattern, methods or handler signature are invalid
        """
        self.path = path.rstrip("/") or "/"
        self.handler = handler
        self.methods = {method.upper() for method in (methods or {"GET"})}
        self.name = name or getattr(handler, "__name__", None)
        self.priority = priority

        if invalid_methods := self.methods - VALID_METHODS:
            raise ConfigurationError(f"Invalid HTTP methods: {invalid_methods}")
        if not inspect.iscoroutinefunction(handler):
            raise ConfigurationError(
                f"Route handler for '{self.path}' must be an async function"
            )

        self.path_regex, self.param_types = self._compile_path_pattern()
        self.segment_count = self._count_path_segments(self.path)
        self.has_path_parameter = "path" in self.param_types.values()

        self._inspect_handler_signature()

        self._pipeline = Pipeline.build(middleware, self._invoke_handler)

    @property
    def middleware(self) -> Tuple[MiddlewareCallable, ...]:
        return self._pipeline.units

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def use(self, middleware: MiddlewareCallable) -> "Route":
        """
        Add route-level middleware after any already attached.

        Returns:
            The route itself, so calls can be chained
        """
        self._pipeline = self._pipeline.append(middleware)
        return self

    def with_prefix(self, prefix: str) -> "Route":
        """Copy of this route mounted under ``prefix``, keeping its middleware."""
        return Route(
            prefix.rstrip("/") + self.path,
            self.handler,
            methods=set(self.methods),
            name=self.name,
            priority=self.priority,
            middleware=self.middleware,
        )

    def _inspect_handler_signature(self) -> None:
        """
        Work out which handler parameters are injected and check them against the pattern.

        Every path parameter must have a handler parameter of the same name,
        and every handler parameter other than ``request``/``context`` must
        be a path parameter.
        """
        sig = inspect.signature(self.handler)
        self.handler_params = list(sig.parameters.keys())
        self.expects_request = "request" in self.handler_params
        self.expects_context = "context" in self.handler_params
        handler_path_params = [p for p in self.handler_params if p not in INJECTED_PARAMS]

        route_params = set(self.param_types)
        missing_in_handler = route_params - set(handler_path_params)
        if missing_in_handler:
            raise ConfigurationError(
                f"Route pattern '{self.path}' defines path parameters {missing_in_handler} "
                f"but handler function does not have corresponding parameters. "
                f"Handler parameters: {handler_path_params}"
            )
        missing_in_route = set(handler_path_params) - route_params
        if missing_in_route:
            raise ConfigurationError(
                f"Handler function expects path parameters {missing_in_route} "
                f"but route pattern '{self.path}' only defines {route_params}"
            )

        self.expected_path_params = handler_path_params
        self._validate_parameter_types(sig)

    def _validate_parameter_types(self, sig: inspect.Signature) -> None:
        """Check that annotated handler parameters agree with the route parameter types."""
        for param_name in self.expected_path_params:
            annotation = sig.parameters[param_name].annotation
            if annotation is inspect.Parameter.empty:
                continue

            route_type = self.param_types[param_name]
            expected = str if route_type == "path" else route_type
            if annotation is not expected:
                expected_name = "str" if route_type == "path" else expected.__name__
                raise ConfigurationError(
                    f"Parameter '{param_name}' type mismatch: "
                    f"route expects {expected_name} but handler annotated as {annotation}"
                )

    def _compile_path_pattern(self) -> Tuple[re.Pattern, Dict[str, Any]]:
        """
        Compile the path pattern into an anchored regex.

        Supports:
        - Static paths: /users
        - Dynamic segments: /users/{user_id}, /users/{user_id:int}
        - Path parameters: /files/{filepath:path} (captures remaining path)

        Returns:
            Tuple of (compiled regex, parameter types in declaration order)
        """
        if "*" in self.path:
            raise ConfigurationError(
                "Wildcard patterns (*/**) are not supported. Use path parameters instead: {name:path}"
            )

        param_types: Dict[str, Any] = {}
        regex_parts: List[str] = []
        index = 0
        while index < len(self.path):
            if self.path[index] == "{":
                end = self.path.find("}", index)
                if end == -1:
                    raise ConfigurationError(f"Unclosed parameter at position {index}")
                name, param_type = self._parse_parameter(self.path[index + 1 : end])
                if name in param_types:
                    raise ConfigurationError(f"Duplicate path parameter '{name}'")
                param_types[name] = param_type
                regex_parts.append(PARAM_REGEX[param_type])
                index = end + 1
            else:
                regex_parts.append(re.escape(self.path[index]))
                index += 1

        return re.compile("^" + "".join(regex_parts) + "$"), param_types

    @staticmethod
    def _parse_parameter(param_spec: str) -> Tuple[str, Any]:
        """Parse 'user_id' or 'user_id:int' into (name, type)."""
        name, _, type_name = param_spec.partition(":")
        if not name.isidentifier():
            raise ConfigurationError(f"Invalid path parameter name: '{name}'")
        if not type_name:
            return name, str
        if type_name not in PARAM_TYPES:
            raise ConfigurationError(f"Unsupported parameter type: {type_name}")
        return name, PARAM_TYPES[type_name]

    @staticmethod
    def _count_path_segments(path: str) -> int:
        """Number of '/'-separated segments; the root path counts as one."""
        clean_path = path.strip("/")
        return clean_path.count("/") + 1 if clean_path else 1

    def matches(self, path: str, method: str) -> Tuple[bool, Dict[str, Any]]:
        """
        Check if this route matches the given path and method.

        Returns:
            Tuple of (matches: bool, path_params: dict)
        """
        if method.upper() not in self.methods:
            return False, {}
        return self.matches_path(path)

    def matches_path(self, path: str) -> Tuple[bool, Dict[str, Any]]:
        """Match the path alone, ignoring the method."""
        normalized_path = path.rstrip("/") or "/"

        # Cheap segment-count check before running the regex
        if not self.has_path_parameter:
            if self._count_path_segments(normalized_path) != self.segment_count:
                return False, {}
        else:
            # '/files/' must still match '/files/{path:path}' with an empty path
            match = self.path_regex.match(path)
            if match:
                return self._extract_path_parameters(match)

        match = self.path_regex.match(normalized_path)
        if not match:
            return False, {}
        return self._extract_path_parameters(match)

    def _extract_path_parameters(self, match: re.Match) -> Tuple[bool, Dict[str, Any]]:
        """Convert captured groups to their declared types."""
        path_params: Dict[str, Any] = {}
        for position, (param_name, param_type) in enumerate(self.param_types.items(), 1):
            raw_value = match.group(position)
            try:
                if param_type in (str, "path"):
                    path_params[param_name] = raw_value
                else:
                    path_params[param_name] = param_type(raw_value)
            except (ValueError, TypeError):
                return False, {}
        return True, path_params

    async def handle(self, context: RequestContext) -> None:
        """
        Run the route middleware and then the handler.

        ``context.request.path_params`` must already hold this route's parameters.
        """
        await self._pipeline.run(context)

    async def _invoke_handler(self, context: RequestContext) -> None:
        """Terminal handler of the route pipeline: call the handler with injected arguments."""
        kwargs: Dict[str, Any] = {}
        if self.expects_request:
            kwargs["request"] = context.request
        if self.expects_context:
            kwargs["context"] = context
        for param_name in self.expected_path_params:
            if param_name in context.request.path_params:
                kwargs[param_name] = context.request.path_params[param_name]

        result = await self.handler(**kwargs)
        context.respond(self._to_response(result))

    @staticmethod
    def _to_response(result: Any) -> Response:
        if isinstance(result, Response):
            return result
        if result is None:
            return Response(status_code=HTTPStatus.HTTP_204_NO_CONTENT)
        return Response(result)

    def __repr__(self) -> str:
        methods_str = ",".join(sorted(self.methods))
        priority_str = f" priority={self.priority}" if self.priority != 0 else ""
        middleware_str = f" middleware={len(self._pipeline)}" if len(self._pipeline) else ""
        return f"<Route {methods_str} {self.path}{priority_str}{middleware_str}>"
