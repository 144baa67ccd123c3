"""
RelayASGI - an ASGI framework built around an ordered middleware pipeline.
"""

import logging
from types import SimpleNamespace
from typing import Callable, Dict, Any, Awaitable, Iterable, Optional, Set, List

from .config import AppConfig
from .context import RequestContext
from .exceptions import HTTPException
from .log import configure_logging
from .request import Request
from .response import Response, error_response
from .status import HTTPStatus
from .routing import APIRouter
from .middleware import MiddlewareChain, MiddlewareCallable, Pipeline, TimeoutMiddleware

logger = logging.getLogger(__name__)


class RelayASGI:
    """RelayASGI application class with routing and middleware support."""

    def __init__(
        self,
        router: Optional[APIRouter] = None,
        config: Optional[AppConfig] = None,
    ):
        """Initialize the RelayASGI application.

        Args:
            router: Optional router instance. If not provided, a new APIRouter is created.
            config: Optional configuration. Defaults to ``AppConfig()``.
        """
        self.config = config or AppConfig()
        self.api_router = router or APIRouter()
        self.middleware_chain = MiddlewareChain()
        self.state = SimpleNamespace()
        self._pipeline: Optional[Pipeline] = None

        # Lifespan event handlers
        self._startup_handlers: List[Callable[[], Awaitable[None]]] = []
        self._shutdown_handlers: List[Callable[[], Awaitable[None]]] = []

        # First startup handler builds the pipeline
        self._startup_handlers.append(self._build_pipeline)

    @property
    def pipeline(self) -> Optional[Pipeline]:
        """The application pipeline, or None before startup."""
        return self._pipeline

    async def _build_pipeline(self):
        """Build the application pipeline during startup."""
        if self._pipeline is None:
            outer = []
            if self.config.request_timeout is not None:
                outer.append(TimeoutMiddleware(self.config.request_timeout))
            self._pipeline = self.middleware_chain.build(
                self.api_router.handle_request, *outer
            )
            logger.debug("Built application pipeline %r", self._pipeline)

    def include_router(
        self,
        router: APIRouter,
        prefix: str = "",
    ) -> None:
        """
        Include another router in this application.

        Args:
            router: APIRouter to include
            prefix: URL prefix for the included router
        """
        self.api_router.include_router(router, prefix)

    def add_middleware(self, middleware: MiddlewareCallable):
        """
        Add middleware to the application.

        Middleware run in registration order; the first one added is the
        outermost layer.

        Args:
            middleware: Middleware callable with signature (context, call_next)
        Raises:
            RuntimeError: If middleware is added after application startup
        """
        if self._pipeline is not None:
            raise RuntimeError(
                "Cannot add middleware after application startup. Add all middleware before starting the server."
            )
        self.middleware_chain.add(middleware)

    def middleware(self):
        """
        Decorator for registering middleware.

        Usage:
            @app.middleware()
            async def my_middleware(context, call_next):
                # pre-processing
                await call_next()
                # post-processing
                context.response.headers["X-Processed"] = "yes"
        """

        def decorator(func: MiddlewareCallable) -> MiddlewareCallable:
            self.add_middleware(func)
            return func

        return decorator

    # Lifespan event handlers
    def _register_event_handler(
        self, event_type: str, func: Callable[[], Awaitable[None]]
    ) -> None:
        """
        Internal method to register an event handler.

        Raises:
            ValueError: If event_type is not "startup" or "shutdown"
        """
        if event_type == "startup":
            self._startup_handlers.append(func)
        elif event_type == "shutdown":
            self._shutdown_handlers.append(func)
        else:
            raise ValueError(
                f"Invalid event type: {event_type}. Must be 'startup' or 'shutdown'"
            )

    def on_event(self, event_type: str):
        """
        Register a function to run on application startup or shutdown.

        Example:
            @app.on_event("startup")
            async def startup_event():
                print("Application starting up!")
        """

        def decorator(
            func: Callable[[], Awaitable[None]],
        ) -> Callable[[], Awaitable[None]]:
            self._register_event_handler(event_type, func)
            return func

        return decorator

    def add_event_handler(
        self, event_type: str, func: Callable[[], Awaitable[None]]
    ) -> None:
        """Add an event handler for startup or shutdown."""
        self._register_event_handler(event_type, func)

    async def _run_startup_handlers(self) -> None:
        """Run all registered startup handlers."""
        for handler in self._startup_handlers:
            await handler()

    async def _run_shutdown_handlers(self) -> None:
        """Run all registered shutdown handlers."""
        for handler in self._shutdown_handlers:
            await handler()

    # Route decorator methods
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
            path: URL path pattern (supports {param}, {param:type})
            methods: Set of HTTP methods this route accepts
            name: Optional name for the route
            priority: Route priority for matching order (higher = checked first)
            middleware: Route-level middleware, run after the app middleware
        """
        return self.api_router.route(path, methods, name, priority, middleware)

    def get(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for GET routes."""
        return self.api_router.get(path, name, priority, middleware)

    def post(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for POST routes."""
        return self.api_router.post(path, name, priority, middleware)

    def put(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for PUT routes."""
        return self.api_router.put(path, name, priority, middleware)

    def delete(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for DELETE routes."""
        return self.api_router.delete(path, name, priority, middleware)

    def patch(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for PATCH routes."""
        return self.api_router.patch(path, name, priority, middleware)

    def head(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for HEAD routes."""
        return self.api_router.head(path, name, priority, middleware)

    def options(self, path: str, name: Optional[str] = None, priority: int = 0, middleware=None):
        """Decorator for OPTIONS routes."""
        return self.api_router.options(path, name, priority, middleware)

    def serve(self, host: Optional[str] = None, port: Optional[int] = None, **kwargs: Any) -> None:
        """
        Configure logging and serve the application with uvicorn.

        Host and port default to the values in ``self.config``; extra keyword
        arguments are passed to ``uvicorn.run``.
        """
        import uvicorn

        configure_logging(self.config.log_level, self.config.log_format)
        options = self.config.to_uvicorn_kwargs()
        if host is not None:
            options["host"] = host
        if port is not None:
            options["port"] = port
        options.update(kwargs)
        uvicorn.run(self, **options)

    async def __call__(self, scope: Dict[str, Any], receive: Callable, send: Callable):
        """
        ASGI application entrypoint.

        Args:
            scope: Connection scope information
            receive: Callable to receive messages from the client
            send: Callable to send messages to the client
        """
        if scope["type"] == "http":
            await self._handle_http(scope, receive, send)
        elif scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
        else:
            await self._handle_unsupported_protocol(send)

    async def _handle_lifespan(
        self, scope: Dict[str, Any], receive: Callable, send: Callable
    ):
        """
        Handle the ASGI lifespan protocol for startup and shutdown events.
        """
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self._run_startup_handlers()
                except Exception as e:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self._run_shutdown_handlers()
                except Exception as e:
                    logger.exception("Shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_unsupported_protocol(self, send: Callable):
        """
        Handle unsupported protocol types.
        """
        # For non-HTTP protocols, just close the connection
        await send({"type": "websocket.close", "code": 1000})

    async def _handle_http(
        self, scope: Dict[str, Any], receive: Callable, send: Callable
    ):
        """
        Handle an HTTP request by running it through the application pipeline.
        """
        if self._pipeline is None:
            # Servers that skip the lifespan protocol never ran startup
            await self._build_pipeline()

        try:
            request = await Request.from_receive(
                scope, receive, max_body_size=self.config.max_body_size
            )
            context = RequestContext(request, app=self)
            await self._pipeline.run(context)  # noqa
            if context.responded:
                response = context.response
            else:
                logger.error(
                    "No response produced for %s %s", request.method, request.path
                )
                response = error_response(
                    HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR,
                    "No response was produced for this request",
                )
        except HTTPException as e:
            response = error_response(e.status_code, e.detail, headers=e.headers)
        except Exception as e:
            logger.exception(
                "Unhandled error while processing %s %s",
                scope.get("method"),
                scope.get("path"),
            )
            message = f"Internal Server Error: {e}" if self.config.debug else None
            response = error_response(HTTPStatus.HTTP_500_INTERNAL_SERVER_ERROR, message)

        await self._send_response(send, response)

    async def _send_response(self, send: Callable, response: Response):
        """
        Send an ASGI HTTP response.
        """
        asgi_response = response.to_asgi_response()
        await send(
            {
                "type": "http.response.start",
                "status": asgi_response["status"],
                "headers": asgi_response["headers"],
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": asgi_response["body"],
            }
        )
