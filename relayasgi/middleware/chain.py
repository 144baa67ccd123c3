"""
Middleware chain implementation for RelayASGI.

The MiddlewareChain class collects middleware at registration time and builds
the execution pipeline.
"""

from typing import List, Tuple

from .pipeline import MiddlewareCallable, Pipeline, TerminalHandler


class MiddlewareChain:
    """
    Manages the ordered registration of middleware for RelayASGI applications.

    The middleware chain follows the "onion" pattern where middleware are executed
    in the same order as registration, with each middleware wrapping the next one.
    """

    def __init__(self):
        """Initialize an empty middleware chain."""
        self._middlewares: List[MiddlewareCallable] = []

    def add(self, middleware: MiddlewareCallable):
        """
        Add middleware to the chain.

        Args:
            middleware: A callable with signature (context, call_next) -> None
        """
        self._middlewares.append(middleware)

    def build(self, endpoint: TerminalHandler, *outer: MiddlewareCallable) -> Pipeline:
        """
        Build a pipeline around the given endpoint.

        The first registered middleware becomes the outermost layer.

        Args:
            endpoint: The terminal handler (usually router.handle_request)
            outer: Extra units placed in front of the registered ones

        Returns:
            A Pipeline ready to run requests

        Example:
            If middleware are registered as [A, B, C], the execution flow will be:
            Request -> A -> B -> C -> endpoint -> C -> B -> A -> Response
        """
        return Pipeline.build(list(outer) + self._middlewares, endpoint)

    @property
    def middlewares(self) -> Tuple[MiddlewareCallable, ...]:
        return tuple(self._middlewares)

    def count(self) -> int:
        """Return the number of middleware in the chain."""
        return len(self._middlewares)

    def clear(self):
        """Remove all middleware from the chain."""
        self._middlewares.clear()
