"""
Middleware pipeline for RelayASGI.

A Pipeline composes an ordered sequence of middleware units around a
terminal handler and runs them once per request:

    Request -> A -> B -> C -> terminal -> C -> B -> A -> Response

Each unit receives the request context and a ``call_next`` capability.
Awaiting ``call_next()`` runs the rest of the chain; not awaiting it
short-circuits everything downstream. Code after ``await call_next()`` runs
while the chain unwinds, in reverse registration order.
"""

import logging
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Tuple

from ..context import RequestContext
from ..exceptions import ConfigurationError, ProtocolViolation

logger = logging.getLogger(__name__)

CallNext = Callable[[], Awaitable[None]]
TerminalHandler = Callable[[RequestContext], Awaitable[None]]


class MiddlewareCallable(Protocol):
    """Protocol for middleware units in RelayASGI."""

    async def __call__(self, context: RequestContext, call_next: CallNext) -> None:
        """
        Process a request through the middleware.

        Args:
            context: The request context, shared by the whole chain
            call_next: Runs the remaining middleware and the terminal handler.
                Await it at most once.
        """
        ...


def describe(unit: object) -> str:
    """Readable name for a middleware unit or handler."""
    name = getattr(unit, "__qualname__", None) or getattr(unit, "__name__", None)
    if name is None:
        name = type(unit).__name__
    return name


class Pipeline:
    """
    An immutable sequence of middleware units plus one terminal handler.

    Build it once with :meth:`build`, then call :meth:`run` for every
    request. Runs never share state, so one pipeline may serve any number of
    concurrent requests.
    """

    __slots__ = ("_units", "_terminal")

    def __init__(self, units: Tuple[MiddlewareCallable, ...], terminal: TerminalHandler):
        self._units = units
        self._terminal = terminal

    @classmethod
    def build(
        cls,
        units: Optional[Iterable[MiddlewareCallable]],
        terminal: Optional[TerminalHandler],
    ) -> "Pipeline":
        """
        Build a pipeline.

        Args:
            units: Middleware units in execution order. May be empty.
            terminal: Handler invoked when every unit calls ``call_next``.

        Raises:
            ConfigurationError: If the terminal handler is missing, or any
                unit or the terminal is not callable
        """
        if terminal is None:
            raise ConfigurationError("A pipeline requires a terminal handler")
        if not callable(terminal):
            raise ConfigurationError(f"Terminal handler is not callable: {terminal!r}")

        units = tuple(units or ())
        for index, unit in enumerate(units):
            if not callable(unit):
                raise ConfigurationError(
                    f"Middleware at position {index} is not callable: {unit!r}"
                )
        return cls(units, terminal)

    @property
    def units(self) -> Tuple[MiddlewareCallable, ...]:
        return self._units

    @property
    def terminal(self) -> TerminalHandler:
        return self._terminal

    def append(self, unit: MiddlewareCallable) -> "Pipeline":
        """Return a new pipeline with ``unit`` added after the existing units."""
        return Pipeline.build(self._units + (unit,), self._terminal)

    async def run(self, context: RequestContext) -> None:
        """
        Run the chain for one request.

        On return, ``context.response`` holds the finalized response. Errors
        raised by a unit or the terminal propagate unchanged.
        """
        await self._dispatch(0, context)

    async def _dispatch(self, index: int, context: RequestContext) -> None:
        if index == len(self._units):
            await self._terminal(context)
            return

        unit = self._units[index]
        called = False
        closed = False

        async def call_next() -> None:
            nonlocal called
            if closed:
                raise ProtocolViolation(
                    f"{describe(unit)} called call_next after it returned",
                    unit=unit,
                    index=index,
                )
            if called:
                raise ProtocolViolation(
                    f"{describe(unit)} called call_next more than once",
                    unit=unit,
                    index=index,
                )
            called = True
            await self._dispatch(index + 1, context)

        try:
            await unit(context, call_next)
        finally:
            closed = True

        if not called:
            logger.debug(
                "Chain short-circuited by %s at position %d for %r",
                describe(unit),
                index,
                context,
            )

    def __len__(self) -> int:
        return len(self._units)

    def __repr__(self) -> str:
        names = ", ".join(describe(unit) for unit in self._units)
        return f"<Pipeline [{names}] -> {describe(self._terminal)}>"
