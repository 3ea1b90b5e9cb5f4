"""
=============================================================================
ROUTE TABLE
=============================================================================

An ordered list of (regex pattern, handler) pairs. The first pattern that
*occurs anywhere* in the request path wins.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        MATCHING A PATH                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /reports/daily.json                                            │
    │        │                                                             │
    │        ▼   re.search(pattern, path), in registration order           │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  1. ^/health$          → health          no                  │   │
    │   │  2. \\.json$           → json_files      MATCH, stop here    │   │
    │   │  3. ^/reports/         → reports         (never tried)       │   │
    │   │  4. Exit               → exit_handler    (never tried)       │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   json_files(ctx)        ctx.match is the re.Match from step 2       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Patterns are NOT anchored. "Exit" matches "/Exit", "/app/Exit/now" and
"/Exited". Use ^ and $ when an exact path is wanted.

=============================================================================
THE EXIT ROUTE
=============================================================================

The pattern "Exit" is reserved. When the server starts it calls
``ensure_exit_route()``: if nobody registered "Exit", the default shutdown
handler is appended after all user routes. A user route registered under
"Exit" replaces the default.

Registration is only possible before the server starts. ``freeze()`` is
called at startup and later ``register()`` calls raise
``RouteTableFrozenError``.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple
import logging
import re


logger = logging.getLogger(__name__)


EXIT_PATTERN = "Exit"

# Handler: receives a HandlerContext, returns nothing, may raise.
Handler = Callable[..., None]


class RouteTableFrozenError(RuntimeError):
    """Raised when a route is registered after the server has started."""


@dataclass(frozen=True)
class Route:
    """A registered pattern and the handler it dispatches to."""

    pattern: str
    handler: Handler
    regex: re.Pattern = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return getattr(self.handler, "__name__", type(self.handler).__name__)


@dataclass(frozen=True)
class RouteMatch:
    """
    Result of a successful lookup.

    ``match`` is the ``re.Match`` object, so handlers can use capture
    groups: pattern ``^/users/(?P<id>\\d+)`` gives ``params == {"id": "42"}``
    for ``/users/42``.
    """

    route: Route
    match: re.Match

    @property
    def handler(self) -> Handler:
        return self.route.handler

    @property
    def params(self) -> Dict[str, str]:
        return {k: v for k, v in self.match.groupdict().items() if v is not None}


class RouteTable:
    """
    Ordered regex route table.

    Usage:
        routes = RouteTable()
        routes.register(r"^/hello", hello)

        @routes.route(r"\\.json$")
        def json_files(ctx):
            ...

        routes.ensure_exit_route(exit_handler)
        routes.freeze()

        match = routes.match_first("/data/report.json")
        match.handler(ctx)
    """

    def __init__(self, ignore_case: bool = False):
        self.ignore_case = ignore_case
        self._routes: List[Route] = []
        self._frozen = False

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, pattern: str, handler: Handler) -> Route:
        """
        Append a route.

        Args:
            pattern: Regular expression searched for in the request path.
            handler: Callable taking a HandlerContext.

        Returns:
            The new Route.

        Raises:
            RouteTableFrozenError: If the table was frozen by server start.
            re.error: If the pattern does not compile.
            TypeError: If handler is not callable.
        """
        if self._frozen:
            raise RouteTableFrozenError(
                f"Cannot register {pattern!r}: routes are fixed once the server starts"
            )
        if not callable(handler):
            raise TypeError(f"Handler for {pattern!r} is not callable: {handler!r}")

        flags = re.IGNORECASE if self.ignore_case else 0
        route = Route(pattern=pattern, handler=handler, regex=re.compile(pattern, flags))
        self._routes.append(route)
        logger.debug(f"Registered route {pattern!r} -> {route.name}")
        return route

    def route(self, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register()``."""
        def decorator(handler: Handler) -> Handler:
            self.register(pattern, handler)
            return handler
        return decorator

    def update(self, routes: Dict[str, Handler]) -> None:
        """Register every pattern of a mapping, in the mapping's order."""
        for pattern, handler in routes.items():
            self.register(pattern, handler)

    def has_pattern(self, pattern: str) -> bool:
        return any(route.pattern == pattern for route in self._routes)

    def ensure_exit_route(self, handler: Handler) -> Optional[Route]:
        """
        Append the reserved "Exit" route unless one is registered already.

        Returns:
            The added Route, or None if the caller supplied their own.
        """
        if self.has_pattern(EXIT_PATTERN):
            return None
        return self.register(EXIT_PATTERN, handler)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match_first(self, path: str) -> Optional[RouteMatch]:
        """
        Find the earliest-registered route whose pattern occurs in ``path``.

        Returns:
            RouteMatch, or None when nothing matches.
        """
        for route in self._routes:
            match = route.regex.search(path)
            if match:
                return RouteMatch(route=route, match=match)
        return None

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def routes(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(tuple(self._routes))

    def describe(self) -> List[str]:
        """One printable line per route, in match order."""
        width = max((len(route.pattern) for route in self._routes), default=0)
        return [
            f"{i:>3}. {route.pattern:<{width}}  -> {route.name}"
            for i, route in enumerate(self._routes, start=1)
        ]
