"""
=============================================================================
ROUTE DISPATCHER
=============================================================================

Maps (method, path) to a handler. Pure: no sockets, no file I/O, no body.

=============================================================================
MATCHING
=============================================================================

Two kinds of route:

    EXACT    "/user-agent"  matches only "/user-agent"
    PREFIX   "/echo/"       matches "/echo/", "/echo/abc", "/echo/a/b", ...

Resolution order for a request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. Method known to the router?       no  ──► 405                   │
    │              │ yes                                                   │
    │              ▼                                                       │
    │   2. Exact route for (method, path)?   yes ──► handler               │
    │              │ no                                                    │
    │              ▼                                                       │
    │   3. Longest matching prefix route?    yes ──► handler               │
    │              │ no                                                    │
    │              ▼                                                       │
    │   4. 404                                                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The method check comes first, so ``PATCH /nope`` is a 405 and not a 404.

Handlers receive the whole request and strip their own prefix; the router
does not rewrite the path.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]


class MatchKind(Enum):
    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True)
class Route:
    """
    A registered route.

        Route(method="GET", path="/echo/", kind=MatchKind.PREFIX, handler=echo)
    """

    method: str
    path: str
    kind: MatchKind
    handler: Handler

    def matches(self, path: str) -> bool:
        if self.kind is MatchKind.EXACT:
            return path == self.path
        return path.startswith(self.path)


class Router:
    """
    Method + path dispatcher.

    Usage:

        router = Router()

        @router.get("/user-agent")
        def user_agent(request):
            ...

        router.add_route("GET", "/echo/", echo, kind=MatchKind.PREFIX)

        response = router.handle(request)
    """

    def __init__(self):
        self._exact: Dict[tuple[str, str], Route] = {}
        self._prefix: Dict[str, List[Route]] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(
        self,
        method: str,
        path: str,
        handler: Handler,
        kind: MatchKind = MatchKind.EXACT,
    ) -> Route:
        """
        Register ``handler`` for ``method`` on ``path``.

        Raises:
            ValueError: The path does not start with "/", or the same exact
                route is registered twice.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        method = method.upper()
        route = Route(method=method, path=path, kind=kind, handler=handler)

        if kind is MatchKind.EXACT:
            if (method, path) in self._exact:
                raise ValueError(f"Duplicate route: {method} {path}")
            self._exact[(method, path)] = route
        else:
            routes = self._prefix.setdefault(method, [])
            routes.append(route)
            # Longest prefix first
            routes.sort(key=lambda r: len(r.path), reverse=True)

        logger.debug(f"Registered {method} {path} ({kind.value})")
        return route

    def get(self, path: str, kind: MatchKind = MatchKind.EXACT) -> Callable[[Handler], Handler]:
        """Decorator registering a GET route."""
        def decorator(handler: Handler) -> Handler:
            self.add_route("GET", path, handler, kind)
            return handler
        return decorator

    def post(self, path: str, kind: MatchKind = MatchKind.EXACT) -> Callable[[Handler], Handler]:
        """Decorator registering a POST route."""
        def decorator(handler: Handler) -> Handler:
            self.add_route("POST", path, handler, kind)
            return handler
        return decorator

    # =========================================================================
    # DISPATCH
    # =========================================================================

    @property
    def methods(self) -> set[str]:
        """Every method with at least one route."""
        return {method for method, _ in self._exact} | set(self._prefix)

    def match(self, method: str, path: str) -> Optional[Route]:
        """The route for (method, path), or None."""
        route = self._exact.get((method, path))
        if route is not None:
            return route

        for route in self._prefix.get(method, ()):
            if route.matches(path):
                return route
        return None

    def resolve(self, method: str, path: str) -> Handler:
        """
        Handler for (method, path), including the 404 / 405 fallbacks.

        Never raises for an unknown route.
        """
        if method not in self.methods:
            return _method_not_allowed

        route = self.match(method, path)
        if route is None:
            return _not_found
        return route.handler

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch ``request`` and return the handler's response."""
        return self.resolve(request.method, request.path)(request)


def _method_not_allowed(request: HTTPRequest) -> HTTPResponse:
    return method_not_allowed()


def _not_found(request: HTTPRequest) -> HTTPResponse:
    return not_found()
