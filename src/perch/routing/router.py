"""Ordered router.

Resources are registered during setup and frozen by ``compile()``.
Matching tries them in registration order and the first match wins, so
registration order is the priority order, across prefix and exact
resources alike.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from perch.config import RouterConfig
from perch.errors import UnknownResource
from perch.quoting import DEFAULT_QUOTER, Quoter
from perch.routing.matcher import MatchResult
from perch.routing.path import Capture, PathState
from perch.routing.resource import Resource

logger = logging.getLogger("perch.routing")


@dataclass(frozen=True, slots=True)
class RouteMatch[T]:
    """Result of ``Router.match``."""

    value: T
    resource: Resource
    captures: tuple[Capture, ...]
    remaining: str

    @property
    def params(self) -> dict[str, str]:
        return {c.name: c.value for c in self.captures}


class Router[T]:
    """Ordered (resource, value) table.

    Usage::

        router = Router()
        router.path("/users/{id}", "user_detail")
        router.prefix("/static", "static_files")
        router.compile()

        state = PathState("/users/42")
        router.recognize(state)   # "user_detail"
        state["id"]               # "42"
    """

    __slots__ = ("_by_name", "_compiled", "_config", "_quoter", "_routes")

    def __init__(self, config: RouterConfig | None = None) -> None:
        self._config = config
        self._quoter = Quoter(config.requote_protected) if config else DEFAULT_QUOTER
        self._routes: list[tuple[Resource, T]] = []
        self._by_name: dict[str, Resource] = {}
        self._compiled = False

    def add(self, resource: Resource, value: T) -> None:
        """Register *resource* with its *value*. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append((resource, value))
        if resource.name is not None:
            # First registration keeps the name, matching first-wins dispatch.
            self._by_name.setdefault(resource.name, resource)

    def path(self, patterns: str | Sequence[str], value: T, *, name: str | None = None) -> Resource:
        """Register an exact-match resource built from *patterns*."""
        resource = Resource(patterns, name=name, config=self._config)
        self.add(resource, value)
        return resource

    def prefix(self, patterns: str | Sequence[str], value: T, *, name: str | None = None) -> Resource:
        """Register a prefix resource built from *patterns*."""
        resource = Resource.prefix(patterns, name=name, config=self._config)
        self.add(resource, value)
        return resource

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True
        logger.debug("router compiled with %d route(s)", len(self._routes))

    @property
    def routes(self) -> list[tuple[Resource, T]]:
        """All registered (resource, value) pairs in priority order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    # -- Matching --

    def path_state(self, raw: str | bytes) -> PathState:
        """A fresh state for a raw request path, requoted with this router's table."""
        return PathState.from_raw(raw, self._quoter)

    def recognize(self, state: PathState) -> T | None:
        """Return the value of the first resource matching *state*.

        On success *state* is advanced past the matched part and the
        captures are appended. On failure *state* is left untouched.
        """
        return self.recognize_fn(state, None)

    def recognize_fn(
        self,
        state: PathState,
        check: Callable[[T, MatchResult], bool] | None,
    ) -> T | None:
        """Like ``recognize``, but *check* may veto a matching candidate.

        A vetoed candidate is skipped and scanning continues with the next
        resource in registration order.
        """
        found = self._find(state, check)
        if found is None:
            return None
        _, value = found
        return value

    def match(self, path: str) -> RouteMatch[T] | None:
        """Match a whole *path*; returns value, captures and the unconsumed suffix."""
        state = PathState(path)
        found = self._find(state, None)
        if found is None:
            return None
        resource, value = found
        return RouteMatch(
            value=value,
            resource=resource,
            captures=state.captures,
            remaining=state.remaining(),
        )

    def _find(
        self,
        state: PathState,
        check: Callable[[T, MatchResult], bool] | None,
    ) -> tuple[Resource, T] | None:
        for resource, value in self._routes:
            result = resource.match(state.path, state.skip)
            if result is None:
                continue
            if check is not None and not check(value, result):
                continue
            logger.debug("%r matched %r at skip=%d", resource, state.path, state.skip)
            state.advance(result.consumed, result.captures)
            return resource, value
        return None

    # -- Reverse routing --

    def url_for(self, name: str, values: Mapping[str, Any] | Iterable[Any] = ()) -> str:
        """Build a path for the resource registered under *name*.

        Raises ``UnknownResource`` if no resource has that name.
        """
        resource = self._by_name.get(name)
        if resource is None:
            raise UnknownResource(name)
        return resource.build_path(values)
