"""Compiled route resources.

A ``Resource`` is one or more alternative patterns compiled into a single
matcher, plus an optional name for reverse routing. Built once while the
route table is assembled; immutable and shareable afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from perch.config import RouterConfig
from perch.routing.compiler import Matcher, StaticMatcher, compile_matcher
from perch.routing.matcher import MatchResult, match_path
from perch.routing.pattern import parse_patterns
from perch.routing.path import PathState
from perch.routing.reverse import build_path
from perch.routing.segments import Dynamic, DynamicRegex, PatternSegment, Tail


class Resource:
    """A compiled route pattern.

    Usage::

        user = Resource("/users/{id}", name="user")
        user.is_match("/users/42")             # True
        user.match("/users/42").as_dict()      # {"id": "42"}
        user.build_path({"id": 7})             # "/users/7"

        pets = Resource(["/cat/{id}", "/dog/{id}"])
        api = Resource.prefix("/api")
        api.find_match("/api/users")           # 4
    """

    __slots__ = ("_config", "_matcher", "_name", "_patterns", "_prefix", "_sequences")

    def __init__(
        self,
        patterns: str | Sequence[str],
        *,
        prefix: bool = False,
        name: str | None = None,
        config: RouterConfig | None = None,
    ) -> None:
        if isinstance(patterns, str):
            patterns = [patterns]
        self._patterns: tuple[str, ...] = tuple(patterns)
        self._prefix = prefix
        self._name = name
        self._config = config
        self._sequences = parse_patterns(self._patterns, prefix=prefix, config=config)
        self._matcher: Matcher = compile_matcher(self._sequences, prefix=prefix)

    @classmethod
    def prefix(
        cls,
        patterns: str | Sequence[str],
        *,
        name: str | None = None,
        config: RouterConfig | None = None,
    ) -> Resource:
        """A resource matching a leading portion of the path."""
        return cls(patterns, prefix=True, name=name, config=config)

    @classmethod
    def root_prefix(
        cls,
        pattern: str,
        *,
        name: str | None = None,
        config: RouterConfig | None = None,
    ) -> Resource:
        """A prefix resource, with ``/`` prepended to a non-empty relative pattern."""
        if pattern and not pattern.startswith("/"):
            pattern = "/" + pattern
        return cls(pattern, prefix=True, name=name, config=config)

    # -- Introspection --

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def pattern(self) -> str:
        """The first (canonical) pattern string."""
        return self._patterns[0]

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def sequences(self) -> tuple[tuple[PatternSegment, ...], ...]:
        """Parsed segments, one tuple per alternative."""
        return self._sequences

    @property
    def segments(self) -> tuple[PatternSegment, ...]:
        """Parsed segments of the canonical pattern."""
        return self._sequences[0]

    @property
    def capture_names(self) -> tuple[str, ...]:
        """Capture names of the canonical pattern, left to right."""
        return tuple(
            seg.name for seg in self.segments if isinstance(seg, Dynamic | DynamicRegex | Tail)
        )

    @property
    def is_prefix(self) -> bool:
        return self._prefix

    @property
    def is_static(self) -> bool:
        """True if no alternative has a capture."""
        return isinstance(self._matcher, StaticMatcher)

    # -- Matching --

    def match(self, text: str, pos: int = 0) -> MatchResult | None:
        """Match *text* starting at *pos*; returns consumed length and captures."""
        return match_path(self._matcher, text, pos)

    def is_match(self, path: str) -> bool:
        return self.match(path) is not None

    def find_match(self, path: str) -> int | None:
        """Length of the matched portion of *path*, or None."""
        result = self.match(path)
        return None if result is None else result.consumed

    def capture_match_info(self, state: PathState) -> bool:
        """Match the unconsumed part of *state* and advance it on success."""
        result = self.match(state.path, state.skip)
        if result is None:
            return False
        state.advance(result.consumed, result.captures)
        return True

    # -- Reverse routing --

    def build_path(self, values: Mapping[str, Any] | Iterable[Any] = ()) -> str:
        """Rebuild a concrete path from the canonical pattern."""
        return build_path(self, values)

    # -- Composition --

    def join(self, other: Resource) -> Resource:
        """Nest *other* under this resource's canonical pattern.

        The result has one alternative per pattern of *other*, and takes
        its prefix flag and name from *other*::

            Resource.prefix("/api").join(Resource("/users/{id}"))
            # Resource("/api/users/{id}")
        """
        base = self.pattern
        joined = [
            base + p if not base.endswith("/") or not p.startswith("/") else base + p[1:]
            for p in other.patterns
        ]
        return Resource(joined, prefix=other.is_prefix, name=other.name, config=other._config)

    def __repr__(self) -> str:
        kind = "prefix" if self._prefix else "exact"
        patterns = self._patterns[0] if len(self._patterns) == 1 else list(self._patterns)
        if self._name:
            return f"Resource({patterns!r}, {kind}, name={self._name!r})"
        return f"Resource({patterns!r}, {kind})"
