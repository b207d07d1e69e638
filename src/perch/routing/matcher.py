"""Match and capture.

Runs a compiled matcher against path text starting at an offset and
returns how much was consumed plus the decoded captures. Never raises on
bad input: a capture that fails to percent-decode is simply no match.
"""

import logging
from dataclasses import dataclass
from typing import assert_never

from perch.errors import DecodeError
from perch.quoting import decode
from perch.routing.compiler import Matcher, RegexMatcher, StaticMatcher
from perch.routing.path import Capture

logger = logging.getLogger("perch.routing")


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Result of a successful match.

    ``consumed`` never includes the ``/`` that ends a prefix match; it
    stays in the path for the next routing stage.
    """

    consumed: int
    captures: tuple[Capture, ...] = ()

    def as_dict(self) -> dict[str, str]:
        return {c.name: c.value for c in self.captures}


def match_path(matcher: Matcher, text: str, pos: int = 0) -> MatchResult | None:
    """Match *text* from *pos* against *matcher*; first alternative wins."""
    match matcher:
        case StaticMatcher():
            return _match_static(matcher, text, pos)
        case RegexMatcher():
            return _match_regex(matcher, text, pos)
        case _:
            assert_never(matcher)


def _match_static(matcher: StaticMatcher, text: str, pos: int) -> MatchResult | None:
    at_end = pos == len(text)
    for alt in matcher.alternatives:
        # An empty remainder still matches "/" (the root of a nested router)
        root = alt.literal == "" if alt.needs_slash else alt.literal == "/" and not matcher.prefix
        if at_end and root:
            return MatchResult(consumed=0)

        if not text.startswith(alt.literal, pos):
            continue
        end = pos + len(alt.literal)

        if not matcher.prefix:
            if end == len(text):
                return MatchResult(consumed=len(alt.literal))
            continue

        if alt.needs_slash:
            if text.startswith("/", end):
                return MatchResult(consumed=len(alt.literal))
            continue
        if end == len(text) or text[end] == "/":
            return MatchResult(consumed=len(alt.literal))
    return None


def _match_regex(matcher: RegexMatcher, text: str, pos: int) -> MatchResult | None:
    for alt in matcher.alternatives:
        m = alt.regex.match(text, pos)
        if m is None:
            continue

        captures: list[Capture] = []
        for group, name in alt.groups:
            start, end = m.span(group)
            raw = text[start:end]
            if "%" not in raw:
                captures.append(Capture(name=name, source=text, start=start, end=end))
                continue
            try:
                decoded = decode(raw)
            except DecodeError as exc:
                logger.debug("capture %r rejected: %s", name, exc)
                return None
            captures.append(Capture(name=name, source=text, start=start, end=end, decoded=decoded))
        return MatchResult(consumed=m.end() - pos, captures=tuple(captures))
    return None
