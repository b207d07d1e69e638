"""Pattern segment variants.

A parsed pattern is a tuple of these. The set is closed: every consumer
branches on it with ``match`` and ends with ``assert_never``.
"""

import re
from dataclasses import dataclass

# Escaped spellings of "/" in an inline expression
_SLASH_ESCAPE_RE = re.compile(r"\\(?:x2[fF]|u002[fF]|U0000002[fF]|057|N\{SOLIDUS\})")


@dataclass(frozen=True, slots=True)
class Literal:
    """Text matched verbatim, slashes included: ``/users/``."""

    text: str


@dataclass(frozen=True, slots=True)
class Dynamic:
    """One non-empty span without ``/``: ``{id}``."""

    name: str


@dataclass(frozen=True, slots=True)
class DynamicRegex:
    """A span constrained by an inline expression: ``{id:\\d+}``.

    The capture may only contain ``/`` when *pattern* itself mentions one,
    literally or as an escape such as ``\\x2f``.
    """

    name: str
    pattern: str

    @property
    def allows_slash(self) -> bool:
        return "/" in self.pattern or _SLASH_ESCAPE_RE.search(self.pattern) is not None


@dataclass(frozen=True, slots=True)
class Tail:
    """The rest of the path, slashes included: ``{path}*``. Always last."""

    name: str
    allow_empty: bool = False


@dataclass(frozen=True, slots=True)
class PrefixEnd:
    """Marks the end of a prefix pattern: the match must stop on a boundary."""


type PatternSegment = Literal | Dynamic | DynamicRegex | Tail | PrefixEnd
