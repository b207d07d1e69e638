"""Resource compilation.

Turns parsed pattern sequences into a matcher. All-literal resources get
a ``StaticMatcher`` (plain string comparison, no regex engine). Anything
with a capture gets a ``RegexMatcher``: one anchored expression per
alternative with a generated named group per capture.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from perch.errors import PatternError
from perch.routing.segments import (
    Dynamic,
    DynamicRegex,
    Literal,
    PatternSegment,
    PrefixEnd,
    Tail,
)

logger = logging.getLogger("perch.routing")

# Zero-width boundary after a prefix: next char is "/" or input ends.
_BOUNDARY = r"(?=/|\Z)"
# A prefix written with a trailing "/" requires one but leaves it unconsumed.
_SLASH_AHEAD = r"(?=/)"


@dataclass(frozen=True, slots=True)
class StaticAlternative:
    """A literal alternative.

    ``literal`` excludes a trailing ``/`` of a prefix pattern; in that case
    ``needs_slash`` is set and the ``/`` must follow the literal.
    """

    literal: str
    needs_slash: bool = False


@dataclass(frozen=True, slots=True)
class StaticMatcher:
    """Matcher for resources without captures."""

    alternatives: tuple[StaticAlternative, ...]
    prefix: bool


@dataclass(frozen=True, slots=True)
class RegexAlternative:
    """One compiled alternative.

    ``groups`` holds, per capture in pattern order, the generated group
    name and the capture name.
    """

    regex: re.Pattern[str]
    groups: tuple[tuple[str, str], ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for _, name in self.groups)


@dataclass(frozen=True, slots=True)
class RegexMatcher:
    """Matcher for resources with at least one capture."""

    alternatives: tuple[RegexAlternative, ...]
    prefix: bool


type Matcher = StaticMatcher | RegexMatcher


def is_static(sequence: Sequence[PatternSegment]) -> bool:
    """True if *sequence* has no captures."""
    return all(isinstance(seg, Literal | PrefixEnd) for seg in sequence)


def compile_matcher(
    sequences: Sequence[Sequence[PatternSegment]],
    *,
    prefix: bool,
) -> Matcher:
    """Compile parsed alternatives into a matcher.

    Order of *sequences* is preserved as the order alternatives are tried.
    Raises ``PatternError`` if a generated expression does not compile.
    """
    if not sequences:
        msg = "A resource needs at least one pattern."
        raise PatternError(msg)

    if all(is_static(seq) for seq in sequences):
        matcher: Matcher = StaticMatcher(
            alternatives=tuple(_compile_static(seq, prefix=prefix) for seq in sequences),
            prefix=prefix,
        )
    else:
        matcher = RegexMatcher(
            alternatives=tuple(_compile_regex(seq, prefix=prefix) for seq in sequences),
            prefix=prefix,
        )
    logger.debug(
        "compiled %s (%d alternative%s, prefix=%s)",
        type(matcher).__name__,
        len(sequences),
        "" if len(sequences) == 1 else "s",
        prefix,
    )
    return matcher


def _compile_static(sequence: Sequence[PatternSegment], *, prefix: bool) -> StaticAlternative:
    literal = "".join(seg.text for seg in sequence if isinstance(seg, Literal))
    if prefix and literal.endswith("/"):
        return StaticAlternative(literal=literal[:-1], needs_slash=True)
    return StaticAlternative(literal=literal)


def _compile_regex(sequence: Sequence[PatternSegment], *, prefix: bool) -> RegexAlternative:
    parts: list[str] = []
    groups: list[tuple[str, str]] = []
    last = len(sequence) - 1
    # False once the expression already ends on a boundary
    needs_boundary = True

    for index, seg in enumerate(sequence):
        match seg:
            case Literal(text):
                # A prefix literal ending in "/" right before PrefixEnd
                # keeps the slash for the next routing stage.
                if prefix and text.endswith("/") and _only_prefix_end_after(sequence, index):
                    parts.append(re.escape(text[:-1]))
                    parts.append(_SLASH_AHEAD)
                    needs_boundary = False
                else:
                    parts.append(re.escape(text))
            case Dynamic(name):
                group = f"_{len(groups)}"
                parts.append(f"(?P<{group}>[^/]+)")
                groups.append((group, name))
            case DynamicRegex(name, pattern):
                group = f"_{len(groups)}"
                if not seg.allows_slash:
                    pattern = _forbid_slash(pattern)
                parts.append(f"(?P<{group}>(?:{pattern}))")
                groups.append((group, name))
            case Tail(name, allow_empty):
                group = f"_{len(groups)}"
                parts.append(f"(?P<{group}>.*)" if allow_empty else f"(?P<{group}>.+)")
                groups.append((group, name))
                needs_boundary = False
            case PrefixEnd():
                if index != last:
                    msg = "PrefixEnd must terminate the pattern."
                    raise PatternError(msg)
                if needs_boundary:
                    parts.append(_BOUNDARY)
            case _:
                assert_never(seg)

    if not prefix:
        parts.append(r"\Z")

    source = "".join(parts)
    try:
        regex = re.compile(source, re.DOTALL)
    except re.error as exc:
        msg = f"Pattern compiles to an invalid expression {source!r}: {exc}"
        raise PatternError(msg) from exc
    return RegexAlternative(regex=regex, groups=tuple(groups))


def _only_prefix_end_after(sequence: Sequence[PatternSegment], index: int) -> bool:
    rest = sequence[index + 1 :]
    return len(rest) == 1 and isinstance(rest[0], PrefixEnd)


# Shorthand classes that match "/", narrowed to exclude it
_SLASHLESS_ESCAPES = {"S": r"[^\s/]", "W": r"[^\w/]", "D": r"[^\d/]"}


def _forbid_slash(pattern: str) -> str:
    """Rewrite an inline expression so that nothing it matches contains ``/``.

    ``.`` and the ``\\S``, ``\\W``, ``\\D`` shorthands become negated classes
    without ``/``. A positive class may reach ``/`` through a range such as
    ``[ -~]``, so it is guarded by a ``(?!/)`` lookahead.
    """
    out: list[str] = []
    i = 0
    length = len(pattern)
    while i < length:
        ch = pattern[i]
        if ch == "\\":
            escape = pattern[i : i + 2]
            out.append(_SLASHLESS_ESCAPES.get(escape[1:], escape))
            i += 2
        elif ch == ".":
            out.append("[^/]")
            i += 1
        elif ch == "[":
            end = _class_end(pattern, i)
            body = pattern[i + 1 : end]
            out.append(f"[{body}/]" if body.startswith("^") else f"(?:(?!/)[{body}])")
            i = end + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _class_end(pattern: str, start: int) -> int:
    """Index of the ``]`` closing the character class opened at *start*."""
    i = start + 1
    if pattern[i : i + 1] == "^":
        i += 1
    # "]" first in the class is a member
    if pattern[i : i + 1] == "]":
        i += 1
    while pattern[i] != "]":
        i += 2 if pattern[i] == "\\" else 1
    return i
