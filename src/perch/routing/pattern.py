"""Pattern string parsing.

Turns ``"/users/{id:\\d+}/files/{path}*"`` into a tuple of segments and
rejects anything malformed while the route table is being built.
"""

import re
from collections.abc import Sequence

from perch.config import RouterConfig
from perch.errors import PatternError
from perch.routing.segments import (
    Dynamic,
    DynamicRegex,
    Literal,
    PatternSegment,
    PrefixEnd,
    Tail,
)

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*\Z")

_DEFAULT_CONFIG = RouterConfig()


def parse_pattern(
    pattern: str,
    *,
    prefix: bool = False,
    config: RouterConfig | None = None,
) -> tuple[PatternSegment, ...]:
    """Parse a pattern string into segments.

    Examples::

        "/users"            -> (Literal("/users"),)
        "/users/{id}"       -> (Literal("/users/"), Dynamic("id"))
        "/users/{id:\\d+}"  -> (Literal("/users/"), DynamicRegex("id", "\\d+"))
        "/files/{path}*"    -> (Literal("/files/"), Tail("path"))

    With *prefix*, a ``PrefixEnd`` terminates the sequence.

    Raises ``PatternError`` for stray or unbalanced braces, bad names,
    a tail that is not last, duplicate names, or a rejected inline regex.
    """
    config = config or _DEFAULT_CONFIG
    segments: list[PatternSegment] = []
    seen: set[str] = set()
    literal: list[str] = []
    i = 0
    length = len(pattern)

    while i < length:
        ch = pattern[i]
        if ch == "}":
            msg = f"Unmatched '}}' at offset {i} in pattern {pattern!r}"
            raise PatternError(msg)
        if ch != "{":
            literal.append(ch)
            i += 1
            continue

        end = _find_closing_brace(pattern, i)
        body = pattern[i + 1 : end]
        is_tail = end + 1 < length and pattern[end + 1] == "*"
        if is_tail and end + 2 != length:
            msg = f"Tail segment {{{body}}}* must be last in pattern {pattern!r}"
            raise PatternError(msg)

        if literal:
            segments.append(Literal("".join(literal)))
            literal = []

        segment = _parse_param(body, pattern, is_tail=is_tail, config=config)
        if segment.name in seen:
            msg = f"Duplicate capture name {segment.name!r} in pattern {pattern!r}"
            raise PatternError(msg)
        seen.add(segment.name)
        segments.append(segment)
        i = end + 2 if is_tail else end + 1

    if literal:
        segments.append(Literal("".join(literal)))
    if prefix:
        segments.append(PrefixEnd())
    return tuple(segments)


def parse_patterns(
    patterns: str | Sequence[str],
    *,
    prefix: bool = False,
    config: RouterConfig | None = None,
) -> tuple[tuple[PatternSegment, ...], ...]:
    """Parse one pattern or a list of alternatives, each independently."""
    if isinstance(patterns, str):
        patterns = [patterns]
    if not patterns:
        msg = "A resource needs at least one pattern."
        raise PatternError(msg)
    return tuple(parse_pattern(p, prefix=prefix, config=config) for p in patterns)


def _find_closing_brace(pattern: str, start: int) -> int:
    """Return the index of the ``}`` closing the ``{`` at *start*.

    Braces nest so that regex quantifiers like ``{2,4}`` stay inside the
    parameter. A backslash escapes the next character.
    """
    depth = 0
    i = start
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    msg = f"Unclosed '{{' at offset {start} in pattern {pattern!r}"
    raise PatternError(msg)


def _parse_param(
    body: str,
    pattern: str,
    *,
    is_tail: bool,
    config: RouterConfig,
) -> Dynamic | DynamicRegex | Tail:
    name, sep, regex = body.partition(":")
    if not _NAME_RE.match(name):
        msg = f"Invalid parameter name {name!r} in pattern {pattern!r}"
        raise PatternError(msg)

    if is_tail:
        if sep:
            msg = f"Tail segment {{{body}}}* cannot carry a regex in pattern {pattern!r}"
            raise PatternError(msg)
        return Tail(name, allow_empty=config.allow_empty_tail)

    if not sep:
        return Dynamic(name)
    if not regex:
        msg = f"Empty regex for parameter {name!r} in pattern {pattern!r}"
        raise PatternError(msg)
    check_inline_regex(regex, pattern, max_length=config.max_regex_length)
    return DynamicRegex(name, regex)


# -- Inline regex validation --

_UNBOUNDED = "unbounded"  # *, +, {m,}
_REPEAT = "repeat"  # {m} or {m,n} with more than one repetition
_OPTIONAL = "optional"  # ?, {0,1}, {1}

_COUNTED_RE = re.compile(r"\{(\d*)(,?)(\d*)\}")


def check_inline_regex(regex: str, pattern: str = "", *, max_length: int = 256) -> None:
    """Reject inline expressions that are invalid or not linear-time.

    Refused: backreferences, lookaround, conditionals, named groups, a
    repeated group that already holds an unbounded quantifier (``(a+)+``,
    ``(\\w+){12}``), and a repeated group holding an alternation
    (``(a|b)*``, ``(?:x|y){3}``). A group marked optional with ``?`` is
    not repeated.
    """
    where = f" in pattern {pattern!r}" if pattern else ""
    if len(regex) > max_length:
        msg = f"Inline regex longer than {max_length} characters{where}"
        raise PatternError(msg)
    try:
        re.compile(regex)
    except re.error as exc:
        msg = f"Invalid inline regex {regex!r}{where}: {exc}"
        raise PatternError(msg) from exc

    # Per open group: [holds an unbounded quantifier, holds an alternation]
    stack: list[list[bool]] = [[False, False]]
    in_class = False
    i = 0
    length = len(regex)
    while i < length:
        ch = regex[i]
        if ch == "\\":
            nxt = regex[i + 1] if i + 1 < length else ""
            if not in_class and nxt.isdigit() and nxt != "0":
                msg = f"Backreference in inline regex {regex!r}{where}"
                raise PatternError(msg)
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
            i += 1
            continue
        if ch == "[":
            in_class = True
            # "]" right after "[" or "[^" is a literal member
            if regex[i + 1 : i + 2] == "^":
                i += 1
            if regex[i + 1 : i + 2] == "]":
                i += 1
            i += 1
            continue
        if ch == "|":
            stack[-1][1] = True
            i += 1
            continue
        if ch == "(":
            _check_group_opening(regex, i, where)
            stack.append([False, False])
            i += 1
            continue
        if ch == ")":
            inner_unbounded, inner_alternation = stack.pop()
            quantifier = _quantifier(regex, i + 1)
            kind = quantifier[1] if quantifier else None
            repeated = kind in (_UNBOUNDED, _REPEAT)
            if repeated and inner_unbounded:
                msg = f"Nested unbounded quantifier in inline regex {regex!r}{where}"
                raise PatternError(msg)
            if repeated and inner_alternation:
                msg = f"Repeated alternation in inline regex {regex!r}{where}"
                raise PatternError(msg)
            parent = stack[-1]
            parent[0] = parent[0] or inner_unbounded or kind == _UNBOUNDED
            parent[1] = parent[1] or inner_alternation
            i = quantifier[0] if quantifier else i + 1
            continue
        quantifier = _quantifier(regex, i)
        if quantifier is not None:
            if quantifier[1] == _UNBOUNDED:
                stack[-1][0] = True
            i = quantifier[0]
            continue
        i += 1


def _check_group_opening(regex: str, i: int, where: str) -> None:
    head = regex[i + 1 : i + 5]
    if head.startswith(("?=", "?!", "?<=", "?<!")):
        msg = f"Lookaround in inline regex {regex!r}{where}"
    elif head.startswith("?P="):
        msg = f"Backreference in inline regex {regex!r}{where}"
    elif head.startswith(("?P<", "?<")):
        msg = f"Named group in inline regex {regex!r}{where}"
    elif head.startswith("?("):
        msg = f"Conditional group in inline regex {regex!r}{where}"
    else:
        return
    raise PatternError(msg)


def _quantifier(regex: str, i: int) -> tuple[int, str] | None:
    """If a quantifier starts at *i*, return the index after it and its kind."""
    if i >= len(regex):
        return None
    ch = regex[i]
    if ch in "*+":
        end, kind = i + 1, _UNBOUNDED
    elif ch == "?":
        end, kind = i + 1, _OPTIONAL
    elif ch == "{":
        match = _COUNTED_RE.match(regex, i)
        if match is None:
            return None
        low, comma, high = match.groups()
        if not low and not comma:
            return None
        end = match.end()
        if comma and not high:
            kind = _UNBOUNDED
        else:
            count = int(high) if comma else int(low)
            kind = _REPEAT if count > 1 else _OPTIONAL
    else:
        return None
    # lazy / possessive suffix
    if end < len(regex) and regex[end] in "?+":
        end += 1
    return end, kind
