"""Reverse routing — rebuild a concrete path from a resource.

Always uses the resource's first pattern, even when a later alternative
would match the same values.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, assert_never

from perch.errors import MissingParameter, NoPatterns
from perch.quoting import encode
from perch.routing.segments import Dynamic, DynamicRegex, Literal, PrefixEnd, Tail

if TYPE_CHECKING:
    from perch.routing.resource import Resource


def build_path(resource: Resource, values: Mapping[str, Any] | Iterable[Any]) -> str:
    """Build a path from *resource* and parameter *values*.

    *values* is either a mapping of capture name to value, or an iterable
    consumed positionally in pattern order. Values are converted with
    ``str()`` and percent-encoded; a tail value keeps its ``/`` separators.

    Raises ``MissingParameter`` if a capture has no value and
    ``NoPatterns`` if the resource has nothing to build from.
    """
    if not resource.sequences:
        msg = f"Resource {resource.name or resource!r} has no pattern to build from."
        raise NoPatterns(msg)

    sequence = resource.sequences[0]
    by_name = values if isinstance(values, Mapping) else None
    positional: Iterator[Any] | None = None if by_name is not None else iter(values)
    position = 0
    out: list[str] = []

    for seg in sequence:
        match seg:
            case Literal(text):
                out.append(text)
                continue
            case PrefixEnd():
                continue
            case Dynamic(name) | DynamicRegex(name, _) | Tail(name, _):
                pass
            case _:
                assert_never(seg)

        if by_name is not None:
            if name not in by_name:
                raise MissingParameter(name, resource.pattern)
            value = by_name[name]
        else:
            assert positional is not None
            try:
                value = next(positional)
            except StopIteration:
                raise MissingParameter(position, resource.pattern) from None
        position += 1

        safe = "/" if isinstance(seg, Tail) else ""
        out.append(encode(str(value), safe=safe))

    return "".join(out)
