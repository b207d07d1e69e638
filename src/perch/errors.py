"""Perch exception hierarchy.

Shared across the pattern parser, compiler, router, and reverse builder
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class PatternError(PerchError):
    """Raised when a route pattern cannot be parsed or compiled.

    Always raised while the route table is being built, never while
    matching. A route table containing an invalid pattern does not build.
    """


class DecodeError(PerchError, ValueError):
    """Raised when percent-encoded text cannot be decoded.

    Either an escape is malformed (``%`` not followed by two hex digits)
    or the decoded bytes are not valid UTF-8.
    """


class BuildError(PerchError):
    """Base for reverse path generation failures."""


@dataclass(frozen=True, slots=True)
class MissingParameter(BuildError):
    """No value was supplied for a capture in the pattern.

    ``name`` is the capture name for keyword building, or the zero-based
    position for positional building.
    """

    name: str | int
    pattern: str = ""

    def __str__(self) -> str:
        if self.pattern:
            return f"Missing value for {self.name!r} in pattern {self.pattern!r}"
        return f"Missing value for {self.name!r}"


class NoPatterns(BuildError):
    """The resource has no pattern sequence to build a path from."""


@dataclass(frozen=True, slots=True)
class UnknownResource(BuildError):
    """No resource with the requested name is registered."""

    name: str

    def __str__(self) -> str:
        return f"No resource named {self.name!r}"
