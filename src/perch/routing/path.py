"""Per-request path state.

A ``PathState`` wraps the path being routed, how much of it outer routers
have consumed (``skip``), and the captures collected so far. Nested
routers each match against ``remaining()`` and ``advance()`` the state.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from perch.quoting import DEFAULT_QUOTER, Quoter


@dataclass(frozen=True, slots=True)
class Capture:
    """A captured ``name=value`` pair.

    The value is either borrowed (offsets into the routed path, sliced on
    read) or owned (``decoded`` set, because percent-decoding changed the
    text or the value never came from the path).
    """

    name: str
    source: str = ""
    start: int = 0
    end: int = 0
    decoded: str | None = None

    @classmethod
    def owned(cls, name: str, value: str) -> Capture:
        return cls(name=name, decoded=value)

    @property
    def is_borrowed(self) -> bool:
        return self.decoded is None

    @property
    def value(self) -> str:
        if self.decoded is not None:
            return self.decoded
        return self.source[self.start : self.end]

    def __repr__(self) -> str:
        return f"Capture({self.name!r}, {self.value!r})"


class PathState:
    """Path being routed plus captures accumulated across nested matches.

    Usage::

        state = PathState("/api/users/42")
        api.recognize(state)        # prefix "/api" consumes 4 chars
        users.recognize(state)      # "/users/{id}" matches "/users/42"
        state["id"]                 # "42"

    Owned by one request; not thread-safe and never needs to be.
    """

    __slots__ = ("_captures", "_path", "_skip")

    def __init__(self, path: str) -> None:
        self._path = path
        self._skip = 0
        self._captures: list[Capture] = []

    @classmethod
    def from_raw(cls, raw: str | bytes, quoter: Quoter | None = None) -> PathState:
        """Build a state from a raw request path, requoting it first.

        Bytes are treated as UTF-8; if they are not valid UTF-8 the
        undecodable bytes are percent-escaped so nothing is lost.
        """
        quoter = quoter or DEFAULT_QUOTER
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                raw = "".join(chr(b) if b < 0x80 else f"%{b:02X}" for b in raw)
        requoted = quoter.requote_str(raw)
        return cls(raw if requoted is None else requoted)

    @property
    def path(self) -> str:
        """The full path text, including the consumed part."""
        return self._path

    @property
    def skip(self) -> int:
        """Number of characters consumed by outer routers."""
        return self._skip

    @property
    def captures(self) -> tuple[Capture, ...]:
        """Captures in the order they were made, outermost router first."""
        return tuple(self._captures)

    def remaining(self) -> str:
        """The unconsumed suffix of the path."""
        return self._path[self._skip :]

    def advance(self, skip_delta: int, captures: Iterable[Capture] = ()) -> None:
        """Consume *skip_delta* more characters and append *captures*."""
        if skip_delta < 0:
            msg = f"skip_delta must be non-negative, got {skip_delta}"
            raise ValueError(msg)
        if self._skip + skip_delta > len(self._path):
            msg = f"Cannot advance {skip_delta} past the end of {self._path!r} (skip={self._skip})"
            raise ValueError(msg)
        self._skip += skip_delta
        self._captures.extend(captures)

    def reset(self) -> None:
        """Forget skip and captures; the path itself is kept."""
        self._skip = 0
        self._captures.clear()

    def clear_captures(self) -> None:
        self._captures.clear()

    def add_static(self, name: str, value: str) -> None:
        """Append a capture that did not come from the path."""
        self._captures.append(Capture.owned(name, value))

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the first captured value for *name*, or *default*."""
        for capture in self._captures:
            if capture.name == name:
                return capture.value
        return default

    def as_dict(self) -> dict[str, str]:
        """Captures as a dict; the first capture wins for repeated names."""
        result: dict[str, str] = {}
        for capture in self._captures:
            result.setdefault(capture.name, capture.value)
        return result

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __contains__(self, name: object) -> bool:
        return any(capture.name == name for capture in self._captures)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for capture in self._captures:
            yield capture.name, capture.value

    def __len__(self) -> int:
        return len(self._captures)

    def __repr__(self) -> str:
        return f"PathState({self._path!r}, skip={self._skip}, captures={self._captures!r})"
