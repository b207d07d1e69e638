"""Percent-encoding utilities for request paths.

Three operations with deliberately different strictness:

- ``decode`` turns a captured path fragment into text. It is strict:
  malformed escapes and invalid UTF-8 raise ``DecodeError``.
- ``requote`` normalizes a raw request path before matching. It decodes
  escapes that are safe to decode and keeps a fixed table of escapes
  encoded, so that decoding can never change how the path splits into
  segments.
- ``encode`` escapes a value for insertion into a generated path.

Usage::

    from perch.quoting import decode, encode, requote

    decode("caf%C3%A9")          # "café"
    requote(b"/a%41%2Fb")        # b"/aA%2Fb"
    requote(b"/plain")           # None, nothing to change
    encode("a b/c")              # "a%20b%2Fc"
"""

from urllib.parse import quote

from perch.errors import DecodeError

# Characters whose escapes requote never decodes.
PROTECTED_ESCAPES = "%/+"

_HEX = "0123456789ABCDEFabcdef"


def _hex_value(high: int, low: int) -> int | None:
    """Return the byte for two ASCII hex digits, or None if either is not hex."""
    if chr(high) not in _HEX or chr(low) not in _HEX:
        return None
    return int(chr(high) + chr(low), 16)


def decode(value: str | bytes) -> str:
    """Decode every ``%XX`` escape in *value* and return UTF-8 text.

    Non-ASCII characters in a ``str`` input contribute their UTF-8 bytes,
    so already-decoded text passes through unchanged.

    Raises ``DecodeError`` if an escape is malformed or the decoded bytes
    are not valid UTF-8.
    """
    if isinstance(value, str):
        try:
            raw = value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise DecodeError(f"Text is not encodable as UTF-8: {value!r}") from exc
    else:
        raw = bytes(value)
    if b"%" not in raw:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Invalid UTF-8 in {raw!r}") from exc

    out = bytearray()
    i = 0
    length = len(raw)
    while i < length:
        byte = raw[i]
        if byte != 0x25:  # "%"
            out.append(byte)
            i += 1
            continue
        if i + 2 >= length:
            raise DecodeError(f"Truncated percent-escape at offset {i} in {raw!r}")
        decoded = _hex_value(raw[i + 1], raw[i + 2])
        if decoded is None:
            raise DecodeError(f"Malformed percent-escape at offset {i} in {raw!r}")
        out.append(decoded)
        i += 3

    try:
        return out.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Decoded bytes are not valid UTF-8 in {raw!r}") from exc


def encode(value: str, safe: str = "") -> str:
    """Percent-encode *value* for use inside a path.

    Everything outside the RFC 3986 unreserved set (``A-Z a-z 0-9 - . _ ~``)
    and *safe* becomes an uppercase ``%XX`` escape of its UTF-8 bytes.
    """
    return quote(value, safe=safe, encoding="utf-8", errors="strict")


class Quoter:
    """Requotes raw paths, leaving a fixed table of escapes encoded.

    Immutable after creation and safe to share between threads::

        quoter = Quoter(protected="%/")
        quoter.requote(b"/a%2Bb")   # b"/a+b"
    """

    __slots__ = ("_protected",)

    def __init__(self, protected: str = PROTECTED_ESCAPES) -> None:
        table = {ord(ch) for ch in protected if ord(ch) < 0x80}
        # "%" is always protected
        table.add(0x25)
        self._protected = frozenset(table)

    @property
    def protected(self) -> frozenset[int]:
        """Byte values whose escapes are kept encoded."""
        return self._protected

    def requote(self, value: bytes, *, ascii_only: bool = False) -> bytes | None:
        """Return *value* with unprotected escapes decoded, or None if unchanged.

        A ``%`` that does not start a valid escape is rewritten as ``%25``
        so that a decoded character can never complete a new escape. With
        *ascii_only*, escapes of bytes >= 0x80 are left encoded.
        """
        if b"%" not in value:
            return None

        out = bytearray()
        changed = False
        i = 0
        length = len(value)
        while i < length:
            byte = value[i]
            if byte != 0x25:
                out.append(byte)
                i += 1
                continue

            decoded = _hex_value(value[i + 1], value[i + 2]) if i + 2 < length else None
            if decoded is None:
                out += b"%25"
                changed = True
                i += 1
                continue

            if decoded in self._protected or (ascii_only and decoded >= 0x80):
                out += value[i : i + 3]
            else:
                out.append(decoded)
                changed = True
            i += 3

        return bytes(out) if changed else None

    def requote_str(self, value: str) -> str | None:
        """Requote a path given as text, or return None if unchanged.

        When decoding every unprotected escape would produce invalid
        UTF-8, only ASCII escapes are decoded.
        """
        if "%" not in value:
            return None
        raw = value.encode("utf-8")
        result = self.requote(raw)
        if result is None:
            return None
        try:
            return result.decode("utf-8")
        except UnicodeDecodeError:
            pass
        result = self.requote(raw, ascii_only=True)
        if result is None:
            return None
        return result.decode("utf-8")


DEFAULT_QUOTER = Quoter()


def requote(value: bytes) -> bytes | None:
    """Requote *value* with the default protected table (``%``, ``/``, ``+``)."""
    return DEFAULT_QUOTER.requote(value)


def requote_str(value: str) -> str | None:
    """Requote a text path with the default protected table."""
    return DEFAULT_QUOTER.requote_str(value)
