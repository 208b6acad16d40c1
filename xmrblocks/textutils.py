"""Text helpers: form decoding, printable escaping, key parsing and small sequence tools."""

from __future__ import annotations

import re
from typing import Iterator, Sequence, TypeVar, Union

T = TypeVar("T")

DEFAULT_BAD_CHARS = r"[^a-zA-Z0-9+/=]"
KEY_HEX_LENGTH = 64
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_NAMED_CONTROL = {code: f"\\{code:03o}" for code in range(8)}


def _leading_hex_value(text: str) -> int:
    digits = ""
    for char in text:
        if char not in _HEX_DIGITS:
            break
        digits += char
    if not digits:
        raise ValueError(f"invalid percent escape: %{text}")
    return int(digits, 16)


def url_decode(text: str) -> str:
    """Decode a form-encoded string ('+' is a space, '%XX' a byte).

    Raises ValueError on a truncated or malformed percent escape.
    """
    out = bytearray()
    position = 0
    length = len(text)
    while position < length:
        char = text[position]
        if char == "%":
            if position + 3 > length:
                raise ValueError("truncated percent escape")
            out.append(_leading_hex_value(text[position + 1 : position + 3]) & 0xFF)
            position += 2
        elif char == "+":
            out.append(ord(" "))
        else:
            out.extend(char.encode("utf-8", "surrogateescape"))
        position += 1
    return out.decode("utf-8", "surrogateescape")


def parse_post_data(body: str) -> dict[str, str]:
    """Parse a form-encoded request body into a dict.

    Parsing stops at the first field without '='; an undecodable body gives an empty dict.
    """
    try:
        decoded = url_decode(body)
    except ValueError:
        return {}
    fields: dict[str, str] = {}
    for field in decoded.split("&"):
        key, sep, value = field.partition("=")
        if not sep:
            break
        fields[key] = value
    return fields


def make_printable(text: Union[str, bytes]) -> str:
    """Escape non-printable bytes: \\000-\\007 as octal, anything else as 0x-hex."""
    data = text.encode("utf-8", "surrogateescape") if isinstance(text, str) else bytes(text)
    parts = []
    for byte in data:
        if 0x20 <= byte <= 0x7E:
            parts.append(chr(byte))
        elif byte in _NAMED_CONTROL:
            parts.append(_NAMED_CONTROL[byte])
        else:
            signed = byte - 256 if byte >= 0x80 else byte
            parts.append("0x" + format(signed & 0xFFFFFFFF, "x"))
    return "".join(parts)


def remove_bad_chars(text: str, pattern: Union[str, "re.Pattern[str]"] = DEFAULT_BAD_CHARS) -> str:
    """Remove every character of ``text`` matched by ``pattern``."""
    return re.sub(pattern, "", text)


def remove_hash_brackets(text: str) -> str:
    """Strip the first and last character, e.g. the '<' and '>' around a hash."""
    if not text:
        raise ValueError("cannot strip brackets from an empty string")
    return text[1 : len(text) - 1]


def chunks(seq: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``size`` items; an empty sequence yields one empty slice."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    start = 0
    while True:
        yield seq[start : start + size]
        start += size
        if start >= len(seq):
            break


def calc_median(values: Sequence[T]) -> T:
    """Return the element at position len/2 of the sorted values (upper median)."""
    data = sorted(values)
    if not data:
        raise ValueError("median of an empty sequence")
    return data[len(data) // 2]


def parse_hex_key(key_str: str) -> bytes:
    """Parse a 64-character hex string into a 32-byte key or hash."""
    if len(key_str) != KEY_HEX_LENGTH or not set(key_str) <= _HEX_DIGITS:
        raise ValueError(f"Cant parse a key (e.g. viewkey): {key_str}")
    return bytes.fromhex(key_str)


def parse_hex_keys(keys_str: str) -> list[bytes]:
    """Parse a concatenation of 64-character hex keys."""
    if len(keys_str) % KEY_HEX_LENGTH:
        raise ValueError("key string length is not a multiple of 64")
    return [parse_hex_key(chunk) for chunk in chunks(keys_str, KEY_HEX_LENGTH) if chunk]