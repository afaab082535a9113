# firmware/blob.py
"""Decoding of hex-encoded memory blobs from the firmware report.

Blobs are little-endian byte sequences written as 8-hex-digit (4-byte)
groups separated by a single space, e.g. ``"00100000 00000000"``.
The separator may be missing and the last group may be shorter than four
bytes. Anything else (odd digit counts, stray whitespace, non-hex) is
treated as an empty blob; nothing here raises on bad data, callers get
``None`` when a value cannot be produced.
"""

from __future__ import annotations

import re
from typing import Any, Optional

GROUP_DIGITS = 8
HEX_RE = re.compile(r"(?:[0-9A-Fa-f]{2})+")
MAX_INTEGER_BYTES = 4


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_bytes(hex_string: Any) -> bytes:
    if not isinstance(hex_string, str):
        return b""
    out = bytearray()
    rest = hex_string
    while rest:
        group, rest = rest[:GROUP_DIGITS], rest[GROUP_DIGITS:]
        if not HEX_RE.fullmatch(group):
            return b""
        out += bytes.fromhex(group)
        if rest.startswith(" "):
            rest = rest[1:]
    return bytes(out)


def decode_integer(hex_string: Any, offset: Any, length: Any) -> Optional[int]:
    """Read an unsigned little-endian integer of *length* (0..4) bytes at *offset*."""
    if not (_is_int(offset) and _is_int(length)):
        return None
    if not 0 <= length <= MAX_INTEGER_BYTES or offset < 0:
        return None
    data = decode_bytes(hex_string)
    if offset + length > len(data):
        return None
    return int.from_bytes(data[offset:offset + length], "little")


def decode_c_string(hex_string: Any, offset: Any) -> Optional[str]:
    """Read a NUL-terminated string at *offset*; a missing terminator is fine."""
    if not _is_int(offset):
        return None
    data = decode_bytes(hex_string)
    if not 0 <= offset < len(data):
        return None
    end = data.find(b"\0", offset)
    if end < 0:
        end = len(data)
    return data[offset:end].decode("utf-8", errors="replace")
