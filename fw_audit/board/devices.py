# board/devices.py
"""Board description loading.

Board files are *almost* JSON: addresses are usually written as ``0x``
literals, which a strict parser rejects. ``transform`` parses the text,
rewrites each hex literal to decimal as the parser trips over it, and then
normalizes the device records so every device carries ``start`` and
``length`` (the form used by the linker report).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

U32_MAX = 0xFFFFFFFF
HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class MalformedBoardFile(ValueError):
    """Board text is not JSON and cannot be repaired into JSON."""

    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (offset {offset})"
        super().__init__(message)


@dataclass(frozen=True)
class BoardDocument:
    data: dict  # {"board": <board description>}
    substitutions: int = 0

    @property
    def board(self) -> dict:
        return self.data["board"]

    @property
    def devices(self) -> Any:
        return self.board.get("devices")


# ---- Hex literal repair ----
def _replace_hex_literal(text: str, error: json.JSONDecodeError) -> str:
    pos = error.pos
    # the parser stops on the 'x' after it has consumed the leading zero
    if pos < 1 or text[pos - 1:pos + 1] != "0x":
        raise MalformedBoardFile(error.msg, pos)
    start = pos - 1
    if start > 0 and (text[start - 1].isalnum() or text[start - 1] in "._"):
        raise MalformedBoardFile("hex literal does not start a number", start)

    end = pos + 1
    while end < len(text) and text[end] in HEX_DIGITS:
        end += 1
    digits = text[pos + 1:end]
    if not digits:
        raise MalformedBoardFile("empty hex literal", start)
    value = int(digits, 16)
    if value > U32_MAX:
        raise MalformedBoardFile(f"hex literal 0x{digits} does not fit in 32 bits", start)
    return text[:start] + str(value) + text[end:]


def repair_json(text: str) -> tuple[Any, int]:
    """Parse *text*, rewriting ``0x`` literals until it is valid JSON.

    Returns the parsed value and the number of literals rewritten.
    """
    # every pass removes one "0x", so this bounds the loop
    attempts = text.count("0x") + 1
    substitutions = 0
    for _ in range(attempts):
        try:
            return json.loads(text), substitutions
        except json.JSONDecodeError as e:
            text = _replace_hex_literal(text, e)
            substitutions += 1
    raise MalformedBoardFile("board file did not converge to JSON")


# ---- Device normalisation ----
def _u32(device: dict, field: str, name: str) -> int:
    value = device[field]
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise MalformedBoardFile(f"device {name!r}: {field} must be a 32-bit unsigned integer")
    return value


def _iter_devices(devices: Any) -> Iterable[tuple[str, Any]]:
    if isinstance(devices, dict):
        return devices.items()
    if isinstance(devices, list):
        return ((str(d.get("name", i)) if isinstance(d, dict) else str(i), d)
                for i, d in enumerate(devices))
    raise MalformedBoardFile("devices must be an object or an array")


def normalize_devices(board: dict) -> dict:
    """Convert every ``{start, end}`` device into ``{start, length}`` in place."""
    if "devices" not in board or board["devices"] is None:
        return board
    for name, device in _iter_devices(board["devices"]):
        if not isinstance(device, dict):
            raise MalformedBoardFile(f"device {name!r} is not an object")
        if "end" not in device:
            continue
        if "start" not in device:
            raise MalformedBoardFile(f"device {name!r} has an end but no start")
        start = _u32(device, "start", name)
        end = _u32(device, "end", name)
        if end < start:
            raise MalformedBoardFile(f"device {name!r} ends (0x{end:x}) before it starts (0x{start:x})")
        device["length"] = end - start
        del device["end"]
    return board


def transform(text: str) -> BoardDocument:
    """Turn board file text into the ``{"board": ...}`` data document."""
    board, substitutions = repair_json(text)
    if not isinstance(board, dict):
        raise MalformedBoardFile("board description must be a JSON object")
    normalize_devices(board)
    return BoardDocument(data={"board": board}, substitutions=substitutions)


def load_board(path: Path) -> BoardDocument:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedBoardFile(f"cannot read board file {path}: {e}") from e
    return transform(text)
