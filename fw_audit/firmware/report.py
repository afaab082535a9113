# firmware/report.py
"""Read-only helpers over the linker's firmware report.

The report is an external contract: it is loaded once, handed to the
policy engine verbatim and never modified here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .blob import decode_integer

ALLOCATOR_SEALING_TYPE = {"compartment": "alloc", "key": "MallocKey"}
# quota word followed by five reserved words that must be zero
ALLOCATOR_RESERVED_WORDS = 5


class ReportError(ValueError):
    pass


def load_report(path: Path) -> dict:
    path = Path(path)
    try:
        report = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ReportError(f"cannot read firmware report {path}: {e}") from e
    if not isinstance(report, dict):
        raise ReportError(f"firmware report {path} is not a JSON object")
    return report


def iter_imports(report: dict) -> Iterator[Tuple[str, dict]]:
    compartments = report.get("compartments") or {}
    if isinstance(compartments, list):
        compartments = {str(i): c for i, c in enumerate(compartments)}
    if not isinstance(compartments, dict):
        return
    for name, compartment in compartments.items():
        if not isinstance(compartment, dict):
            continue
        for entry in compartment.get("imports") or []:
            if isinstance(entry, dict):
                yield name, entry


def is_allocator_capability(entry: dict) -> bool:
    sealing_type = entry.get("sealing_type")
    return (
        entry.get("kind") == "SealedObject"
        and isinstance(sealing_type, dict)
        and all(sealing_type.get(k) == v for k, v in ALLOCATOR_SEALING_TYPE.items())
    )


@dataclass(frozen=True)
class AllocatorCapability:
    """Decoded allocator quota capability (a sealed ``MallocKey`` object)."""

    quota: int

    @classmethod
    def from_import(cls, entry: dict) -> Optional["AllocatorCapability"]:
        if not is_allocator_capability(entry):
            return None
        contents = entry.get("contents")
        quota = decode_integer(contents, 0, 4)
        if quota is None:
            return None
        for word in range(1, ALLOCATOR_RESERVED_WORDS + 1):
            if decode_integer(contents, word * 4, 4) != 0:
                return None
        return cls(quota=quota)


def allocator_capabilities(report: dict) -> Iterator[Tuple[str, Optional[AllocatorCapability]]]:
    """Yield ``(compartment, capability)`` for each allocator sealed object.

    ``capability`` is None when the object does not decode as a valid quota.
    """
    for compartment, entry in iter_imports(report):
        if is_allocator_capability(entry):
            yield compartment, AllocatorCapability.from_import(entry)
