# policy/result.py
"""Normalisation of raw query output into a single printable value."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Tuple, Union

UNDEFINED = "undefined"
MULTIPLE_RESULTS = "multiple results, using first"
NO_RESULTS = "no results"


@dataclass(frozen=True)
class Canonical:
    value: str  # JSON text of the first expression, or "undefined"
    warnings: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return self.value


@dataclass(frozen=True)
class Diagnostic:
    message: str
    fallback: str  # always printable, usually the raw engine output
    warnings: Tuple[str, ...] = field(default=())

    @property
    def text(self) -> str:
        return self.fallback


QueryOutcome = Union[Canonical, Diagnostic]


def normalize(raw: str) -> QueryOutcome:
    if raw.strip() == UNDEFINED:
        return Canonical(UNDEFINED)

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        return Diagnostic(f"cannot parse query result: {e}", raw)

    warnings: Tuple[str, ...] = ()
    if isinstance(value, list):
        if not value:
            return Diagnostic(NO_RESULTS, raw)
        if len(value) > 1:
            warnings = (MULTIPLE_RESULTS,)
        value = value[0]

    if not isinstance(value, dict) or not isinstance(value.get("expressions"), list):
        return Diagnostic("query result has no expressions array", raw, warnings)
    expressions = value["expressions"]
    if not expressions:
        return Diagnostic(NO_RESULTS, raw, warnings)
    return Canonical(json.dumps(expressions[0], separators=(",", ":")), warnings)
