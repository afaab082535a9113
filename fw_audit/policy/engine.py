# policy/engine.py
"""Boundary between the auditor and the policy engine.

The engine itself is external. Anything implementing ``PolicyEngine`` can
run an audit; the auditor only supplies documents, builtins and modules,
runs one query and normalises the answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from ..board.devices import BoardDocument
from ..config import FIXED_MODULES, RULES_DIR
from ..firmware.blob import decode_c_string, decode_integer
from ..firmware.symbols import demangle_export
from .result import Diagnostic, QueryOutcome, normalize


class PolicyEngineError(RuntimeError):
    pass


# ---- Engine protocol ----
class PolicyEngine(Protocol):
    def add_data(self, document: dict) -> None: ...
    def set_input(self, document: dict) -> None: ...
    def load_module(self, name: str, text: str) -> None: ...
    def register_builtin(self, name: str, arity: int, fn: Callable[..., Any]) -> None: ...
    def query(self, text: str) -> str: ...


# ---- Builtins ----
def _false_if_none(fn: Callable[..., Any]) -> Callable[..., Any]:
    # the policy language has no None: an inapplicable builtin answers false
    def builtin(*args):
        value = fn(*args)
        return False if value is None else value

    builtin.__name__ = fn.__name__
    builtin.__doc__ = fn.__doc__
    return builtin


BUILTINS: Tuple[Tuple[str, int, Callable[..., Any]], ...] = (
    ("export_entry_demangle", 2, _false_if_none(demangle_export)),
    ("integer_from_hex_string", 3, _false_if_none(decode_integer)),
    ("string_from_hex_string", 2, _false_if_none(decode_c_string)),
)


def register_builtins(engine: PolicyEngine) -> None:
    for name, arity, fn in BUILTINS:
        engine.register_builtin(name, arity, fn)


# ---- Modules ----
@dataclass(frozen=True)
class PolicyModule:
    name: str
    text: str

    @classmethod
    def from_file(cls, path: Path) -> "PolicyModule":
        path = Path(path)
        return cls(name=str(path), text=path.read_text(encoding="utf-8"))


def fixed_modules() -> List[PolicyModule]:
    """The built-in rule sets, in the order they are loaded."""
    return [
        PolicyModule(name, (RULES_DIR / f"{name}.rego").read_text(encoding="utf-8"))
        for name in FIXED_MODULES
    ]


def _builtin_name(entry: str) -> str:
    return entry.split("/", 1)[0]


def unhosted_references(engine: PolicyEngine, texts: Sequence[str]) -> Tuple[str, ...]:
    """Builtins registered with *engine* that it cannot run, and that *texts* call."""
    unhosted = getattr(engine, "unhosted_builtins", None) or ()
    return tuple(
        entry for entry in unhosted
        if any(_builtin_name(entry) + "(" in text for text in texts)
    )


def _blame_unhosted(result: Diagnostic, unhosted: Sequence[str], texts: Sequence[str]) -> Diagnostic:
    named = [e for e in unhosted if any(_builtin_name(e) in t for t in texts)] or list(unhosted)
    message = f"engine cannot host builtin {', '.join(named)}: {result.message}"
    return Diagnostic(message, result.fallback, result.warnings)


@dataclass(frozen=True)
class AuditOutcome:
    result: QueryOutcome
    modules: Tuple[str, ...]  # names in load order
    unhosted: Tuple[str, ...] = ()  # builtins the loaded rules need but the engine lacks


def run_audit(
    engine: PolicyEngine,
    board: BoardDocument,
    report: dict,
    query: str,
    modules: Sequence[PolicyModule] = (),
    on_unhosted: Optional[Callable[[Tuple[str, ...]], None]] = None,
) -> AuditOutcome:
    register_builtins(engine)
    engine.set_input(report)
    engine.add_data(board.data)

    all_modules = [*fixed_modules(), *modules]
    for module in all_modules:
        engine.load_module(module.name, module.text)

    # checked before the query runs so the caller can warn up front
    unhosted = unhosted_references(engine, [*(m.text for m in all_modules), query])
    if unhosted and on_unhosted is not None:
        on_unhosted(unhosted)
    raw = engine.query(query)
    result = normalize(raw)
    if unhosted and isinstance(result, Diagnostic):
        result = _blame_unhosted(result, unhosted, [raw, query])
    return AuditOutcome(result=result, modules=tuple(m.name for m in all_modules), unhosted=unhosted)


def load_modules(paths: Iterable[Path]) -> List[PolicyModule]:
    return [PolicyModule.from_file(p) for p in paths]
