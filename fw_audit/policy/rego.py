# policy/rego.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from regopy import Interpreter, RegoError

from .engine import PolicyEngineError


@dataclass
class RegoInterpreter:
    """``PolicyEngine`` backed by the rego-cpp interpreter (``regopy``).

    regopy has no hook for host functions, so registered builtins are kept
    in ``builtins`` and listed in ``unhosted_builtins``; rules that call
    them do not evaluate under this backend.
    """

    rego: Interpreter = field(default_factory=Interpreter)
    builtins: Dict[str, Callable[..., Any]] = field(default_factory=dict)
    unhosted_builtins: List[str] = field(default_factory=list)

    def add_data(self, document: dict) -> None:
        try:
            self.rego.add_data(document)
        except RegoError as e:
            raise PolicyEngineError(f"cannot add data document: {e}") from e

    def set_input(self, document: dict) -> None:
        try:
            self.rego.set_input(document)
        except RegoError as e:
            raise PolicyEngineError(f"cannot set input document: {e}") from e

    def load_module(self, name: str, text: str) -> None:
        try:
            self.rego.add_module(name, text)
        except RegoError as e:
            raise PolicyEngineError(f"cannot load module {name}: {e}") from e

    def register_builtin(self, name: str, arity: int, fn: Callable[..., Any]) -> None:
        self.builtins[name] = fn
        if not self.rego.is_builtin(name):
            self.unhosted_builtins.append(f"{name}/{arity}")

    def query(self, text: str) -> str:
        # errors are returned as text so they reach the caller as a diagnostic
        try:
            return str(self.rego.query(text))
        except RegoError as e:
            return str(e)
        except json.JSONDecodeError as e:
            # regopy parses the output eagerly; error text is not JSON
            return e.doc
