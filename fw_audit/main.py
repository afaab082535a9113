from __future__ import annotations
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .config import APP_NAME, LOG_FILE
from .board.devices import MalformedBoardFile, load_board
from .firmware.report import ReportError, allocator_capabilities, load_report
from .policy.engine import PolicyEngineError, load_modules, run_audit
from .policy.rego import RegoInterpreter
from .policy.result import Diagnostic

app = typer.Typer(add_completion=False, help=f"{APP_NAME}: check a CHERIoT firmware image against policy.")
err = Console(stderr=True)

# swapped out in tests for a stub engine
create_engine = RegoInterpreter


def _log_event(log_file: Optional[Path], kind: str, payload: dict):
    if log_file is None:
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "payload": payload,
    }
    with open(log_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")


def _allocator_summary(report: dict) -> dict:
    valid, invalid = [], []
    for compartment, capability in allocator_capabilities(report):
        if capability is None:
            invalid.append(compartment)
        else:
            valid.append({"compartment": compartment, "quota": capability.quota})
    return {"valid": valid, "invalid": invalid}


@app.command()
def audit(
    board: Path = typer.Option(..., "-b", "--board", exists=True, dir_okay=False, readable=True,
                               help="Board JSON file"),
    firmware_report: Path = typer.Option(..., "-j", "--firmware-report", exists=True, dir_okay=False,
                                         readable=True, help="Firmware report JSON file generated by the linker."),
    query: str = typer.Option(..., "-q", "--query", help="The query to run."),
    module: Optional[List[Path]] = typer.Option(None, "-m", "--module", exists=True, dir_okay=False, readable=True,
                                                help="Modules to load. This option may be passed more than once."),
    log: bool = typer.Option(True, "--log/--no-log", help="Append events to the session log"),
    log_file: Path = typer.Option(LOG_FILE, help="Session log (JSON lines)"),
):
    """
    Run one query against the firmware report, with the board description as data.
    """
    events = log_file if log else None
    _log_event(events, "audit_start", {
        "board": str(board), "report": str(firmware_report), "query": query,
        "modules": [str(m) for m in module or []],
    })

    try:
        report = load_report(firmware_report)
    except ReportError as e:
        raise typer.BadParameter(str(e), param_hint="'-j' / '--firmware-report'")

    try:
        board_doc = load_board(board)
    except MalformedBoardFile as e:
        err.print(f"[red]Failed to parse board JSON:[/] {escape(str(e))}")
        _log_event(events, "board_error", {"board": str(board), "error": str(e), "offset": e.offset})
        raise typer.Exit(code=1)
    _log_event(events, "board_loaded", {"board": str(board), "hex_literals": board_doc.substitutions})
    _log_event(events, "allocators", _allocator_summary(report))

    def warn_unhosted(unhosted):
        err.print(f"[yellow]Engine cannot host builtins used by the loaded rules:[/] {escape(', '.join(unhosted))}")
        _log_event(events, "unhosted_builtins", {"builtins": list(unhosted)})

    engine = create_engine()
    try:
        outcome = run_audit(engine, board_doc, report, query, load_modules(module or []),
                            on_unhosted=warn_unhosted)
    except PolicyEngineError as e:
        err.print(f"[yellow]Policy engine error:[/] {escape(str(e))}")
        _log_event(events, "diagnostic", {"message": str(e)})
        typer.echo(str(e))
        return

    result = outcome.result
    for warning in result.warnings:
        err.print(f"[yellow]Warning:[/] {escape(warning)}")
    if isinstance(result, Diagnostic):
        err.print(f"[yellow]Query result:[/] {escape(result.message)}")
        _log_event(events, "diagnostic", {"message": result.message, "warnings": list(result.warnings)})

    typer.echo(result.text)
    _log_event(events, "result", {"text": result.text, "modules": list(outcome.modules)})


if __name__ == "__main__":
    app()
