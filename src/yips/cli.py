"""yips command line tools for inspecting envelopes and risk decisions."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from yips.config import Settings
from yips.core.envelope import parse_envelope
from yips.core.prompt import PROTOCOL_SYSTEM_PROMPT
from yips.logging_utils import configure_logging
from yips.tools.risk import assess_command_risk, assess_path_risk

app = typer.Typer(name="yips", help="Agent action protocol tools", add_completion=False)
console = Console()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, help="Log level; defaults to YIPS_LOG_LEVEL"),
) -> None:
    configure_logging(log_level or Settings().log_level)


@app.command("parse")
def parse(source: Optional[Path] = typer.Argument(None, help="Reply text file; reads stdin when omitted")) -> None:
    """Parse one model reply and print the extracted actions as JSON."""
    text = source.read_text(encoding="utf-8") if source is not None else sys.stdin.read()
    parsed = parse_envelope(text)
    payload = {
        "assistant_text": parsed.assistant_text,
        "actions": [{"kind": action.kind, **asdict(action.call)} for action in parsed.actions],
        "warnings": parsed.warnings,
        "errors": parsed.errors,
        "envelope_found": parsed.envelope_found,
    }
    console.print_json(json.dumps(payload, ensure_ascii=False))
    if parsed.errors:
        raise typer.Exit(1)


@app.command("risk")
def risk(
    command: str = typer.Argument(..., help="Shell command, or a path with --path"),
    cwd: str = typer.Option(".", help="Working directory of the command"),
    root: Path = typer.Option(Path("."), help="Session root"),
    path: bool = typer.Option(False, "--path", help="Assess COMMAND as a filesystem path"),
) -> None:
    """Classify a shell command (or path) against the session root."""
    session_root = str(root.resolve())
    assessment = assess_path_risk(command, session_root) if path else assess_command_risk(command, cwd, session_root)
    style = {"none": "green", "confirm": "yellow", "deny": "bold red"}[assessment.risk_level]
    console.print(f"[{style}]{assessment.risk_level}[/{style}] {assessment.resolved_path}")
    for reason in assessment.reasons:
        console.print(f"  - {reason}")


@app.command("prompt")
def prompt() -> None:
    """Print the protocol system prompt given to the model."""
    typer.echo(PROTOCOL_SYSTEM_PROMPT)


if __name__ == "__main__":
    app()
