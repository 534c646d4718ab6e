"""
cli.app — ``syz-logparser``: print the crash reports found in a console log.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer
from rich.markup import escape

from ..core.config import Config, load_config
from ..core.errors import ConfigError
from ..core.log import console
from ..core.models import Report
from ..report import Reporter, is_suppressed, new_reporter, parse_all
from ..report.targets import resolve_target

USAGE = "usage: syz-logparser [flags] kernel_log_file"

app = typer.Typer(
    name="syz-logparser",
    help="Extract and classify crash reports from a kernel console log.",
    add_completion=False,
)

# Characters emitted as \u escapes in JSON output.
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


# ── Shared helpers ────────────────────────────────────────────────────


def _fail(msg: str) -> NoReturn:
    console.print(f"[red]{escape(msg)}[/]", soft_wrap=True, highlight=False)
    raise typer.Exit(1)


def _build_config(path: Optional[str], **cli_overrides: object) -> Config:
    """Build a ``Config`` from .env + settings file + CLI overrides, dropping None values."""
    cfg = load_config(path, **{k: v for k, v in cli_overrides.items() if v is not None})
    resolve_target(*cfg.target_parts())
    return cfg


def _serialize(rep: Report) -> Dict[str, Any]:
    out: Dict[str, Any] = {"title": rep.title}
    if rep.alt_titles:
        out["alt_titles"] = list(rep.alt_titles)
    out["type"] = rep.type.value
    if rep.frame:
        out["frame"] = rep.frame
    out["start_pos"] = rep.start_pos
    out["end_pos"] = rep.end_pos
    out["skip_pos"] = rep.skip_pos
    out["suppressed"] = rep.suppressed
    out["corrupted"] = rep.corrupted
    if rep.corrupted_reason:
        out["corrupted_reason"] = rep.corrupted_reason
    if rep.executor is not None:
        out["executor"] = {"ProcID": rep.executor.proc_id, "ExecID": rep.executor.exec_id}
    out["report"] = rep.text()
    return out


def format_json(reports: List[Report]) -> str:
    text = json.dumps([_serialize(r) for r in reports], indent=2, ensure_ascii=False)
    for ch, repl in _JSON_ESCAPES.items():
        text = text.replace(ch, repl)
    return text + "\n"


def _print_human(reports: List[Report]) -> None:
    for idx, rep in enumerate(reports):
        lines = [
            f"Crash #{idx + 1}",
            f"Title: {rep.title}",
            f"Type: {rep.type.value}",
        ]
        if rep.alt_titles:
            lines.append(f"Alt titles: {', '.join(rep.alt_titles)}")
        if rep.frame:
            lines.append(f"Frame: {rep.frame}")
        lines.append(f"Range: [{rep.start_pos}, {rep.end_pos}], next {rep.skip_pos}")
        lines.append(f"Suppressed: {str(rep.suppressed).lower()}")
        corrupted = f"Corrupted: {str(rep.corrupted).lower()}"
        if rep.corrupted_reason:
            corrupted += f" ({rep.corrupted_reason})"
        lines.append(corrupted)
        typer.echo("\n".join(lines) + "\n")
        if not rep.body:
            typer.echo("(empty report body)")
        else:
            typer.echo(rep.body, nl=False)
            if not rep.body.endswith(b"\n"):
                typer.echo("")
        if idx + 1 < len(reports):
            typer.echo("\n---\n")


def _parse_reports(reporter: Reporter, data: bytes, parse_every: bool) -> List[Report]:
    if parse_every:
        return parse_all(reporter, data)
    rep = reporter.parse(data)
    return [rep] if rep is not None else []


# ═════════════════════════════════════════════════════════════════════
#  syz-logparser
# ═════════════════════════════════════════════════════════════════════


@app.command()
def logparser(
    args: Optional[List[str]] = typer.Argument(None, metavar="kernel_log_file", show_default=False),
    target_os: Optional[str] = typer.Option(None, "-os", "--os", help="Target OS of the log [default: linux]"),
    arch: Optional[str] = typer.Option(None, "-arch", "--arch", help="Target architecture of the log [default: host]"),
    config: Optional[str] = typer.Option(None, "-config", "--config", help="Optional manager config to reuse parsing settings"),
    as_json: bool = typer.Option(False, "-json", "--json", help="Emit parsed crashes as JSON"),
    parse_every: bool = typer.Option(False, "-all", "--all", help="Parse all crash reports (default: only the first)"),
    debug: bool = typer.Option(False, "-debug", "--debug", help="Enable debug output"),
) -> None:
    """Parse a kernel console log and print the crash reports it contains."""
    if not args or len(args) != 1:
        typer.echo(USAGE, err=True)
        typer.echo("Try 'syz-logparser --help' for the list of flags.", err=True)
        raise typer.Exit(1)

    try:
        cfg = _build_config(config, target_os=target_os, target_arch=arch, debug=True if debug else None)
    except ConfigError as e:
        _fail(f"failed to load config: {e}")
    try:
        reporter = new_reporter(cfg)
    except ConfigError as e:
        _fail(f"failed to create reporter: {e}")
    try:
        data = Path(args[0]).read_bytes()
    except OSError as e:
        _fail(f"failed to read log file: {e.strerror or e}")

    reports = _parse_reports(reporter, data, parse_every)
    if as_json:
        typer.echo(format_json(reports), nl=False)
        return
    if not reports:
        typer.echo("no crash reports found in log")
        if is_suppressed(reporter, data):
            typer.echo("note: log matched suppression patterns for this target")
        return
    _print_human(reports)


def main() -> None:
    """Entry-point registered in pyproject.toml."""
    app()
