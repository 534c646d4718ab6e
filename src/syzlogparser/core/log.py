"""
core.log — Console output shared by the CLI and debug tracing.

Provides a ``console`` (rich.Console on stderr) and a ``debug_print``
helper.  Parsing code only calls ``debug_print`` with ``enabled`` set
from the caller's debug flag, so it stays silent by default.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


def debug_print(module: str, msg: str, *, enabled: bool = True) -> None:
    """Print a bracketed debug message to stderr."""
    if enabled:
        console.print(f"[dim]\\[DEBUG:{module}][/] {escape(msg)}", highlight=False)
