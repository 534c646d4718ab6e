"""
cli — Typer CLI entry-point for syzlogparser.
"""

from .app import app, main

__all__ = ["app", "main"]
