"""
report.suppression — Known-benign crash signatures.
"""

from __future__ import annotations

from re import Pattern
from typing import Iterable, Sequence

from ..core.models import Report


def is_suppressed(
    report: Report,
    patterns: Iterable[Pattern[bytes]],
    interests: Sequence[Pattern[bytes]] = (),
) -> bool:
    """True if *report* matches a suppression or misses every interest."""
    title = report.title.encode()
    for regex in patterns:
        if regex.search(title) or regex.search(report.body):
            return True
    if interests and not any(regex.search(title) for regex in interests):
        return True
    return False


def buffer_matches_suppression(buffer: bytes, patterns: Iterable[Pattern[bytes]]) -> bool:
    """Whole-buffer check, no parsing involved."""
    return any(regex.search(buffer) for regex in patterns)
