"""
report.corruption — Heuristics for truncated or interleaved crash dumps.

A corrupted report is still returned; the flag only tells triage that
its title and frame may be unreliable.
"""

from __future__ import annotations

import re
from typing import Tuple

from ..core.models import Report
from .classifier import Section
from .registry import Registry
from .rules import STACK_FRAME, line_regex
from .scanner import line_start

OVERLAPPING = "overlapping report"
TRUNCATED = "truncated output"
NO_FRAME = "no frame in report"

# Lines that only occur while a stack trace is still being printed.
_TRACE_LINE = re.compile(
    (STACK_FRAME + "|" + line_regex(r"Call Trace:|[ \t]*<(?:TASK|IRQ|NMI|SOFTIRQ)>")).encode(),
    re.MULTILINE,
)


def _line_count(body: bytes) -> int:
    return body.count(b"\n") + (0 if body.endswith(b"\n") else 1)


def _cut_mid_dump(report: Report, section: Section) -> bool:
    """An interrupted section is an interleaved dump when it stopped
    before ``min_lines`` or in the middle of a stack trace."""
    if _line_count(report.body) < section.rule.min_lines:
        return True
    if report.end_pos <= section.header_end:
        return False
    last = line_start(report.body, len(report.body) - 1)
    return _TRACE_LINE.match(report.body, last) is not None


def detect_corruption(report: Report, buffer: bytes, section: Section, registry: Registry) -> Tuple[bool, str]:
    """Return ``(corrupted, reason)``; the first matching heuristic wins."""
    if section.interrupted and _cut_mid_dump(report, section):
        return True, OVERLAPPING
    if (
        report.end_pos == len(buffer)
        and not section.terminated
        and _line_count(report.body) < section.rule.min_lines
    ):
        return True, TRUNCATED
    if section.title_format is not None and section.title_format.needs_frame and not report.frame:
        return True, NO_FRAME
    return False, ""
