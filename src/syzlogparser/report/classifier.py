"""
report.classifier — Turn a located crash header into a ``Report``.

Determines where the section ends, renders the title from the first
matching title format, extracts the guilty frame and collects alternate
titles.  The result is returned together with a ``Section`` describing
how the extent was decided, which the corruption detector needs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.models import CrashType, ExecutorInfo, Report
from .registry import Registry
from .rules import PatternRule, TitleFormat, decode, normalize_frame
from .scanner import Candidate, advance_lines, find_interrupt

# "Comm: syz.1.23", "by task syz.1.23/1234", "comm \"syz.1.23\""
_EXECUTOR = re.compile(rb"(?:Comm: |[Tt]ask |comm \")syz\.(\d+)\.(\d+)\b")


@dataclass(frozen=True)
class Section:
    """How the extent of a report was decided."""

    rule: PatternRule
    header_end: int
    terminated: bool
    title_format: Optional[TitleFormat]
    interrupted: bool = False


def section_end(buffer: bytes, candidate: Candidate, registry: Registry) -> Tuple[int, bool, bool]:
    """Return ``(end, terminated, interrupted)`` for the section starting
    at *candidate*.

    The section stops at the rule's end line (included), a reset marker
    (excluded), the header of another report (excluded), ``max_lines``
    or the end of the buffer, whichever comes first.  ``terminated`` is
    true for the first two, ``interrupted`` for the third.
    """
    rule = candidate.rule
    end = max(advance_lines(buffer, candidate.start, rule.max_lines), candidate.header_end)
    terminated = interrupted = False
    interrupt = find_interrupt(buffer, candidate.header_end, end, registry)
    if interrupt is not None:
        end, interrupted = interrupt, True
    if rule.end_regex is not None:
        m = rule.end_regex.search(buffer, candidate.header_end, end)
        if m is not None and m.end() > m.start():
            end, terminated, interrupted = m.end(), True, False
    if registry.reset_regex is not None:
        m = registry.reset_regex.search(buffer, candidate.header_end, end)
        if m is not None:
            end, terminated, interrupted = m.start(), True, False
    return end, terminated, interrupted


def extract_frame(rule: PatternRule, body: bytes) -> str:
    for frame_rule in rule.frames:
        frame = frame_rule.extract(body)
        if frame:
            return frame
    return ""


def _groups(m: re.Match) -> Tuple[str, ...]:
    return tuple(decode(g) for g in m.groups())


def _render(fmt: TitleFormat, groups: Tuple[str, ...], frame: str) -> Tuple[str, str]:
    """Render *fmt*, returning ``(title, frame)``."""
    if fmt.frame_group is not None and groups[fmt.frame_group]:
        frame = normalize_frame(groups[fmt.frame_group])
    return fmt.render(groups, frame), frame


def _alt_titles(
    body: bytes, registry: Registry, crash_type: CrashType, frame: str, title: str
) -> List[str]:
    seen = {title}
    alt: List[str] = []
    for rule, fmt in registry.titles_for(crash_type):
        m = fmt.regex.search(body)
        if m is None:
            continue
        groups = _groups(m)
        if fmt.resolve_type(groups, rule.crash_type) != crash_type:
            continue
        rendered, _ = _render(fmt, groups, frame)
        if rendered and rendered not in seen:
            seen.add(rendered)
            alt.append(rendered)
    return alt


def extract_executor(body: bytes) -> Optional[ExecutorInfo]:
    m = _EXECUTOR.search(body)
    if m is None:
        return None
    return ExecutorInfo(proc_id=int(m.group(1)), exec_id=int(m.group(2)))


def classify(buffer: bytes, candidate: Candidate, registry: Registry) -> Tuple[Report, Section]:
    """Build the report for the crash header at *candidate*."""
    rule = candidate.rule
    end, terminated, interrupted = section_end(buffer, candidate, registry)
    body = bytes(buffer[candidate.start:end])

    default_frame = extract_frame(rule, body)
    title, frame, crash_type, used = "", default_frame, rule.crash_type, None
    for fmt in rule.titles:
        if fmt.alt:
            continue
        m = fmt.regex.search(body)
        if m is None:
            continue
        groups = _groups(m)
        title, frame = _render(fmt, groups, default_frame)
        crash_type = fmt.resolve_type(groups, rule.crash_type)
        used = fmt
        break
    if not title:
        title = f"unknown crash in {rule.crash_type.value}"

    report = Report(
        title=title,
        alt_titles=_alt_titles(body, registry, crash_type, frame, title),
        type=crash_type,
        frame=frame,
        start_pos=candidate.start,
        end_pos=end,
        skip_pos=max(end, candidate.start + 1),
        executor=extract_executor(body),
        body=body,
    )
    return report, Section(rule, candidate.header_end, terminated, used, interrupted)
