"""
report.scanner — Locate the next crash header in a console log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .registry import Registry
from .rules import PatternRule


@dataclass(frozen=True)
class Candidate:
    """A start marker found by ``find_next``.

    ``start`` is the offset of the header line; ``header_end`` the offset
    just past the header block (the first line plus any directly
    following lines reporting the same kind of bug, as KASAN prints for
    inlined frames).
    """

    rule: PatternRule
    start: int
    header_end: int


def line_end(buffer: bytes, pos: int) -> int:
    """Offset just past the line containing *pos* (its newline included)."""
    nl = buffer.find(b"\n", pos)
    return len(buffer) if nl < 0 else nl + 1


def line_start(buffer: bytes, pos: int) -> int:
    """Offset of the first byte of the line containing *pos*."""
    return buffer.rfind(b"\n", 0, pos) + 1


def advance_lines(buffer: bytes, pos: int, count: int) -> int:
    """Offset just past *count* lines starting at *pos*, or the buffer end."""
    for _ in range(count):
        if pos >= len(buffer):
            break
        pos = line_end(buffer, pos)
    return pos


def header_kind(rule: PatternRule, line: bytes) -> Optional[Tuple[int, Tuple[Optional[bytes], ...]]]:
    """The title format a header line matches and its groups, frame aside.

    Two header lines with the same kind describe one bug; ``None`` means
    the line alone matches none of the rule's titles.
    """
    for index, fmt in enumerate(rule.titles):
        if fmt.alt:
            continue
        m = fmt.regex.search(line)
        if m is None:
            continue
        groups = tuple(g for n, g in enumerate(m.groups()) if n != fmt.frame_group)
        return index, groups
    return None


def _header_end(buffer: bytes, rule: PatternRule, start: int) -> int:
    end = line_end(buffer, start)
    kind = header_kind(rule, buffer[start:end])
    if kind is None:
        return end
    while end < len(buffer) and rule.start_regex.match(buffer, end):
        next_end = line_end(buffer, end)
        if header_kind(rule, buffer[end:next_end]) != kind:
            break
        end = next_end
    return end


def match_rule(buffer: bytes, pos: int, registry: Registry) -> Optional[PatternRule]:
    """Highest-priority rule whose start marker matches the line at
    *pos* and whose ignore list does not reject it."""
    line = buffer[pos:line_end(buffer, pos)]
    for rule in registry.rules:
        if rule.start_regex.match(buffer, pos) and not rule.is_ignored(line):
            return rule
    return None


def find_interrupt(buffer: bytes, pos: int, end: int, registry: Registry) -> Optional[int]:
    """Line start of the first header in ``[pos, end)`` that begins another
    report.  Headers of ``nested_ok`` rules and ignored headers do not count.
    """
    while pos < end:
        m = registry.start_regex.search(buffer, pos, end)
        if m is None:
            return None
        rule = match_rule(buffer, m.start(), registry)
        if rule is not None and not rule.nested_ok:
            return m.start()
        pos = line_end(buffer, m.start())
    return None


def find_next(buffer: bytes, from_pos: int, registry: Registry) -> Optional[Candidate]:
    """Earliest crash header at or after *from_pos*, or ``None``."""
    pos = from_pos
    while pos < len(buffer):
        m = registry.start_regex.search(buffer, pos)
        if m is None:
            return None
        start = m.start()
        rule = registry.rule_for(m)
        if rule.is_ignored(buffer[start:line_end(buffer, start)]):
            rule = match_rule(buffer, start, registry)
        if rule is not None:
            return Candidate(rule, start, _header_end(buffer, rule, start))
        pos = line_end(buffer, start)
    return None
