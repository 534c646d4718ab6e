"""
report.registry — Per-target pattern registry.

A ``Registry`` is everything the target-agnostic scanner, classifier,
corruption detector and suppression filter need to know about one
target.  Registries are immutable and cached, so every ``Reporter`` for
the same target shares one.
"""

from __future__ import annotations

import functools
import re
from re import Match, Pattern
from typing import Dict, List, Optional, Tuple

from ..core.models import CrashType, TargetDescriptor
from . import common
from .rules import PatternRule, TitleFormat, line_regex
from .targets import os_rules


class Registry:
    """Compiled rule set of one target.

    ``rules`` are ordered by descending priority (ties keep declaration
    order).  ``start_regex`` is the alternation of all start markers in
    that order with one named group per rule, so the leftmost match is
    the earliest line and, at the same line, the highest-priority rule.
    """

    def __init__(
        self,
        target: TargetDescriptor,
        rules: List[PatternRule],
        suppressions: Tuple[str, ...],
        reset_markers: Tuple[str, ...],
    ):
        self.target = target
        ordered = sorted(enumerate(rules), key=lambda item: (-item[1].priority, item[0]))
        self.rules: Tuple[PatternRule, ...] = tuple(rule for _, rule in ordered)

        alternation = "|".join(f"(?P<r{i}>{rule.start})" for i, rule in enumerate(self.rules))
        self.start_regex: Pattern[bytes] = re.compile(line_regex(alternation).encode(), re.MULTILINE)

        self.suppressions: Tuple[str, ...] = suppressions
        self.suppression_regexes: Tuple[Pattern[bytes], ...] = tuple(
            re.compile(s.encode(), re.MULTILINE) for s in suppressions
        )
        self.reset_regex: Optional[Pattern[bytes]] = None
        if reset_markers:
            joined = "|".join(f"(?:{m})" for m in reset_markers)
            self.reset_regex = re.compile(line_regex(joined).encode(), re.MULTILINE)

        by_type: Dict[CrashType, List[Tuple[PatternRule, TitleFormat]]] = {}
        for rule in rules:
            for fmt in rule.titles:
                if isinstance(fmt.crash_type, CrashType):
                    types = [fmt.crash_type]
                elif fmt.crash_type is None:
                    types = [rule.crash_type]
                else:
                    # Typed by callable: may yield any type, checked at render time.
                    types = list(CrashType)
                for t in types:
                    by_type.setdefault(t, []).append((rule, fmt))
        self._titles_by_type = by_type

    def rule_for(self, match: Match[bytes]) -> PatternRule:
        """The rule whose start marker produced *match*."""
        for name, value in match.groupdict().items():
            if value is not None:
                return self.rules[int(name[1:])]
        raise ValueError("match did not come from the start regex")

    def titles_for(self, crash_type: CrashType) -> List[Tuple[PatternRule, TitleFormat]]:
        """Title formats that can produce *crash_type*, with their rules."""
        return self._titles_by_type.get(crash_type, [])

    def __repr__(self) -> str:
        return f"Registry({self.target}, {len(self.rules)} rules)"


@functools.lru_cache(maxsize=None)
def build_registry(target: TargetDescriptor) -> Registry:
    """Return the registry for *target*, raising ``NoSuchTargetError``."""
    rules = os_rules(target)
    return Registry(
        target,
        rules.build(target.vm_arch),
        suppressions=common.SUPPRESSIONS + rules.suppressions,
        reset_markers=common.RESET_MARKERS + rules.reset_markers,
    )
