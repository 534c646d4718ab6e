"""
report.reporter — Public entry point for parsing console logs.

Usage::

    from syzlogparser.report import new_reporter, parse_all

    reporter = new_reporter(TargetDescriptor(os="linux", vm_arch="amd64"))
    for rep in parse_all(reporter, log_bytes):
        print(rep.title, rep.type.value)

``Reporter.parse`` returns the earliest report of a buffer; to walk all
of them, call it again on ``buffer[report.skip_pos:]`` or use
``parse_all``, which does exactly that without copying.
"""

from __future__ import annotations

import re
from re import Pattern
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..core.config import Config
from ..core.errors import ConfigError
from ..core.log import debug_print
from ..core.models import Report, TargetDescriptor
from .classifier import classify
from .corruption import detect_corruption
from .registry import Registry, build_registry
from .scanner import find_next
from .suppression import buffer_matches_suppression
from .suppression import is_suppressed as report_is_suppressed

Buffer = Union[bytes, bytearray, memoryview, str]


def _as_bytes(buffer: Buffer) -> bytes:
    if isinstance(buffer, str):
        return buffer.encode("utf-8")
    return bytes(buffer)


def _compile_all(kind: str, patterns: Iterable[str]) -> Tuple[Pattern[bytes], ...]:
    compiled = []
    for p in patterns:
        try:
            compiled.append(re.compile(p.encode(), re.MULTILINE))
        except re.error as e:
            raise ConfigError(f"invalid {kind} regexp {p!r}: {e}") from e
    return tuple(compiled)


class Reporter:
    """Parses console logs of one target.

    Holds no mutable state after construction; one instance may be used
    from several threads.
    """

    def __init__(
        self,
        target: TargetDescriptor,
        *,
        suppressions: Sequence[str] = (),
        ignores: Sequence[str] = (),
        interests: Sequence[str] = (),
        debug: bool = False,
    ):
        self.target = target
        self.registry: Registry = build_registry(target)
        self.debug = debug
        self.suppressions = self.registry.suppression_regexes + _compile_all("suppression", suppressions)
        self.ignores = _compile_all("ignore", ignores)
        self.interests = _compile_all("interest", interests)

    def _trace(self, msg: str) -> None:
        debug_print("reporter", msg, enabled=self.debug)

    def _parse_from(self, buffer: bytes, pos: int) -> Optional[Report]:
        while pos < len(buffer):
            candidate = find_next(buffer, pos, self.registry)
            if candidate is None:
                return None
            report, section = classify(buffer, candidate, self.registry)
            self._trace(
                f"{candidate.rule.name} at [{report.start_pos}, {report.end_pos}): {report.title}"
            )
            title = report.title.encode()
            if any(regex.search(title) for regex in self.ignores):
                self._trace(f"ignored: {report.title}")
                pos = report.skip_pos
                continue
            corrupted, reason = detect_corruption(report, buffer, section, self.registry)
            if corrupted:
                self._trace(f"corrupted ({reason}): {report.title}")
            return report.model_copy(update={
                "corrupted": corrupted,
                "corrupted_reason": reason,
                "suppressed": report_is_suppressed(report, self.suppressions, self.interests),
            })
        return None

    def parse(self, buffer: Buffer) -> Optional[Report]:
        """Earliest crash report in *buffer*, or ``None``."""
        return self._parse_from(_as_bytes(buffer), 0)

    def contains_crash(self, buffer: Buffer) -> bool:
        return self.parse(buffer) is not None

    def parse_all(self, buffer: Buffer) -> List[Report]:
        data = _as_bytes(buffer)
        reports: List[Report] = []
        pos = 0
        while pos < len(data):
            report = self._parse_from(data, pos)
            if report is None:
                break
            reports.append(report)
            pos = report.skip_pos
        return reports

    def is_suppressed(self, buffer: Buffer) -> bool:
        data = _as_bytes(buffer)
        return bool(data) and buffer_matches_suppression(data, self.suppressions)

    def __repr__(self) -> str:
        return f"Reporter({self.target})"


def new_reporter(target_or_config: Union[TargetDescriptor, Config]) -> Reporter:
    """Create a reporter from a target or a loaded ``Config``.

    Raises ``NoSuchTargetError`` for unsupported targets and
    ``ConfigError`` for invalid regexps in the configuration.
    """
    if isinstance(target_or_config, Config):
        cfg = target_or_config
        return Reporter(
            cfg.resolve_target(),
            suppressions=cfg.suppressions,
            ignores=cfg.ignores,
            interests=cfg.interests,
            debug=cfg.debug,
        )
    return Reporter(target_or_config)


def parse_all(reporter: Reporter, buffer: Buffer) -> List[Report]:
    """Every report in *buffer*, in order of appearance."""
    return reporter.parse_all(buffer)


def is_suppressed(reporter: Reporter, buffer: Buffer) -> bool:
    """True if *buffer* as a whole matches a suppression pattern."""
    return reporter.is_suppressed(buffer)
