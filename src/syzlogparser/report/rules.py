"""
report.rules — Building blocks of a pattern registry.

A ``PatternRule`` recognises one family of crash reports: where it
starts, how it ends, how its title is rendered and which stack line
names the guilty function.  Rules are plain frozen data; the only code
they carry is the occasional callable for typing or normalising a title.

All regexes are written as ``str`` and compiled against ``bytes``
because console logs are not guaranteed to be valid UTF-8.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field, replace
from re import Pattern
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..core.models import CrashType

# Optional console prefix in front of every kernel line:
#   "[   12.345678] ", "[   12.345678][ T1234] ", "[  12.3][    C0] "
CONSOLE_PREFIX = r"(?:\[[ \t]*\d+\.\d+\][ \t]?)?(?:\[[ \t]*[TC][ \t]*\d+\][ \t]?)?"

# One stack-trace line, symbolized:
#   " foo+0x1f/0x40", " [<ffffffff81234567>] foo+0x1f/0x40",
#   " sanity_check_inode fs/f2fs/inode.c:275 [inline]"
STACK_FRAME = (
    r"^(?:\[[^\]\n]*\])*[ \t]+"
    r"(?:\[<[0-9a-fA-F]+>\][ \t]*)?"
    r"([A-Za-z_][\w.]*)"
    r"(?:\+0x[0-9a-fA-F]+/0x[0-9a-fA-F]+|[ \t]+[\w./-]+\.[chS]:\d+)"
)

TitleType = Union[CrashType, Callable[[Tuple[str, ...]], CrashType], None]

_FORMATTER = string.Formatter()


def _compile(source: str, flags: int = re.MULTILINE) -> Pattern[bytes]:
    return re.compile(source.encode(), flags)


def line_regex(source: str) -> str:
    """Anchor *source* at a line start, allowing a console prefix."""
    return rf"^{CONSOLE_PREFIX}(?:{source})"


def decode(b: Optional[bytes]) -> str:
    return b.decode("utf-8", errors="replace") if b is not None else ""


# ── Title / frame normalisation ───────────────────────────────────────

_WS_MULTI = re.compile(r"\s+")
_TITLE_REPLACEMENTS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\b0x[0-9a-fA-F]+\b"), "ADDR"),
    (re.compile(r"\b[0-9a-fA-F]{16}\b"), "ADDR"),
    (re.compile(r"\bsyz-executor\.?\d+\b"), "syz-executor"),
    (re.compile(r"\bsyz\.\d+\.\d+\b"), "syz"),
    (re.compile(r"\bkworker/u?\d+:\d+H?\b"), "kworker"),
]
_FRAME_OFFSET = re.compile(r"\+0x[0-9a-fA-F]+(?:/0x[0-9a-fA-F]+)?$")
_FRAME_SUFFIX = re.compile(r"(?:\.(?:isra|constprop|part|cold|llvm|lto_priv)(?:\.\d+)?)+$")
_FRAME_SLOT = re.compile(r"\s*\b(?:in|at)\s+\{frame\}|\{frame\}")


def normalize_title(title: str, strip_identifiers: bool = True) -> str:
    title = _WS_MULTI.sub(" ", title).strip()
    if strip_identifiers:
        for regex, repl in _TITLE_REPLACEMENTS:
            title = regex.sub(repl, title)
    return title.rstrip(" :,")


def normalize_frame(frame: str) -> str:
    """``foo.isra.0+0x1f/0x40`` → ``foo``."""
    frame = _FRAME_OFFSET.sub("", frame.strip())
    return _FRAME_SUFFIX.sub("", frame)


def strip_offsets(title: str) -> str:
    """Drop ``+0x…/0x…`` offsets from every symbol in a title."""
    return re.sub(r"\+0x[0-9a-fA-F]+(?:/0x[0-9a-fA-F]+)?", "", title)


# ── Rule data ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TitleFormat:
    """Renders a report title from a regex match over the report body.

    ``fmt`` uses positional ``{0}``, ``{1}`` … for the regex groups and
    ``{frame}`` for the extracted frame.  When no frame is available the
    slot is dropped together with a leading ``in``/``at``.
    """

    pattern: str
    fmt: str
    crash_type: TitleType = None
    frame_group: Optional[int] = None
    normalize: Optional[Callable[[str], str]] = None
    strip_identifiers: bool = True
    alt: bool = False
    regex: Pattern[bytes] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        regex = _compile(self.pattern)
        object.__setattr__(self, "regex", regex)
        for _, name, _, _ in _FORMATTER.parse(self.fmt):
            if name is None or name == "frame":
                continue
            if not name.isdigit() or int(name) >= regex.groups:
                raise ValueError(f"title format {self.fmt!r} refers to missing group {name!r}")
        if self.frame_group is not None and self.frame_group >= regex.groups:
            raise ValueError(f"title pattern {self.pattern!r} has no group {self.frame_group}")

    @property
    def needs_frame(self) -> bool:
        return "{frame}" in self.fmt

    def resolve_type(self, groups: Tuple[str, ...], default: CrashType) -> CrashType:
        if self.crash_type is None:
            return default
        if isinstance(self.crash_type, CrashType):
            return self.crash_type
        return self.crash_type(groups)

    def render(self, groups: Tuple[str, ...], frame: str) -> str:
        fmt = self.fmt if frame else _FRAME_SLOT.sub("", self.fmt)
        title = fmt.format(*groups, frame=frame)
        if self.normalize is not None:
            title = self.normalize(title)
        return normalize_title(title, self.strip_identifiers)


@dataclass(frozen=True)
class FrameRule:
    """Finds the guilty function in a report body.

    ``pattern`` must capture the function name in group 1.  With
    ``after`` set, only text following that marker is searched.  Names
    matching ``skip`` (anchored) are infrastructure and passed over.
    """

    pattern: str
    after: Optional[str] = None
    skip: str = ""
    regex: Pattern[bytes] = field(init=False, repr=False, compare=False)
    after_regex: Optional[Pattern[bytes]] = field(init=False, repr=False, compare=False)
    skip_regex: Optional[Pattern[str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", _compile(self.pattern))
        object.__setattr__(self, "after_regex", _compile(self.after) if self.after else None)
        object.__setattr__(self, "skip_regex", re.compile(rf"(?:{self.skip})$") if self.skip else None)

    def extract(self, body: bytes) -> str:
        pos = 0
        if self.after_regex is not None:
            m = self.after_regex.search(body)
            if not m:
                return ""
            pos = m.end()
        for m in self.regex.finditer(body, pos):
            func = normalize_frame(decode(m.group(1)))
            if not func:
                continue
            if self.skip_regex is not None and self.skip_regex.match(func):
                continue
            return func
        return ""


@dataclass(frozen=True)
class PatternRule:
    """One crash signature of a target.

    ``start`` is matched at line starts (after an optional console
    prefix).  The section ends at the first ``end`` line (inclusive) or
    after ``max_lines`` lines.  Reports shorter than ``min_lines`` that
    run into the end of the buffer are considered truncated.  Header
    lines matching any of ``ignore`` are not crashes at all.
    ``nested_ok`` rules may legitimately appear inside other reports.
    ``use_ip`` prepends the target's instruction-pointer frame rule.
    """

    name: str
    start: str
    crash_type: CrashType
    titles: Tuple[TitleFormat, ...]
    frames: Tuple[FrameRule, ...] = ()
    priority: int = 0
    end: Tuple[str, ...] = ()
    ignore: Tuple[str, ...] = ()
    min_lines: int = 1
    max_lines: int = 1000
    nested_ok: bool = False
    use_ip: bool = False
    start_regex: Pattern[bytes] = field(init=False, repr=False, compare=False)
    end_regex: Optional[Pattern[bytes]] = field(init=False, repr=False, compare=False)
    ignore_regexes: Tuple[Pattern[bytes], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.titles:
            raise ValueError(f"rule {self.name} has no title formats")
        object.__setattr__(self, "start_regex", _compile(line_regex(self.start)))
        end_regex = None
        if self.end:
            joined = "|".join(f"(?:{e})" for e in self.end)
            end_regex = _compile(line_regex(joined) + r"[^\n]*\n?")
        object.__setattr__(self, "end_regex", end_regex)
        object.__setattr__(self, "ignore_regexes", tuple(_compile(i) for i in self.ignore))

    def is_ignored(self, line: bytes) -> bool:
        return any(r.search(line) for r in self.ignore_regexes)

    def with_ip_frame(self, ip_rule: Optional[FrameRule]) -> PatternRule:
        if not self.use_ip or ip_rule is None:
            return self
        return replace(self, frames=(ip_rule,) + self.frames)


@dataclass(frozen=True)
class OsRules:
    """Everything needed to build the registries of one operating system."""

    name: str
    arches: Tuple[str, ...]
    rules: Tuple[PatternRule, ...]
    suppressions: Tuple[str, ...] = ()
    reset_markers: Tuple[str, ...] = ()
    ip_frames: Dict[str, FrameRule] = field(default_factory=dict)

    def build(self, arch: str) -> List[PatternRule]:
        ip_rule = self.ip_frames.get(arch)
        return [rule.with_ip_frame(ip_rule) for rule in self.rules]


def skip_list(*groups: Iterable[str]) -> str:
    """Join function-name regex fragments into one alternation."""
    return "|".join(item for group in groups for item in group)
