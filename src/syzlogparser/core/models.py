"""
core.models — Canonical data models shared by the parser and the CLI.

The target descriptor, the crash-type taxonomy, and the ``Report`` value
produced for every crash section found in a console log.  All models are
frozen: a report is built once by the classifier and annotated by
copying, never by mutation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Crash classification ──────────────────────────────────────────────


class CrashType(str, Enum):
    """Closed set of crash categories a report can be classified as."""

    UNKNOWN = "unknown"
    PANIC = "panic"
    BUG = "bug"
    WARNING = "warning"
    KASAN_USE_AFTER_FREE = "kasan-use-after-free"
    KASAN_READ = "kasan-read"
    KASAN_WRITE = "kasan-write"
    KASAN_DOUBLE_FREE = "kasan-double-free"
    KASAN_INVALID_FREE = "kasan-invalid-free"
    KASAN_UNKNOWN = "kasan-unknown"
    KMSAN_UNINIT = "kmsan-uninit"
    KFENCE = "kfence"
    UBSAN = "ubsan"
    DATA_RACE = "data-race"
    LOCKDEP = "lockdep"
    ATOMIC_SLEEP = "atomic-sleep"
    HANG = "hang"
    MEMORY_LEAK = "memory-leak"
    GENERAL_PROTECTION_FAULT = "general-protection-fault"
    NULL_DEREF = "null-pointer-dereference"
    PAGE_FAULT = "page-fault"
    SYZ_FAILURE = "syz-failure"

    @classmethod
    def from_str(cls, s: str) -> CrashType:
        """Parse a crash type tag, tolerating case and ``_``/`` `` separators."""
        s_lower = s.strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == s_lower or member.name.lower().replace("_", "-") == s_lower:
                return member
        return cls.UNKNOWN


# ── Target ────────────────────────────────────────────────────────────


class TargetDescriptor(BaseModel):
    """Operating system + architecture pair a log was produced on.

    ``vm_arch`` is the architecture of the machine running the kernel,
    ``arch`` the architecture the executor was built for (they differ
    for e.g. 386 binaries fuzzing an amd64 kernel).
    """

    model_config = ConfigDict(frozen=True)

    os: str
    vm_arch: str
    arch: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_arch(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("arch"):
            data = {**data, "arch": data.get("vm_arch", "")}
        return data

    def __str__(self) -> str:
        if self.arch and self.arch != self.vm_arch:
            return f"{self.os}/{self.vm_arch}/{self.arch}"
        return f"{self.os}/{self.vm_arch}"


# ── Crash representation ──────────────────────────────────────────────


class ExecutorInfo(BaseModel):
    """Fuzzer executor process that was running when the kernel crashed."""

    model_config = ConfigDict(frozen=True)

    proc_id: int
    exec_id: int


class Report(BaseModel):
    """One crash section extracted from a console log."""

    model_config = ConfigDict(frozen=True)

    title: str
    alt_titles: List[str] = Field(default_factory=list)
    type: CrashType = CrashType.UNKNOWN
    frame: str = ""
    start_pos: int
    end_pos: int
    skip_pos: int
    suppressed: bool = False
    corrupted: bool = False
    corrupted_reason: str = ""
    executor: Optional[ExecutorInfo] = None
    body: bytes = b""

    def text(self) -> str:
        """The report body decoded for display; invalid bytes become U+FFFD."""
        return self.body.decode("utf-8", errors="replace")
