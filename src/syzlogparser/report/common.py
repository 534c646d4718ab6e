"""
report.common — Rule data shared by every operating system.
"""

from __future__ import annotations

from ..core.models import CrashType
from .rules import PatternRule, TitleFormat

# Fuzzer/infrastructure failures that show up in console output but are
# not kernel bugs.
SUPPRESSIONS = (
    r"panic: failed to start executor binary",
    r"panic: executor failed: pthread_create failed",
    r"panic: could not create temp dir",
    r"[Ff]atal error: executor failed",
    r"fatal error: runtime: out of memory",
    r"fatal error: runtime: cannot allocate memory",
    r"fatal error: unexpected signal during runtime execution",
    r"signal SIGBUS: bus error",
    r"Out of memory: Kill(?:ed)? process .* \((?:syz-fuzzer|syz-manager|sshd)\)",
    r"Killed process .* \((?:syz-fuzzer|syz-manager|sshd)\)",
    r"lowmemorykiller: Killing '(?:syz-fuzzer|sshd)'",
    r"INIT: PANIC: segmentation violation!",
)

RESET_MARKERS = (
    r"Rebooting in \d+ seconds",
    r"reboot: Restarting system",
    r"Booting the kernel",
)

SYZFAIL = PatternRule(
    name="syzfail",
    start=r"SYZFAIL: ",
    crash_type=CrashType.SYZ_FAILURE,
    titles=(
        TitleFormat(r"SYZFAIL: ([^\n]+)", "SYZFAIL: {0}", strip_identifiers=False),
    ),
    end=(r".*\(errno \d+[^)\n]*\)",),
    priority=10,
    max_lines=3,
)
