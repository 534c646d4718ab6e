"""
report.freebsd — Crash signatures of FreeBSD console output.
"""

from __future__ import annotations

from ..core.models import CrashType
from . import common
from .rules import FrameRule, OsRules, PatternRule, TitleFormat, skip_list

# "#3 0xffffffff80c0ffe5 at vm_fault+0x65"
BACKTRACE_FRAME = r"^(?:\[[^\]\n]*\])*[ \t]*#\d+ 0x[0-9a-f]+ at ([A-Za-z_][\w.]*)\+0x"

SKIP = skip_list((
    r"kdb_backtrace", r"kdb_enter", r"vpanic", r"panic", r"kassert_panic", r"db_trace_self\w*",
    r"trap", r"trap_fatal", r"trap_pfault", r"calltrap", r"witness_\w+", r"__mtx_\w+",
    r"_mtx_\w+", r"_sx_\w+", r"__lockmgr_\w+", r"kasan_\w+", r"__asan_\w+", r"kmsan_\w+",
    r"__msan_\w+", r"fork_exit", r"fork_trampoline", r"amd64_syscall", r"syscallenter",
    r"Xfast_syscall\w*",
))

STACK = FrameRule(BACKTRACE_FRAME, after=r"KDB: stack backtrace:", skip=SKIP)

END = (r"KDB: enter: panic", r"\[ thread pid \d+ tid \d+ \]", r"Uptime: \d+")

FATAL_TRAP = PatternRule(
    name="fatal-trap",
    start=r"Fatal trap \d+: ",
    crash_type=CrashType.PAGE_FAULT,
    titles=(
        TitleFormat(r"Fatal trap \d+: page fault while in kernel mode", "Fatal trap 12: page fault in {frame}"),
        TitleFormat(r"Fatal trap (\d+): ([^\n]+?) while in kernel mode", "Fatal trap {0}: {1} in {frame}",
                    crash_type=CrashType.BUG),
    ),
    frames=(STACK,),
    end=END,
    priority=70,
    min_lines=6,
    max_lines=200,
)

LOCK_ORDER_REVERSAL = PatternRule(
    name="lock-order-reversal",
    start=r"lock order reversal:",
    crash_type=CrashType.LOCKDEP,
    titles=(
        TitleFormat(r"lock order reversal:\s*\n[^\n]*?1st [^\n]*?\(([^)\n]+)\)[^\n]*\n[^\n]*?2nd [^\n]*?\(([^)\n]+)\)",
                    "lock order reversal: {0} -> {1}", strip_identifiers=False),
        TitleFormat(r"lock order reversal:", "lock order reversal in {frame}"),
    ),
    frames=(STACK,),
    end=(r"#\d+ 0x[0-9a-f]+ at fork_trampoline",),
    priority=60,
    min_lines=4,
    max_lines=100,
)

KASAN = PatternRule(
    name="kasan",
    start=r"panic: ASan: Invalid access",
    crash_type=CrashType.KASAN_UNKNOWN,
    titles=(
        TitleFormat(r"panic: ASan: Invalid access, (\d+)-byte (read|write) at", "KASAN: invalid-access {1} in {frame}",
                    crash_type=lambda g: CrashType.KASAN_WRITE if g[1] == "write" else CrashType.KASAN_READ),
    ),
    frames=(STACK,),
    end=END,
    priority=100,
    min_lines=4,
    max_lines=200,
)

PANIC = PatternRule(
    name="panic",
    start=r"panic: ",
    crash_type=CrashType.PANIC,
    titles=(
        TitleFormat(r"panic: (?:[\w ]+: )?[Ll]ock \(\w+\) ([\w ]+?) (?:not locked|recursed)[^\n]*",
                    "panic: lock {0} not locked in {frame}", crash_type=CrashType.LOCKDEP),
        TitleFormat(r"panic: ([^\n]+)", "panic: {0}"),
        TitleFormat(r"panic: ", "panic in {frame}", alt=True),
    ),
    frames=(STACK,),
    end=END,
    priority=30,
    min_lines=3,
    max_lines=200,
    nested_ok=True,
)

OS = OsRules(
    name="freebsd",
    arches=("amd64", "386", "arm64", "riscv64"),
    rules=(KASAN, FATAL_TRAP, LOCK_ORDER_REVERSAL, PANIC, common.SYZFAIL),
    suppressions=(
        r"panic: executor \d+: failed",
    ),
    reset_markers=(r"FreeBSD \d+\.\d+-\w+ ",),
)
