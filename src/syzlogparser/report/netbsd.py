"""
report.netbsd — Crash signatures of NetBSD console output.
"""

from __future__ import annotations

from ..core.models import CrashType
from . import common
from .rules import FrameRule, OsRules, PatternRule, TitleFormat, skip_list

# "uvm_fault_internal() at netbsd:uvm_fault_internal+0x1ab"
TRACE_FRAME = r"^(?:\[[^\]\n]*\])*[ \t]*([A-Za-z_][\w.]*)\(\) at \S+"

SKIP = skip_list((
    r"vpanic", r"panic", r"kern_assert", r"db_panic", r"db_trace\w*", r"printf_nolog", r"trap",
    r"alltraps", r"calltrap", r"breakpoint", r"kasan_\w+", r"__asan_\w+", r"kmsan_\w+",
    r"__msan_\w+", r"kcsan_\w+", r"__tsan_\w+", r"syscall", r"sy_call", r"sy_invoke",
    r"syscall_\w+", r"lockdebug_\w+", r"mutex_\w+", r"rw_\w+",
))

STACK = FrameRule(TRACE_FRAME, skip=SKIP)

END = (r"cpu\d+: End traceback", r"Stopped in pid \d+", r"dumping to dev")

KASAN = PatternRule(
    name="kasan",
    start=r"ASan: Unauthorized Access",
    crash_type=CrashType.KASAN_UNKNOWN,
    titles=(
        TitleFormat(r"ASan: Unauthorized Access In 0x[0-9a-f]+: Addr 0x[0-9a-f]+ \[(\d+) bytes?, (read|write)",
                    "KASan: Unauthorized Access {1} in {frame}",
                    crash_type=lambda g: CrashType.KASAN_WRITE if g[1] == "write" else CrashType.KASAN_READ),
        TitleFormat(r"ASan: Unauthorized Access", "KASan: Unauthorized Access in {frame}"),
    ),
    frames=(STACK,),
    end=END,
    priority=100,
    min_lines=4,
    max_lines=200,
)

UVM_FAULT = PatternRule(
    name="uvm-fault",
    start=r"(?:fatal page fault in supervisor mode|uvm_fault\()",
    crash_type=CrashType.PAGE_FAULT,
    titles=(
        TitleFormat(r"(?:fatal page fault in supervisor mode|uvm_fault\()", "page fault in {frame}"),
        TitleFormat(r"uvm_fault\(", "uvm_fault in {frame}", alt=True),
    ),
    frames=(STACK,),
    end=END,
    priority=70,
    min_lines=5,
    max_lines=200,
)

PROTECTION_FAULT = PatternRule(
    name="protection-fault",
    start=r"fatal protection fault in supervisor mode",
    crash_type=CrashType.GENERAL_PROTECTION_FAULT,
    titles=(
        TitleFormat(r"fatal protection fault", "protection fault in {frame}"),
    ),
    frames=(STACK,),
    end=END,
    priority=70,
    min_lines=5,
    max_lines=200,
)

ASSERTION = PatternRule(
    name="assertion",
    start=r"panic: kernel diagnostic assertion ",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r'panic: kernel diagnostic assertion "([^"\n]+)" failed', 'assert failed: {0}'),
    ),
    frames=(STACK,),
    end=END,
    priority=60,
    min_lines=3,
    max_lines=200,
)

PANIC = PatternRule(
    name="panic",
    start=r"panic: ",
    crash_type=CrashType.PANIC,
    titles=(
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
    name="netbsd",
    arches=("amd64",),
    rules=(KASAN, UVM_FAULT, PROTECTION_FAULT, ASSERTION, PANIC, common.SYZFAIL),
    reset_markers=(r"NetBSD \d+\.\d+",),
)
