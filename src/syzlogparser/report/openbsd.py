"""
report.openbsd — Crash signatures of OpenBSD console output.
"""

from __future__ import annotations

from ..core.models import CrashType
from . import common
from .rules import FrameRule, OsRules, PatternRule, TitleFormat, skip_list

# "uvm_fault(0xfffffd8, 0x0, 0, 1) at uvm_fault+0x3c"
TRACE_FRAME = r"^(?:\[[^\]\n]*\])*[ \t]*([A-Za-z_][\w.]*)\([^\n]*\) at [\w.]+\+0x"

SKIP = skip_list((
    r"db_enter", r"db_ktrap", r"panic", r"__assert", r"kerntrap", r"trap", r"alltraps",
    r"calltrap", r"witness_checkorder", r"witness_\w+", r"__mp_lock\w*", r"__mtx_enter\w*",
    r"mtx_enter\w*", r"rw_enter\w*", r"_rw_enter\w*", r"_kernel_lock\w*", r"Xsyscall\w*",
    r"syscall", r"mi_syscall", r"dosyscall",
))

STACK = FrameRule(TRACE_FRAME, after=r"(?:Stopped at|db_enter|panic:)", skip=SKIP)

END = (r"ddb\{\d+\}> ", r"https://www\.openbsd\.org/ddb\.html", r"end trace frame")

LOCK_ORDER_REVERSAL = PatternRule(
    name="lock-order-reversal",
    start=r"witness: lock order reversal:",
    crash_type=CrashType.LOCKDEP,
    titles=(
        TitleFormat(r"witness: lock order reversal:\s*\n[^\n]*?1st [^\n]*?\(([^)\n]+)\)[^\n]*\n[^\n]*?2nd [^\n]*?\(([^)\n]+)\)",
                    "witness: lock order reversal: {0} -> {1}", strip_identifiers=False),
        TitleFormat(r"witness: lock order reversal:", "witness: lock order reversal in {frame}"),
    ),
    frames=(FrameRule(TRACE_FRAME, skip=SKIP),),
    end=END,
    priority=60,
    min_lines=4,
    max_lines=200,
)

PAGE_FAULT = PatternRule(
    name="page-fault",
    start=r"(?:kernel: page fault trap|uvm_fault\()",
    crash_type=CrashType.PAGE_FAULT,
    titles=(
        TitleFormat(r"(?:kernel: page fault trap|uvm_fault\()", "kernel: page fault trap in {frame}"),
        TitleFormat(r"uvm_fault\(", "uvm_fault in {frame}", alt=True),
    ),
    frames=(STACK,),
    end=END,
    priority=70,
    min_lines=4,
    max_lines=200,
)

ASSERTION = PatternRule(
    name="assertion",
    start=r"panic: kernel diagnostic assertion ",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r'panic: kernel diagnostic assertion "([^"\n]+)" failed', "assert {0} failed in {frame}"),
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
        TitleFormat(r"panic: pool_do_get: ([^\n:]+): page empty", "panic: pool_do_get: {0}: page empty"),
        TitleFormat(r"panic: ([^\n]+)", "panic: {0}"),
    ),
    frames=(STACK,),
    end=END,
    priority=30,
    min_lines=3,
    max_lines=200,
    nested_ok=True,
)

OS = OsRules(
    name="openbsd",
    arches=("amd64",),
    rules=(LOCK_ORDER_REVERSAL, PAGE_FAULT, ASSERTION, PANIC, common.SYZFAIL),
    reset_markers=(r"OpenBSD \d+\.\d+",),
)
