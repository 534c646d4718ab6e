"""
report.darwin — Crash signatures of XNU panics.
"""

from __future__ import annotations

from ..core.models import CrashType
from . import common
from .rules import FrameRule, OsRules, PatternRule, TitleFormat, skip_list

# "0xffffff8012345678 : 0xffffff80098a5b3d mach_kernel : _vm_fault_internal + 0x1ad"
TRACE_FRAME = r"^[ \t]*0x[0-9a-f]+ : 0x[0-9a-f]+ (?:mach_kernel|kernel) : _?([A-Za-z_][\w.]*) \+ 0x"

SKIP = skip_list((
    r"handle_debugger_trap", r"DebuggerTrapWithState", r"panic_trap_to_debugger", r"panic",
    r"panic_with_options", r"Assert", r"assert_\w+", r"kernel_trap", r"trap_from_kernel",
    r"hndl_alltraps", r"return_from_trap", r"__asan_\w+", r"asan_\w+", r"unix_syscall64",
    r"hndl_unix_scall64",
))

STACK = FrameRule(TRACE_FRAME, after=r"Backtrace", skip=SKIP)

PANIC = PatternRule(
    name="panic",
    start=r"panic\(cpu \d+ caller 0x[0-9a-f]+\): ",
    crash_type=CrashType.PANIC,
    titles=(
        TitleFormat(r'panic\(cpu \d+ caller 0x[0-9a-f]+\): "?Kernel trap at 0x[0-9a-f]+, type (\d+)=([\w ]+)',
                    "Kernel trap type {0} {1} in {frame}", crash_type=CrashType.PAGE_FAULT),
        TitleFormat(r'panic\(cpu \d+ caller 0x[0-9a-f]+\): "?([^\n"]+?)"?(?:@\S+)?[ \t]*$', "panic: {0}"),
    ),
    frames=(STACK,),
    end=(r"Kernel version:", r"last started kext"),
    priority=30,
    min_lines=3,
    max_lines=300,
    nested_ok=True,
)

OS = OsRules(
    name="darwin",
    arches=("amd64",),
    rules=(PANIC, common.SYZFAIL),
    reset_markers=(r"Darwin Kernel Version \d+",),
)
