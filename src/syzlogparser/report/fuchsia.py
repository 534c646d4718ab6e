"""
report.fuchsia — Crash signatures of Zircon kernel and Fuchsia userspace.
"""

from __future__ import annotations

from ..core.models import CrashType
from . import common
from .rules import FrameRule, OsRules, PatternRule, TitleFormat, skip_list

# "   #1.1  0x00000000002c1a3b in sys_foo(int) ../../zircon/kernel/foo.cc:12 <kernel>+0x..."
TRACE_FRAME = r"^(?:\[[^\]\n]*\])*[ \t]*#\d+(?:\.\d+)?[ \t]+0x[0-9a-f]+ in ([A-Za-z_][\w:~]*)"

SKIP = skip_list((
    r"platform_halt", r"platform_specific_halt", r"_panic", r"panic\w*", r"__assert_fail\w*",
    r"__zx_panic", r"abort", r"exception_die", r"arch_exception\w*", r"x86_exception_handler",
    r"handle_exception", r"__asan_\w+", r"asan_\w+", r"__libc_start_main", r"start_main",
    r"__sanitizer_\w+",
))

STACK = FrameRule(TRACE_FRAME, skip=SKIP)

END = (r"\{\{\{reset\}\}\}", r"Halted", r"FATAL EXCEPTION ENDS")

KERNEL_PANIC = PatternRule(
    name="kernel-panic",
    start=r"ZIRCON KERNEL PANIC",
    crash_type=CrashType.PANIC,
    titles=(
        TitleFormat(r"ZIRCON KERNEL PANIC[\s\S]*?\n[^\n]*?panic \(caller [^)\n]*\): ([^\n]+)", "KERNEL PANIC: {0}"),
        TitleFormat(r"ZIRCON KERNEL PANIC[\s\S]*?\n[^\n]*?ASSERT FAILED at \(([^)\n]+)\): ([^\n]+)",
                    "ASSERT FAILED at {0}: {1}", crash_type=CrashType.BUG, strip_identifiers=False),
        TitleFormat(r"ZIRCON KERNEL PANIC", "KERNEL PANIC in {frame}"),
    ),
    frames=(STACK,),
    end=END,
    priority=50,
    min_lines=3,
    max_lines=300,
    nested_ok=True,
)

FATAL_EXCEPTION = PatternRule(
    name="fatal-exception",
    start=r"(?:<== )?fatal exception",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r"fatal (?:page fault|exception)[^\n]*?(?:PC at|, PC) ?0x[0-9a-f]+", "fatal exception in {frame}"),
        TitleFormat(r"fatal exception", "fatal exception in {frame}"),
    ),
    frames=(STACK,),
    end=END,
    priority=40,
    min_lines=3,
    max_lines=300,
)

SANITIZER = PatternRule(
    name="asan",
    start=r"==\d+==ERROR: AddressSanitizer: ",
    crash_type=CrashType.KASAN_UNKNOWN,
    titles=(
        TitleFormat(r"AddressSanitizer: heap-use-after-free", "ASAN: use-after-free in {frame}",
                    crash_type=CrashType.KASAN_USE_AFTER_FREE),
        TitleFormat(r"AddressSanitizer: ([\w\-]+)[\s\S]*?\n(READ|WRITE) of size \d+",
                    "ASAN: {0} {1} in {frame}",
                    crash_type=lambda g: CrashType.KASAN_WRITE if g[1] == "WRITE" else CrashType.KASAN_READ),
        TitleFormat(r"AddressSanitizer: ([\w\-]+)", "ASAN: {0} in {frame}"),
    ),
    frames=(STACK,),
    end=(r"==\d+==ABORTING",),
    priority=100,
    min_lines=5,
    max_lines=300,
)

OS = OsRules(
    name="fuchsia",
    arches=("amd64", "arm64"),
    rules=(SANITIZER, KERNEL_PANIC, FATAL_EXCEPTION, common.SYZFAIL),
    suppressions=(
        r"fatal exception: process \S*fuzzer\S*",
        r"ZIRCON KERNEL OOPS",
    ),
    reset_markers=(r"welcome to Zircon",),
)
