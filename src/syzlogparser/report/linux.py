"""
report.linux — Crash signatures of Linux console output.

Covers the sanitizers (KASAN, KMSAN, KFENCE, UBSAN, KCSAN), lockdep,
hung tasks and RCU stalls, kmemleak, oopses (GPF, page faults,
``kernel BUG``), ``WARNING``/``BUG`` splats and panics.
"""

from __future__ import annotations

from typing import Tuple

from ..core.models import CrashType
from . import common
from .rules import STACK_FRAME, FrameRule, OsRules, PatternRule, TitleFormat, skip_list, strip_offsets

# ── Known unimportant / infrastructure stack functions ────────────────

UNIMPORTANT_STACK_FUNCTIONS: Tuple[str, ...] = (
    r"__?dump_stack\w*", r"dump_stack_lvl", r"show_stack", r"show_trace_log_lvl",
    r"__?kasan_\w+", r"kasan_\w+", r"__?asan_\w+", r"check_memory_region\w*",
    r"print_address_description\w*", r"print_report", r"describe_object\w*",
    r"__?kmsan_\w+", r"kmsan_\w+", r"__msan_\w+",
    r"__?ubsan_\w+", r"ubsan_\w+",
    r"kfence_\w+", r"__kfence_\w+",
    r"kcsan_\w+", r"__tsan_\w+",
    r"panic", r"vpanic", r"oops_enter", r"oops_exit", r"die", r"__die\w*", r"die_body",
    r"do_trap", r"do_error_trap", r"do_general_protection", r"exc_\w+", r"asm_exc_\w+",
    r"handle_bug", r"report_bug", r"__warn", r"warn_slowpath\w*", r"__warn_printk",
    r"check_panic_on_warn",
    r"page_fault_oops", r"kernelmode_fixup_or_oops\w*", r"__bad_area_nosemaphore",
    r"bad_area_nosemaphore", r"do_user_addr_fault", r"handle_page_fault", r"no_context",
    r"do_page_fault", r"do_translation_fault", r"do_mem_abort", r"el1_abort", r"el1h_64_sync\w*",
    r"__do_kernel_fault", r"die_kernel_fault",
    r"entry_SYSCALL_64\w*", r"do_syscall_64", r"do_syscall_x64", r"__x64_sys_\w+",
    r"el0_svc\w*", r"invoke_syscall", r"do_el0_svc",
    r"__might_\w+", r"might_\w+", r"___might_sleep",
)

ALLOCATOR_FUNCTIONS: Tuple[str, ...] = (
    r"kmalloc\w*", r"__kmalloc\w*", r"kzalloc\w*", r"kcalloc", r"kvmalloc\w*", r"kmemdup\w*",
    r"kmem_cache_alloc\w*", r"slab_alloc\w*", r"__slab_alloc\w*", r"___slab_alloc",
    r"slab_post_alloc_hook", r"kmemleak_alloc\w*", r"alloc_pages\w*", r"__alloc_pages\w*",
    r"krealloc\w*", r"vmalloc\w*", r"__vmalloc\w*", r"kstrdup\w*", r"kmem_cache_zalloc",
)

SCHEDULER_FUNCTIONS: Tuple[str, ...] = (
    r"__schedule", r"schedule", r"schedule_timeout\w*", r"schedule_preempt_disabled",
    r"io_schedule\w*", r"context_switch", r"__switch_to\w*", r"preempt_schedule\w*",
    r"__?mutex_lock\w*", r"mutex_lock\w*", r"rwsem_down_\w+", r"__down\w*", r"down_\w+",
    r"wait_for_completion\w*", r"__wait_for_common", r"do_wait_for_common", r"__flush_work",
    r"flush_work", r"rt_mutex_\w+", r"__rt_mutex_\w+", r"percpu_down_\w+",
)

LOCKDEP_FUNCTIONS: Tuple[str, ...] = (
    r"lock_acquire", r"__lock_acquire", r"lock_release", r"validate_chain", r"check_prev_add",
    r"check_prevs_add", r"check_noncircular", r"print_circular_bug\w*", r"print_usage_bug",
    r"mark_lock\w*", r"valid_state", r"lockdep_\w+", r"check_deadlock", r"print_deadlock_bug",
    r"_raw_spin_lock\w*", r"_raw_read_lock\w*", r"_raw_write_lock\w*", r"spin_lock\w*",
    r"__?mutex_lock\w*", r"mutex_lock\w*", r"down_\w+", r"rcu_lock_acquire", r"rcu_read_lock",
    r"lockdep_rcu_suspicious",
)

_SKIP = skip_list(UNIMPORTANT_STACK_FUNCTIONS)

CALL_TRACE = r"Call [Tt]race:"

STACK = FrameRule(STACK_FRAME, after=CALL_TRACE, skip=_SKIP)
HANG_STACK = FrameRule(STACK_FRAME, after=CALL_TRACE, skip=skip_list(UNIMPORTANT_STACK_FUNCTIONS, SCHEDULER_FUNCTIONS))
LOCKDEP_STACK = FrameRule(
    STACK_FRAME, after=r"stack backtrace:", skip=skip_list(UNIMPORTANT_STACK_FUNCTIONS, LOCKDEP_FUNCTIONS)
)
LEAK_STACK = FrameRule(STACK_FRAME, after=r"backtrace", skip=skip_list(UNIMPORTANT_STACK_FUNCTIONS, ALLOCATOR_FUNCTIONS))

# Instruction-pointer line per architecture.
_IP_PREFIX = r"^(?:\[[^\]\n]*\])*[ \t]*"
_FUNC = r"([A-Za-z_][\w.]*)\+0x"
IP_FRAMES = {
    "amd64": FrameRule(_IP_PREFIX + r"RIP: [0-9a-f]{4}:(?:\[<[0-9a-f]+>\] )?" + _FUNC, skip=_SKIP),
    "386": FrameRule(_IP_PREFIX + r"EIP: (?:[0-9a-f]{4}:)?(?:\[<[0-9a-f]+>\] )?" + _FUNC, skip=_SKIP),
    "arm64": FrameRule(_IP_PREFIX + r"pc : " + _FUNC, skip=_SKIP),
    "arm": FrameRule(_IP_PREFIX + r"PC is at " + _FUNC, skip=_SKIP),
    "riscv64": FrameRule(_IP_PREFIX + r"epc : " + _FUNC, skip=_SKIP),
    "ppc64le": FrameRule(_IP_PREFIX + r"NIP \[[0-9a-f]+\] " + _FUNC, skip=_SKIP),
    "s390x": FrameRule(_IP_PREFIX + r"Krnl PSW : [0-9a-f]+ [0-9a-f]+ \(" + _FUNC, skip=_SKIP),
    "mips64le": FrameRule(_IP_PREFIX + r"epc\s+: [0-9a-f]+ " + _FUNC, skip=_SKIP),
    "loong64": FrameRule(_IP_PREFIX + r"(?:ERA|era):? +[0-9a-f]+ " + _FUNC, skip=_SKIP),
}

# ── Section boundaries ────────────────────────────────────────────────

END_TRACE = r"---\[ end trace [0-9a-f]+ \]---"
END_PANIC = r"---\[ end (?:Kernel panic|kernel panic)"
END_SANITIZER = r"={40,}"
END_TASK = r"[ \t]*</TASK>"
BLANK_LINE = r"[ \t]*$"


def _kasan_type(groups: Tuple[str, ...]) -> CrashType:
    kind, access = groups[0], groups[2]
    if kind == "use-after-free" or kind.endswith("-use-after-free"):
        return CrashType.KASAN_USE_AFTER_FREE
    if access == "Write":
        return CrashType.KASAN_WRITE
    return CrashType.KASAN_READ


def _page_fault_type(groups: Tuple[str, ...]) -> CrashType:
    if "NULL pointer" in groups[0]:
        return CrashType.NULL_DEREF
    return CrashType.PAGE_FAULT


_KASAN_ACCESS = r"BUG: KASAN: ([a-z\-]+) in (\S+)[\s\S]*?\b(Read|Write) of size \d+"

KASAN = PatternRule(
    name="kasan",
    start=r"BUG: KASAN: ",
    crash_type=CrashType.KASAN_UNKNOWN,
    titles=(
        TitleFormat(_KASAN_ACCESS, "KASAN: {0} {2} in {frame}", crash_type=_kasan_type, frame_group=1),
        TitleFormat(r"BUG: KASAN: double-free(?: or invalid-free)? in (\S+)", "KASAN: double-free in {frame}",
                    crash_type=CrashType.KASAN_DOUBLE_FREE, frame_group=0),
        TitleFormat(r"BUG: KASAN: invalid-free in (\S+)", "KASAN: invalid-free in {frame}",
                    crash_type=CrashType.KASAN_INVALID_FREE, frame_group=0),
        TitleFormat(r"BUG: KASAN: ([a-z\-]+) in (\S+)", "KASAN: {0} in {frame}", frame_group=1),
        TitleFormat(_KASAN_ACCESS, "KASAN: {0} in {frame}", crash_type=_kasan_type, frame_group=1, alt=True),
    ),
    frames=(STACK,),
    end=(END_SANITIZER,),
    priority=100,
    min_lines=8,
    max_lines=400,
)

KMSAN = PatternRule(
    name="kmsan",
    start=r"BUG: KMSAN: ",
    crash_type=CrashType.KMSAN_UNINIT,
    titles=(
        TitleFormat(r"BUG: KMSAN: ([a-z\-]+) in (\S+)", "KMSAN: {0} in {frame}", frame_group=1),
    ),
    frames=(STACK,),
    end=(END_SANITIZER,),
    priority=100,
    min_lines=6,
    max_lines=400,
)

KFENCE = PatternRule(
    name="kfence",
    start=r"BUG: KFENCE: ",
    crash_type=CrashType.KFENCE,
    titles=(
        TitleFormat(r"BUG: KFENCE: ([a-z\-]+)(?: (read|write))? in (\S+)", "KFENCE: {0} {1} in {frame}",
                    frame_group=2),
    ),
    frames=(STACK,),
    end=(END_SANITIZER,),
    priority=100,
    min_lines=6,
    max_lines=400,
)

KCSAN = PatternRule(
    name="kcsan",
    start=r"BUG: KCSAN: ",
    crash_type=CrashType.DATA_RACE,
    titles=(
        TitleFormat(r"BUG: KCSAN: ([a-z\-]+) in (\S+) / (\S+)", "KCSAN: {0} in {1} / {2}",
                    frame_group=1, normalize=strip_offsets),
        TitleFormat(r"BUG: KCSAN: ([a-z\-]+) in (\S+)", "KCSAN: {0} in {frame}", frame_group=1),
    ),
    end=(END_SANITIZER,),
    priority=100,
    min_lines=6,
    max_lines=200,
)

UBSAN = PatternRule(
    name="ubsan",
    start=r"UBSAN: ",
    crash_type=CrashType.UBSAN,
    titles=(
        TitleFormat(r"UBSAN: ([\w\-]+(?: [\w\-]+)*?) in \S+", "UBSAN: {0} in {frame}"),
        TitleFormat(r"UBSAN: ([^\n]+)", "UBSAN: {0}"),
    ),
    frames=(STACK,),
    end=(END_SANITIZER,),
    priority=100,
    min_lines=4,
    max_lines=300,
)

LOCKDEP = PatternRule(
    name="lockdep",
    start=r"WARNING: (?:possible (?:circular|recursive|irq lock inversion)|inconsistent lock state|"
          r"suspicious RCU usage|lock held when returning|bad unlock balance|held lock freed|"
          r"nested lock)",
    crash_type=CrashType.LOCKDEP,
    titles=(
        TitleFormat(r"WARNING: possible (?:circular locking dependency|recursive locking)", "possible deadlock in {frame}"),
        TitleFormat(r"WARNING: inconsistent lock state", "inconsistent lock state in {frame}"),
        TitleFormat(r"WARNING: suspicious RCU usage[\s\S]*?\n[^\n]*?(\S+\.[ch]:\d+)", "suspicious RCU usage at {0}",
                    strip_identifiers=False),
        TitleFormat(r"WARNING: ([a-z][a-z ]+[a-z])", "WARNING: {0} in {frame}"),
        TitleFormat(r"WARNING: possible circular locking dependency detected",
                    "WARNING: possible circular locking dependency detected", alt=True),
    ),
    frames=(LOCKDEP_STACK, STACK),
    end=(END_TASK, END_TRACE),
    priority=90,
    min_lines=10,
    max_lines=600,
)

HUNG_TASK = PatternRule(
    name="hung-task",
    start=r"INFO: task \S+:\d+ blocked for more than \d+ seconds",
    crash_type=CrashType.HANG,
    titles=(
        TitleFormat(r"INFO: task \S+:\d+ blocked", "INFO: task hung in {frame}"),
        TitleFormat(r"INFO: task \S+:\d+ blocked", "INFO: task hung", alt=True),
    ),
    frames=(HANG_STACK,),
    end=(END_TASK,),
    priority=80,
    min_lines=6,
    max_lines=300,
)

RCU_STALL = PatternRule(
    name="rcu-stall",
    start=r"(?:rcu: )?INFO: rcu_(?:preempt|sched|bh) (?:self-)?detected (?:expedited )?stalls?",
    crash_type=CrashType.HANG,
    titles=(
        TitleFormat(r"INFO: rcu_\w+ (?:self-)?detected (?:expedited )?stall", "INFO: rcu detected stall in {frame}"),
        TitleFormat(r"INFO: rcu_\w+ (?:self-)?detected", "INFO: rcu detected stall", alt=True),
    ),
    frames=(HANG_STACK,),
    end=(END_TASK,),
    priority=80,
    min_lines=5,
    max_lines=600,
    use_ip=True,
)

SOFT_LOCKUP = PatternRule(
    name="soft-lockup",
    start=r"watchdog: BUG: soft lockup - CPU#\d+ stuck for \d+s!",
    crash_type=CrashType.HANG,
    titles=(
        TitleFormat(r"watchdog: BUG: soft lockup", "BUG: soft lockup in {frame}"),
        TitleFormat(r"watchdog: BUG: soft lockup", "BUG: soft lockup", alt=True),
    ),
    frames=(HANG_STACK,),
    end=(END_TASK, END_TRACE),
    priority=80,
    min_lines=5,
    max_lines=300,
    use_ip=True,
)

MEMORY_LEAK = PatternRule(
    name="memory-leak",
    start=r"BUG: memory leak",
    crash_type=CrashType.MEMORY_LEAK,
    titles=(
        TitleFormat(r"BUG: memory leak", "memory leak in {frame}"),
    ),
    frames=(LEAK_STACK,),
    end=(BLANK_LINE,),
    priority=80,
    min_lines=5,
    max_lines=100,
)

GPF = PatternRule(
    name="general-protection-fault",
    start=r"general protection fault",
    crash_type=CrashType.GENERAL_PROTECTION_FAULT,
    titles=(
        TitleFormat(r"general protection fault", "general protection fault in {frame}"),
        TitleFormat(r"KASAN: (null-ptr-deref|maybe wild-memory-access) in range",
                    "KASAN: {0} in {frame}", crash_type=CrashType.GENERAL_PROTECTION_FAULT, alt=True),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    priority=70,
    min_lines=6,
    max_lines=300,
    use_ip=True,
)

PAGE_FAULT = PatternRule(
    name="page-fault",
    start=r"BUG: (?:unable to handle (?:kernel )?(?:NULL pointer dereference|paging request|page fault)|kernel NULL pointer dereference)",
    crash_type=CrashType.PAGE_FAULT,
    titles=(
        TitleFormat(r"BUG: unable to handle (?:kernel )?(NULL pointer dereference|paging request|page fault)",
                    "BUG: unable to handle kernel {0} in {frame}", crash_type=_page_fault_type),
        TitleFormat(r"BUG: kernel NULL pointer dereference", "BUG: unable to handle kernel NULL pointer dereference in {frame}",
                    crash_type=CrashType.NULL_DEREF),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    priority=70,
    min_lines=6,
    max_lines=300,
    use_ip=True,
)

ARM_PAGE_FAULT = PatternRule(
    name="arm-page-fault",
    start=r"Unable to handle kernel (?:NULL pointer dereference|paging request)",
    crash_type=CrashType.PAGE_FAULT,
    titles=(
        TitleFormat(r"Unable to handle kernel (NULL pointer dereference|paging request)",
                    "BUG: unable to handle kernel {0} in {frame}", crash_type=_page_fault_type),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    priority=70,
    min_lines=6,
    max_lines=300,
    use_ip=True,
)

TRAPS = PatternRule(
    name="trap",
    start=r"(?:divide error|invalid opcode|stack segment|double fault|kernel stack overflow)\b",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r"(divide error|invalid opcode|stack segment|double fault|kernel stack overflow)",
                    "{0} in {frame}"),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    priority=65,
    min_lines=6,
    max_lines=300,
    use_ip=True,
)

KERNEL_BUG = PatternRule(
    name="kernel-bug",
    start=r"kernel BUG at \S+",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r"kernel BUG at (\S+?):\d+", "kernel BUG in {frame}"),
        TitleFormat(r"kernel BUG at (\S+?):\d+", "kernel BUG at {0}", strip_identifiers=False, alt=True),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    priority=60,
    min_lines=6,
    max_lines=300,
    use_ip=True,
)

WARNING = PatternRule(
    name="warning",
    start=r"WARNING: ",
    crash_type=CrashType.WARNING,
    titles=(
        TitleFormat(r"WARNING: CPU: \d+ PID: \d+ at \S+ (\S+)", "WARNING in {frame}", frame_group=0),
        TitleFormat(r"WARNING: ODEBUG bug in (\S+)", "WARNING: ODEBUG bug in {frame}", frame_group=0),
        TitleFormat(r"WARNING: kernel stack (regs|frame pointer) at", "WARNING: kernel stack {0} has bad value"),
        TitleFormat(r"WARNING: (?!CPU: )([^\n]+?) at \S+", "WARNING: {0} in {frame}"),
        TitleFormat(r"WARNING: (?!CPU: )([^\n]+)", "WARNING: {0}"),
        TitleFormat(r"WARNING: CPU: \d+ PID: \d+ at (\S+?):\d+", "WARNING at {0}", strip_identifiers=False, alt=True),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    ignore=(
        r"WARNING: /etc/ssh/moduli does not exist",
        r"WARNING: workqueue cpumask: online intersect > possible intersect",
        r"WARNING: [Tt]he mand mount option",
        r"WARNING: Unsupported flag value\(s\) of 0x%x in DT_FLAGS_1",
        r"WARNING: Unprivileged eBPF is enabled",
        r"WARNING: fbcon: Driver '.*' missed to adjust virtual screen size",
        r"WARNING: See https.* for mitigation options",
        r"WARNING: kernel not compiled with CPU_SRSO",
    ),
    priority=50,
    min_lines=5,
    max_lines=300,
    use_ip=True,
)

BUG = PatternRule(
    name="bug",
    start=r"BUG: ",
    crash_type=CrashType.BUG,
    titles=(
        TitleFormat(r"BUG: sleeping function called from invalid context",
                    "BUG: sleeping function called from invalid context in {frame}", crash_type=CrashType.ATOMIC_SLEEP),
        TitleFormat(r"BUG: scheduling while atomic", "BUG: scheduling while atomic in {frame}",
                    crash_type=CrashType.ATOMIC_SLEEP),
        TitleFormat(r"BUG: workqueue lockup", "BUG: workqueue lockup", crash_type=CrashType.HANG),
        TitleFormat(r"BUG: spinlock ([a-z ]+?) on CPU#\d+", "BUG: spinlock {0} in {frame}"),
        TitleFormat(r"BUG: Bad page (state|map)", "BUG: Bad page {0} in {frame}"),
        TitleFormat(r"BUG: bad usercopy in (\S+)", "BUG: bad usercopy in {frame}", frame_group=0),
        TitleFormat(r"BUG: ([^\n]+?)(?: in \S+)?[ \t]*$", "BUG: {0} in {frame}"),
    ),
    frames=(STACK,),
    end=(END_TRACE,),
    ignore=(
        r"BUG: no syscalls can create resource",
        r"BUG: Unsupported flag value",
    ),
    priority=40,
    min_lines=4,
    max_lines=300,
    use_ip=True,
)

PANIC = PatternRule(
    name="panic",
    start=r"Kernel panic - not syncing: ",
    crash_type=CrashType.PANIC,
    titles=(
        TitleFormat(r"Kernel panic - not syncing: ([^\n]+)", "kernel panic: {0}"),
        TitleFormat(r"Kernel panic - not syncing", "kernel panic", alt=True),
    ),
    frames=(STACK,),
    end=(END_PANIC,),
    priority=30,
    min_lines=3,
    max_lines=300,
    nested_ok=True,
)

SUPPRESSIONS = (
    r"ODEBUG: Out of memory\. ODEBUG disabled",
    r"INFO: NMI handler \(\S+\) took too long to run",
    r"Kernel panic - not syncing: Out of memory and no killable processes",
)

RESET_MARKERS = (
    r"Linux version \d+\.\d+",
)

OS = OsRules(
    name="linux",
    arches=("amd64", "386", "arm64", "arm", "ppc64le", "s390x", "riscv64", "mips64le", "loong64"),
    rules=(
        KASAN, KMSAN, KFENCE, KCSAN, UBSAN, LOCKDEP, HUNG_TASK, RCU_STALL, SOFT_LOCKUP,
        MEMORY_LEAK, GPF, PAGE_FAULT, ARM_PAGE_FAULT, TRAPS, KERNEL_BUG, WARNING, BUG, PANIC,
        common.SYZFAIL,
    ),
    suppressions=SUPPRESSIONS,
    reset_markers=RESET_MARKERS,
    ip_frames=IP_FRAMES,
)
