import pytest

from syzlogparser.core.models import CrashType, TargetDescriptor
from syzlogparser.report import Reporter

FREEBSD_TRAP = b"""\
Fatal trap 12: page fault while in kernel mode
cpuid = 1; apic id = 01
fault virtual address\t= 0x18
fault code\t\t= supervisor read data, page not present
instruction pointer\t= 0x20:0xffffffff80ef5b65
current process\t\t= 1234 (syz-executor)
trap number\t\t= 12
panic: page fault
cpuid = 1
KDB: stack backtrace:
#0 0xffffffff80c1d2a5 at kdb_backtrace+0x65
#1 0xffffffff80bd1b72 at vpanic+0x182
#2 0xffffffff80bd19e3 at panic+0x43
#3 0xffffffff810a7dd5 at trap_fatal+0x385
#4 0xffffffff810a7e2f at trap_pfault+0x4f
#5 0xffffffff810a7447 at trap+0x277
#6 0xffffffff81081a28 at calltrap+0x8
#7 0xffffffff80ef5b65 at vm_fault+0x65
#8 0xffffffff80ef4a2c at vm_fault_trap+0x6c
Uptime: 1m2s
"""

NETBSD_UVM_FAULT = b"""\
[  45.1234567] uvm_fault(0xffffffff81a7e5c0, 0x0, 1) -> e
[  45.1234567] fatal page fault in supervisor mode
[  45.1234567] trap type 6 code 0 rip 0xffffffff8021b5f2 cs 0x8 rflags 0x10246 cr2 0x10
[  45.1234567] curlwp 0xffffd7a1ab4a6000 pid 1234.1234 lowest kstack 0xffff9c8044a2a2c0
[  45.1234567] panic: trap
[  45.1234567] cpu0: Begin traceback...
[  45.1234567] vpanic() at netbsd:vpanic+0x18d
[  45.1234567] panic() at netbsd:panic+0x3c
[  45.1234567] trap() at netbsd:trap+0xb4e
[  45.1234567] --- trap (number 6) ---
[  45.1234567] pipe_write() at netbsd:pipe_write+0x2bd
[  45.1234567] dofilewrite() at netbsd:dofilewrite+0x8f
[  45.1234567] cpu0: End traceback...
"""

OPENBSD_UVM_FAULT = b"""\
uvm_fault(0xffffffff82a4c3c8, 0x0, 0, 1) -> e
kernel: page fault trap, code=0
Stopped at      pipe_write+0x2bd:       movq    0x10(%rax),%rdi
    TID    PID    UID     PRFLAGS     PFLAGS  CPU  COMMAND
*321654  12345      0        0x12          0    0  syz-executor
pipe_write(ffff80000e6a3e40,ffff800022c1a8e8,1) at pipe_write+0x2bd
dofilewritev(ffff800022c5b2a0,3,ffff800022c1a8e8,0) at dofilewritev+0x14d
sys_write(ffff800022c5b2a0,ffff800022c1a9a0,ffff800022c1aa00) at sys_write+0x70
end trace frame: 0x7f7ffffd7f50, count: 10
https://www.openbsd.org/ddb.html describes the minimum info required in bug
ddb{0}>
"""

FUCHSIA_PANIC = b"""\
ZIRCON KERNEL PANIC

UPTIME: 17181ms, CPU: 0
panic (caller 0xffffffff0010a7f5 frame 0xffffff9b3d617e90): stack canary corrupted
dso: id=a94d9e1ff8dd0cd55ea8b4dd0a5d2fc1f0efc0fc base=0xffffffff00100000 name=zircon.elf
   #0    0xffffffff0010a7f5 in panic_no_format(char const*) ../../zircon/kernel/lib/libc/stdio.c:20
   #1    0xffffffff00123456 in sys_vmo_read(unsigned int, void*) ../../zircon/kernel/syscalls/vmo.cc:88
Halted
"""

DARWIN_PANIC = b"""\
panic(cpu 0 caller 0xffffff80098a5b3d): "zalloc: zone map exhausted"@/Library/Caches/xnu/osfmk/kern/zalloc.c:3948
Backtrace (CPU 0), Frame : Return Address
0xffffffa0d4b13a80 : 0xffffff8009ac9e4d mach_kernel : _handle_debugger_trap + 0x3fd
0xffffffa0d4b13b10 : 0xffffff8009c0cf5d mach_kernel : _kernel_trap + 0x4fd
0xffffffa0d4b13bb0 : 0xffffff8009a9b8c4 mach_kernel : _panic_trap_to_debugger + 0x244
0xffffffa0d4b13c00 : 0xffffff8009ac9785 mach_kernel : _panic + 0x54
0xffffffa0d4b13c70 : 0xffffff8009b1ab3c mach_kernel : _zalloc_internal + 0x1cc
0xffffffa0d4b13cd0 : 0xffffff8009b1a8b2 mach_kernel : _kalloc_ext + 0x112

BSD process name corresponding to current thread: syz-executor
Kernel version:
"""


@pytest.mark.parametrize("os_name,log,title,crash_type,frame", [
    ("freebsd", FREEBSD_TRAP, "Fatal trap 12: page fault in vm_fault", CrashType.PAGE_FAULT, "vm_fault"),
    ("netbsd", NETBSD_UVM_FAULT, "page fault in pipe_write", CrashType.PAGE_FAULT, "pipe_write"),
    ("openbsd", OPENBSD_UVM_FAULT, "kernel: page fault trap in pipe_write", CrashType.PAGE_FAULT, "pipe_write"),
    ("fuchsia", FUCHSIA_PANIC, "KERNEL PANIC: stack canary corrupted", CrashType.PANIC, "sys_vmo_read"),
    ("darwin", DARWIN_PANIC, "panic: zalloc: zone map exhausted", CrashType.PANIC, "zalloc_internal"),
])
def test_os_crash_report(os_name, log, title, crash_type, frame):
    reporter = Reporter(TargetDescriptor(os=os_name, vm_arch="amd64"))
    reports = reporter.parse_all(log)
    assert len(reports) == 1
    rep = reports[0]
    assert rep.title == title
    assert rep.type == crash_type
    assert rep.frame == frame
    assert rep.start_pos == 0
    assert not rep.corrupted
    assert not rep.suppressed


def test_uvm_fault_lines_form_one_header():
    reporter = Reporter(TargetDescriptor(os="netbsd", vm_arch="amd64"))
    rep = reporter.parse(NETBSD_UVM_FAULT)
    assert rep.alt_titles == ["uvm_fault in pipe_write"]
    assert rep.end_pos == len(NETBSD_UVM_FAULT)


def test_freebsd_nested_panic_stays_in_trap_report():
    reporter = Reporter(TargetDescriptor(os="freebsd", vm_arch="amd64"))
    rep = reporter.parse(FREEBSD_TRAP)
    assert b"panic: page fault" in rep.body
    assert rep.end_pos == len(FREEBSD_TRAP)
