import pytest

from syzlogparser.core.models import TargetDescriptor
from syzlogparser.report import Reporter, build_registry

LINUX_AMD64 = TargetDescriptor(os="linux", vm_arch="amd64")

PANIC_LOG = b"""\
[    1.234567] VFS: Cannot open root device "sda1" or unknown-block(0,0): error -6
[    1.234890] Please append a correct "root=" boot option; here are the available partitions:
[    1.235001] Kernel panic - not syncing: VFS: Unable to mount root fs on unknown-block(0,0)
[    1.235100] CPU: 0 PID: 1 Comm: swapper/0 Not tainted 6.1.0 #1
[    1.235200] Hardware name: QEMU Standard PC (i440FX + PIIX, 1996), BIOS 1.16.0 04/01/2014
[    1.235300] Call Trace:
[    1.235310]  <TASK>
[    1.235320]  dump_stack_lvl+0x45/0x5e
[    1.235330]  panic+0x10c/0x2c4
[    1.235340]  mount_block_root+0x1d9/0x1ea
[    1.235350]  prepare_namespace+0x136/0x165
[    1.235360]  kernel_init_freeable+0x258/0x27b
[    1.235370]  kernel_init+0x16/0x120
[    1.235380]  ret_from_fork+0x22/0x30
[    1.235390]  </TASK>
[    1.235400] Kernel Offset: disabled
[    1.235500] ---[ end Kernel panic - not syncing: VFS: Unable to mount root fs on unknown-block(0,0) ]---
"""

WARNING_LOG = b"""\
[   10.100000] ------------[ cut here ]------------
[   10.100001] WARNING: CPU: 1 PID: 4242 at mm/slab_common.c:123 kmem_cache_destroy+0x1a/0x30
[   10.100002] Modules linked in:
[   10.100003] CPU: 1 PID: 4242 Comm: syz.2.17 Not tainted 6.1.0 #1
[   10.100004] RIP: 0010:kmem_cache_destroy+0x1a/0x30
[   10.100005] Call Trace:
[   10.100006]  <TASK>
[   10.100007]  bpf_map_free+0x20/0x40
[   10.100008]  do_syscall_64+0x3d/0x90
[   10.100009]  </TASK>
[   10.100010] ---[ end trace 0000000000000000 ]---
"""

KASAN_LOG = b"""\
==================================================================
BUG: KASAN: use-after-free in sanity_check_inode fs/f2fs/inode.c:275 [inline]
BUG: KASAN: use-after-free in do_read_inode fs/f2fs/inode.c:415 [inline]
BUG: KASAN: use-after-free in f2fs_iget+0x43aa/0x4dc0 fs/f2fs/inode.c:514
Read of size 4 at addr ffff88812141bf78 by task syz-executor150/338

CPU: 0 PID: 338 Comm: syz-executor150 Not tainted 5.10.240-syzkaller #0
Call Trace:
 __dump_stack+0x21/0x24 lib/dump_stack.c:77
 dump_stack_lvl+0x169/0x1d8 lib/dump_stack.c:118
 print_address_description+0x7f/0x2c0 mm/kasan/report.c:248
 __kasan_report mm/kasan/report.c:435 [inline]
 kasan_report+0xe2/0x130 mm/kasan/report.c:452
 __asan_report_load4_noabort+0x14/0x20 mm/kasan/report_generic.c:308
 sanity_check_inode fs/f2fs/inode.c:275 [inline]
 do_read_inode fs/f2fs/inode.c:415 [inline]
 f2fs_iget+0x43aa/0x4dc0 fs/f2fs/inode.c:514
 f2fs_lookup+0x3ee/0xce0 fs/f2fs/namei.c:544
==================================================================
"""

ATOMIC_SLEEP_LOG = b"""\
[   20.500000] BUG: sleeping function called from invalid context at mm/slab.h:738
[   20.500001] in_atomic(): 1, irqs_disabled(): 0, non_block: 0, pid: 5120, name: syz.0.5
[   20.500002] preempt_count: 1, expected: 0
[   20.500003] CPU: 0 PID: 5120 Comm: syz.0.5 Not tainted 6.1.0 #1
[   20.500004] Call Trace:
[   20.500005]  <TASK>
[   20.500006]  dump_stack_lvl+0x45/0x5e
[   20.500007]  __might_resched+0x3c0/0x5e0
[   20.500008]  kmem_cache_alloc+0x4c/0x300
[   20.500009]  sock_alloc_inode+0x19/0x60
[   20.500010]  __sys_socket+0x11a/0x260
[   20.500011]  </TASK>
"""

OOM_LOG = b"Out of memory: Kill process 123 (syz-fuzzer) score 1000 or sacrifice child\n"


@pytest.fixture
def registry():
    return build_registry(LINUX_AMD64)


@pytest.fixture
def reporter():
    return Reporter(LINUX_AMD64)
