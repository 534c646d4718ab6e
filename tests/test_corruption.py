from syzlogparser.report.classifier import classify
from syzlogparser.report.corruption import NO_FRAME, OVERLAPPING, TRUNCATED, detect_corruption
from syzlogparser.report.scanner import find_next

from conftest import ATOMIC_SLEEP_LOG, KASAN_LOG, PANIC_LOG, WARNING_LOG


def _detect(buf, registry):
    rep, section = classify(buf, find_next(buf, 0, registry), registry)
    return rep, detect_corruption(rep, buf, section, registry)


def test_well_formed_reports_are_not_corrupted(registry):
    for buf in (PANIC_LOG, WARNING_LOG, KASAN_LOG):
        _, result = _detect(buf, registry)
        assert result == (False, "")


def test_overlapping_markers(registry):
    buf = (
        b"WARNING: CPU: 0 PID: 10 at net/core/dev.c:123 dev_foo+0x12/0x40\n"
        b"Modules linked in:\n"
        b"BUG: unable to handle page fault for address: ffffffffffffffe8\n"
        b"Call Trace:\n"
        b" dev_bar+0x1/0x2\n"
    )
    rep, result = _detect(buf, registry)
    assert rep.title == "WARNING in dev_foo"
    assert result == (True, OVERLAPPING)


def test_nested_panic_is_not_overlap(registry):
    buf = (
        b"WARNING: CPU: 0 PID: 1 at kernel/foo.c:10 foo_func+0x1/0x2\n"
        b"Kernel panic - not syncing: kernel: panic_on_warn set ...\n"
        b"Call Trace:\n"
        b" foo_func+0x1/0x2\n"
        b"---[ end trace 0000000000000000 ]---\n"
    )
    _, result = _detect(buf, registry)
    assert result == (False, "")


def test_truncated_output(registry):
    buf = b"Kernel panic - not syncing: Fatal exception\n"
    rep, result = _detect(buf, registry)
    assert rep.title == "kernel panic: Fatal exception"
    assert result == (True, TRUNCATED)


def test_terminated_short_report_is_not_truncated(registry):
    buf = b"SYZFAIL: failed to open device\n(errno 2: No such file or directory)\n"
    _, result = _detect(buf, registry)
    assert result == (False, "")


def test_missing_frame(registry):
    buf = b"BUG: scheduling while atomic: syz.0.1/123/0x00000002\n" * 5
    rep, result = _detect(buf, registry)
    assert rep.title == "BUG: scheduling while atomic"
    assert result == (True, NO_FRAME)


def test_complete_dump_followed_by_another_is_not_overlap(registry):
    rep, result = _detect(ATOMIC_SLEEP_LOG + WARNING_LOG, registry)
    assert rep.end_pos < len(ATOMIC_SLEEP_LOG + WARNING_LOG)
    assert result == (False, "")


def test_dump_cut_mid_trace(registry):
    buf = (
        b"BUG: unable to handle page fault for address: ffffc90000a3c000\n"
        b"#PF: supervisor read access in kernel mode\n"
        b"RIP: 0010:memcpy_orig+0x31/0x140\n"
        b"Call Trace:\n"
        b" ext4_read_inline_data+0x10/0x30\n"
        b" ext4_readpage_inline+0x5a/0x80\n"
    ) + WARNING_LOG
    rep, result = _detect(buf, registry)
    assert rep.title == "BUG: unable to handle kernel page fault in memcpy_orig"
    assert result == (False, "")

    cut = buf.replace(b"[   10.100000] ------------[ cut here ]------------\n", b"")
    rep, result = _detect(cut, registry)
    assert rep.body.endswith(b" ext4_readpage_inline+0x5a/0x80\n")
    assert result == (True, OVERLAPPING)
