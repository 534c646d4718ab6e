from syzlogparser.report.scanner import advance_lines, find_interrupt, find_next, header_kind, line_end, line_start

from conftest import KASAN_LOG, PANIC_LOG, WARNING_LOG


def test_no_marker_returns_none(registry):
    assert find_next(b"", 0, registry) is None
    assert find_next(b"hello\nworld\n", 0, registry) is None
    assert find_next(PANIC_LOG, len(PANIC_LOG), registry) is None


def test_finds_earliest_header(registry):
    cand = find_next(PANIC_LOG, 0, registry)
    assert cand.rule.name == "panic"
    assert PANIC_LOG[cand.start:].startswith(b"[    1.235001] Kernel panic - not syncing")
    assert cand.header_end == line_end(PANIC_LOG, cand.start)


def test_header_block_spans_repeated_markers(registry):
    cand = find_next(KASAN_LOG, 0, registry)
    assert cand.rule.name == "kasan"
    assert KASAN_LOG[cand.start:].startswith(b"BUG: KASAN: use-after-free in sanity_check_inode")
    assert KASAN_LOG[cand.header_end:].startswith(b"Read of size 4")


def test_start_inside_a_line_is_not_a_header(registry):
    cand = find_next(PANIC_LOG, 0, registry)
    assert find_next(PANIC_LOG, cand.start + 1, registry) is None


def test_ignored_header_is_skipped(registry):
    buf = b"WARNING: /etc/ssh/moduli does not exist, using fixed modulus\n" + PANIC_LOG
    cand = find_next(buf, 0, registry)
    assert cand.rule.name == "panic"
    assert cand.start > 0


def test_marker_must_start_the_line(registry):
    assert find_next(b"something: Kernel panic - not syncing: x\n", 0, registry) is None


def test_line_helpers():
    buf = b"a\nbb\nccc"
    assert line_end(buf, 0) == 2
    assert line_end(buf, 5) == len(buf)
    assert advance_lines(buf, 0, 2) == 5
    assert advance_lines(buf, 0, 10) == len(buf)
    assert line_start(buf, 3) == 2
    assert line_start(buf, 0) == 0


def test_distinct_headers_of_one_rule_are_separate(registry):
    buf = (
        b"BUG: sleeping function called from invalid context at mm/slab.h:738\n"
        b"BUG: scheduling while atomic: syz.0.1/123/0x00000002\n"
    )
    cand = find_next(buf, 0, registry)
    assert cand.rule.name == "bug"
    assert cand.header_end == line_end(buf, 0)
    assert find_next(buf, cand.header_end, registry).start == cand.header_end

    buf = b"Kernel panic - not syncing: Fatal exception\nKernel panic - not syncing: Attempted to kill init!\n"
    assert find_next(buf, 0, registry).header_end == line_end(buf, 0)


def test_header_kind_ignores_the_frame(registry):
    kasan = registry.rules[[r.name for r in registry.rules].index("kasan")]
    first = header_kind(kasan, b"BUG: KASAN: use-after-free in sanity_check_inode fs/f2fs/inode.c:275 [inline]\n")
    second = header_kind(kasan, b"BUG: KASAN: use-after-free in f2fs_iget+0x43aa/0x4dc0 fs/f2fs/inode.c:514\n")
    other = header_kind(kasan, b"BUG: KASAN: slab-out-of-bounds in f2fs_iget+0x43aa/0x4dc0\n")
    assert first is not None
    assert first == second
    assert first != other
    assert header_kind(kasan, b"BUG: KASAN:\n") is None


def test_find_interrupt(registry):
    buf = WARNING_LOG + PANIC_LOG + b"BUG: KASAN: wild-memory-access in foo+0x1/0x2\n"
    start = find_next(buf, 0, registry)
    # The nested panic header does not interrupt anything.
    assert find_interrupt(buf, start.header_end, len(buf), registry) == buf.index(b"BUG: KASAN")
    assert find_interrupt(buf, start.header_end, len(WARNING_LOG), registry) is None
