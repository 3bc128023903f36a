import pytest

from tinyunix.umalloc import HEADER_SIZE, Allocator, Arena


@pytest.fixture
def allocator():
    return Allocator(Arena(1 << 24))


def test_arena_sbrk_returns_previous_break():
    arena = Arena(1000)
    assert arena.sbrk(100) == 0
    assert arena.sbrk(50) == 100
    assert arena.brk == 150


def test_arena_rejects_overflow_and_underflow():
    arena = Arena(100)
    with pytest.raises(MemoryError):
        arena.sbrk(101)
    with pytest.raises(MemoryError):
        arena.sbrk(-1)
    assert arena.brk == 0


def test_allocations_do_not_overlap(allocator):
    sizes = [1, 10, 100, 1000, 10001, 16, 17, 5000]
    spans = sorted((allocator.malloc(n), n) for n in sizes)
    for (a, n), (b, _) in zip(spans, spans[1:]):
        assert a + n <= b - HEADER_SIZE
    for addr, n in spans:
        assert addr >= HEADER_SIZE
        assert addr + n <= allocator.arena.brk


def test_addresses_are_aligned(allocator):
    for n in (1, 3, 33, 700, 4097):
        assert allocator.malloc(n) % HEADER_SIZE == 0


def test_reuse_after_free(allocator):
    a = allocator.malloc(100)
    allocator.free(a)
    assert allocator.malloc(100) == a


def test_free_all_coalesces(allocator):
    addrs = [allocator.malloc(n) for n in (10, 200, 3000, 40, 999)]
    for addr in addrs[::2] + addrs[1::2]:
        allocator.free(addr)
    blocks = allocator.free_blocks()
    assert len(blocks) == 1
    assert blocks[0] == (0, allocator.arena.brk)


def test_large_request_grows_arena(allocator):
    addr = allocator.malloc(200000)
    assert addr + 200000 <= allocator.arena.brk


def test_exact_fit_empties_free_list(allocator):
    allocator.malloc(1)
    free_addr, free_size = allocator.free_blocks()[0]
    addr = allocator.malloc(free_size - HEADER_SIZE)
    assert addr == free_addr + HEADER_SIZE
    assert allocator.free_blocks() == []


def test_exhaustion_raises_memory_error():
    allocator = Allocator(Arena(1000))
    with pytest.raises(MemoryError):
        allocator.malloc(1)


def test_exhaust_then_free_allows_allocation_again():
    arena = Arena(1 << 20)
    allocator = Allocator(arena)
    held = []
    with pytest.raises(MemoryError):
        while True:
            held.append(allocator.malloc(10001))
    assert held
    for addr in held:
        allocator.free(addr)
    assert allocator.malloc(1024 * 20) >= HEADER_SIZE


def test_double_free_is_rejected(allocator):
    a = allocator.malloc(8)
    allocator.free(a)
    with pytest.raises(ValueError):
        allocator.free(a)


def test_free_unknown_address_is_rejected(allocator):
    with pytest.raises(ValueError):
        allocator.free(12345)


def test_negative_size_is_rejected(allocator):
    with pytest.raises(ValueError):
        allocator.malloc(-1)