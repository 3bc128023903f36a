import pytest

from tinyunix.vm import (
    MAXVA,
    PGSIZE,
    BadAddress,
    MappingError,
    OutOfMemory,
    PageTable,
    PhysicalMemory,
    PteFlag,
)


@pytest.fixture
def memory():
    return PhysicalMemory(64)


@pytest.fixture
def table(memory):
    return PageTable(memory)


def test_map_and_walkaddr(memory, table):
    pa = memory.alloc()
    table.map_pages(5 * PGSIZE, PGSIZE, pa, PteFlag.R | PteFlag.U)
    assert table.walkaddr(5 * PGSIZE) == pa
    assert table.walkaddr(6 * PGSIZE) is None


def test_walkaddr_requires_user_bit(memory, table):
    pa = memory.alloc()
    table.map_pages(0, PGSIZE, pa, PteFlag.R | PteFlag.W)
    assert table.walkaddr(0) is None
    assert table.walk(0) is not None and table.walkaddr(0) is None


def test_remap_raises(memory, table):
    pa = memory.alloc()
    table.map_pages(0, PGSIZE, pa, PteFlag.R | PteFlag.U)
    with pytest.raises(MappingError, match="remap"):
        table.map_pages(0, PGSIZE, pa, PteFlag.R | PteFlag.U)


def test_walk_rejects_address_beyond_maxva(table):
    with pytest.raises(MappingError):
        table.walk(MAXVA)
    assert table.walkaddr(MAXVA) is None
    assert table.walkaddr(0xFFFFFFFFFFFFFFFF) is None


def test_copy_round_trip_across_page_boundary(table):
    assert table.grow(0, 2 * PGSIZE) == 2 * PGSIZE
    data = bytes(range(256)) * 4
    table.copy_out(PGSIZE - 100, data)
    assert table.copy_in(PGSIZE - 100, len(data)) == data


def test_grown_memory_is_zeroed(table):
    table.grow(0, PGSIZE)
    assert table.copy_in(0, 32) == bytes(32)


def test_copy_out_to_unmapped_raises(table):
    with pytest.raises(BadAddress):
        table.copy_out(0x80000000, b"x")
    with pytest.raises(BadAddress):
        table.copy_in(0xFFFFFFFFFFFFFFFF, 1)


def test_copy_in_str_stops_at_nul(table):
    table.grow(0, PGSIZE)
    table.copy_out(10, b"hello\0world")
    assert table.copy_in_str(10, 100) == b"hello"


def test_copy_in_str_without_nul_within_limit(table):
    table.grow(0, PGSIZE)
    table.copy_out(0, b"abcdef")
    with pytest.raises(BadAddress):
        table.copy_in_str(0, 3)


def test_copy_in_str_crossing_end_of_memory(table):
    table.grow(0, PGSIZE)
    table.copy_out(PGSIZE - 1, b"x")
    with pytest.raises(BadAddress):
        table.copy_in_str(PGSIZE - 1, 10)


def test_grow_to_smaller_size_keeps_old(table):
    table.grow(0, 2 * PGSIZE)
    assert table.grow(2 * PGSIZE, PGSIZE) == 2 * PGSIZE
    assert table.walkaddr(PGSIZE) is not None


def test_shrink_frees_whole_pages(memory, table):
    table.grow(0, 3 * PGSIZE)
    before = memory.free_count()
    assert table.shrink(3 * PGSIZE, PGSIZE) == PGSIZE
    assert memory.free_count() == before + 2
    assert table.walkaddr(0) is not None
    assert table.walkaddr(PGSIZE) is None


def test_shrink_within_a_page_keeps_mapping(table):
    size = 10 * PGSIZE + 2048
    table.grow(0, size)
    assert table.shrink(size, size - 10) == size - 10
    assert table.walkaddr(10 * PGSIZE) is not None


def test_shrink_to_larger_size_is_a_no_op(table):
    table.grow(0, PGSIZE)
    assert table.shrink(PGSIZE, 2 * PGSIZE) == PGSIZE


def test_destroy_returns_every_page(memory):
    start = memory.free_count()
    table = PageTable(memory)
    table.grow(0, 5 * PGSIZE)
    assert memory.free_count() < start
    table.destroy(5 * PGSIZE)
    assert memory.free_count() == start


def test_destroy_with_leaf_left_raises(table):
    table.grow(0, PGSIZE)
    with pytest.raises(MappingError, match="leaf"):
        table.destroy(0)


def test_grow_out_of_memory_rolls_back():
    memory = PhysicalMemory(5)
    table = PageTable(memory)
    with pytest.raises(OutOfMemory):
        table.grow(0, 8 * PGSIZE)
    assert table.walkaddr(0) is None
    assert table.walkaddr(PGSIZE) is None
    table.destroy(0)
    assert memory.free_count() == memory.npages


def test_copy_into_copies_contents(memory, table):
    table.grow(0, 2 * PGSIZE)
    table.copy_out(100, b"parent data")
    child = PageTable(memory)
    table.copy_into(child, 2 * PGSIZE)
    assert child.copy_in(100, 11) == b"parent data"
    child.copy_out(100, b"CHILD")
    assert table.copy_in(100, 11) == b"parent data"


def test_copy_into_out_of_memory_frees_child_pages():
    memory = PhysicalMemory(12)
    parent = PageTable(memory)
    parent.grow(0, 4 * PGSIZE)
    child = PageTable(memory)
    with pytest.raises(OutOfMemory):
        parent.copy_into(child, 4 * PGSIZE)
    assert child.walkaddr(0) is None
    child.destroy(0)
    parent.destroy(4 * PGSIZE)
    assert memory.free_count() == memory.npages


def test_clear_user_blocks_access(table):
    table.grow(0, 2 * PGSIZE)
    table.clear_user(0)
    assert table.walkaddr(0) is None
    with pytest.raises(BadAddress):
        table.copy_out(0, b"x")
    assert table.walkaddr(PGSIZE) is not None


def test_clear_user_on_missing_table_raises(table):
    with pytest.raises(MappingError, match="uvmclear"):
        table.clear_user(0)


def test_load_init_places_code_at_zero(table):
    table.load_init(b"\x13\x00\x00\x00")
    assert table.copy_in(0, 8) == b"\x13\x00\x00\x00" + bytes(4)


def test_load_init_too_large(table):
    with pytest.raises(MappingError):
        table.load_init(bytes(PGSIZE))


def test_unmap_errors(table):
    with pytest.raises(MappingError, match="not aligned"):
        table.unmap(1, 1, True)
    with pytest.raises(MappingError, match="walk"):
        table.unmap(0, 1, True)
    table.grow(0, PGSIZE)
    with pytest.raises(MappingError, match="not mapped"):
        table.unmap(PGSIZE, 1, True)


def test_physical_memory_exhaustion_and_bad_free():
    memory = PhysicalMemory(2)
    a = memory.alloc()
    b = memory.alloc()
    assert a != b
    assert memory.free_count() == 0
    with pytest.raises(OutOfMemory):
        memory.alloc()
    memory.free(a)
    with pytest.raises(ValueError):
        memory.free(a)
    with pytest.raises(ValueError):
        memory.free(b + 1)


def test_physical_memory_read_write_round_trip():
    memory = PhysicalMemory(1)
    pa = memory.alloc()
    memory.write(pa + 7, b"bytes")
    assert memory.read(pa + 7, 5) == b"bytes"
    with pytest.raises(ValueError):
        memory.read(pa + PGSIZE - 1, 2)