"""Three-level page tables over a simulated physical memory.

Addresses are 64-bit.  A virtual address below ``MAXVA`` splits into three
9-bit table indexes and a 12-bit page offset.  Page-table pages live in the
simulated physical memory, so each one holds 512 little-endian 64-bit
entries.
"""

from __future__ import annotations

import struct
from enum import IntFlag

PGSIZE = 4096
PGSHIFT = 12
MAXVA = 1 << (9 + 9 + 9 + 12 - 1)
KERNBASE = 0x80000000

_PTES_PER_PAGE = 512
_PTE = struct.Struct("<Q")


class PteFlag(IntFlag):
    """Page-table entry permission and status bits."""

    V = 1 << 0
    R = 1 << 1
    W = 1 << 2
    X = 1 << 3
    U = 1 << 4


class MappingError(Exception):
    """A page-table operation found the mappings in an impossible state."""


class OutOfMemory(MemoryError):
    """No free physical page was left."""


class BadAddress(Exception):
    """A user virtual address is not mapped for user access."""


def _round_up(x: int) -> int:
    return (x + PGSIZE - 1) & ~(PGSIZE - 1)


def _round_down(x: int) -> int:
    return x & ~(PGSIZE - 1)


def _px(level: int, va: int) -> int:
    return (va >> (PGSHIFT + 9 * level)) & 0x1FF


def _pte_to_pa(pte: int) -> int:
    return (pte >> 10) << 12


def _pa_to_pte(pa: int) -> int:
    return (pa >> 12) << 10


def _pte_flags(pte: int) -> int:
    return pte & 0x3FF


class PhysicalMemory:
    """A run of ``npages`` physical pages starting at ``KERNBASE``."""

    def __init__(self, npages: int) -> None:
        if npages < 0:
            raise ValueError("page count must not be negative")
        self.base = KERNBASE
        self.npages = npages
        self._data = bytearray(npages * PGSIZE)
        # Pages are handed out last-freed first.
        self._free = [self.base + i * PGSIZE for i in range(npages)]
        self._free_set = set(self._free)

    def _offset(self, pa: int, n: int) -> int:
        off = pa - self.base
        if n < 0 or off < 0 or off + n > len(self._data):
            raise ValueError(f"physical range {pa:#x}+{n} is out of memory")
        return off

    def alloc(self) -> int:
        """Take a free page, fill it with zeroes and return its address."""
        if not self._free:
            raise OutOfMemory("no free physical pages")
        pa = self._free.pop()
        self._free_set.discard(pa)
        off = self._offset(pa, PGSIZE)
        self._data[off:off + PGSIZE] = bytes(PGSIZE)
        return pa

    def free(self, pa: int) -> None:
        """Give the page at ``pa`` back."""
        if pa % PGSIZE or not self.base <= pa < self.base + self.npages * PGSIZE:
            raise ValueError(f"kfree: bad page address {pa:#x}")
        if pa in self._free_set:
            raise ValueError(f"kfree: page {pa:#x} is already free")
        self._free.append(pa)
        self._free_set.add(pa)

    def read(self, pa: int, n: int) -> bytes:
        """Return ``n`` bytes starting at ``pa``."""
        off = self._offset(pa, n)
        return bytes(self._data[off:off + n])

    def write(self, pa: int, data: bytes) -> None:
        """Store ``data`` starting at ``pa``."""
        off = self._offset(pa, len(data))
        self._data[off:off + len(data)] = data

    def free_count(self) -> int:
        """Number of pages not handed out."""
        return len(self._free)


class PageTable:
    """A user address space: a root page-table page and everything below it."""

    def __init__(self, memory: PhysicalMemory) -> None:
        self.memory = memory
        self.root = memory.alloc()

    def _load(self, addr: int) -> int:
        return _PTE.unpack(self.memory.read(addr, _PTE.size))[0]

    def _store(self, addr: int, value: int) -> None:
        self.memory.write(addr, _PTE.pack(value))

    def walk(self, va: int, alloc: bool = False) -> int | None:
        """Return the physical address of the leaf entry for ``va``.

        Missing intermediate tables are created when ``alloc`` is true;
        otherwise None is returned for them.
        """
        if not 0 <= va < MAXVA:
            raise MappingError("walk")
        table = self.root
        for level in (2, 1):
            addr = table + _PTE.size * _px(level, va)
            pte = self._load(addr)
            if pte & PteFlag.V:
                table = _pte_to_pa(pte)
            else:
                if not alloc:
                    return None
                table = self.memory.alloc()
                self._store(addr, _pa_to_pte(table) | PteFlag.V)
        return table + _PTE.size * _px(0, va)

    def walkaddr(self, va: int) -> int | None:
        """Physical page address of a user-accessible ``va``, else None."""
        if not 0 <= va < MAXVA:
            return None
        addr = self.walk(va)
        if addr is None:
            return None
        pte = self._load(addr)
        if not pte & PteFlag.V or not pte & PteFlag.U:
            return None
        return _pte_to_pa(pte)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map ``size`` bytes at ``va`` to physical memory starting at ``pa``."""
        if size <= 0:
            raise MappingError("mappages: empty range")
        a = _round_down(va)
        last = _round_down(va + size - 1)
        while True:
            addr = self.walk(a, alloc=True)
            if self._load(addr) & PteFlag.V:
                raise MappingError("remap")
            self._store(addr, _pa_to_pte(pa) | int(perm) | PteFlag.V)
            if a == last:
                break
            a += PGSIZE
            pa += PGSIZE

    def unmap(self, va: int, npages: int, do_free: bool = True) -> None:
        """Remove ``npages`` existing mappings from ``va``, freeing the pages if asked."""
        if va % PGSIZE:
            raise MappingError("uvmunmap: not aligned")
        for a in range(va, va + npages * PGSIZE, PGSIZE):
            addr = self.walk(a)
            if addr is None:
                raise MappingError("uvmunmap: walk")
            pte = self._load(addr)
            if not pte & PteFlag.V:
                raise MappingError("uvmunmap: not mapped")
            if _pte_flags(pte) == PteFlag.V:
                raise MappingError("uvmunmap: not a leaf")
            if do_free:
                self.memory.free(_pte_to_pa(pte))
            self._store(addr, 0)

    def load_init(self, code: bytes) -> None:
        """Place ``code``, smaller than a page, at virtual address 0."""
        if len(code) >= PGSIZE:
            raise MappingError("inituvm: more than a page")
        mem = self.memory.alloc()
        self.map_pages(0, PGSIZE, mem, PteFlag.W | PteFlag.R | PteFlag.X | PteFlag.U)
        self.memory.write(mem, bytes(code))

    def grow(self, oldsz: int, newsz: int) -> int:
        """Map zeroed pages to grow from ``oldsz`` to ``newsz``; return the new size.

        On running out of memory the pages added so far are released and
        OutOfMemory is raised.
        """
        if newsz < oldsz:
            return oldsz
        oldsz = _round_up(oldsz)
        perm = PteFlag.W | PteFlag.X | PteFlag.R | PteFlag.U
        for a in range(oldsz, newsz, PGSIZE):
            try:
                mem = self.memory.alloc()
            except OutOfMemory:
                self.shrink(a, oldsz)
                raise
            try:
                self.map_pages(a, PGSIZE, mem, perm)
            except OutOfMemory:
                self.memory.free(mem)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz: int, newsz: int) -> int:
        """Release whole pages to bring the size from ``oldsz`` down to ``newsz``."""
        if newsz >= oldsz:
            return oldsz
        if _round_up(newsz) < _round_up(oldsz):
            npages = (_round_up(oldsz) - _round_up(newsz)) // PGSIZE
            self.unmap(_round_up(newsz), npages, True)
        return newsz

    def _free_tables(self, table: int) -> None:
        raw = self.memory.read(table, PGSIZE)
        for i, (pte,) in enumerate(_PTE.iter_unpack(raw)):
            if pte & PteFlag.V and not pte & (PteFlag.R | PteFlag.W | PteFlag.X):
                self._free_tables(_pte_to_pa(pte))
                self._store(table + _PTE.size * i, 0)
            elif pte & PteFlag.V:
                raise MappingError("freewalk: leaf")
        self.memory.free(table)

    def destroy(self, sz: int) -> None:
        """Free the first ``sz`` bytes of user memory, then every table page."""
        if sz > 0:
            self.unmap(0, _round_up(sz) // PGSIZE, True)
        self._free_tables(self.root)

    def copy_into(self, other: PageTable, sz: int) -> None:
        """Copy the first ``sz`` bytes of mappings and memory into ``other``.

        If memory runs out, pages already given to ``other`` are released
        and OutOfMemory is raised.
        """
        i = 0
        try:
            for i in range(0, sz, PGSIZE):
                addr = self.walk(i)
                if addr is None:
                    raise MappingError("uvmcopy: pte should exist")
                pte = self._load(addr)
                if not pte & PteFlag.V:
                    raise MappingError("uvmcopy: page not present")
                pa = _pte_to_pa(pte)
                mem = other.memory.alloc()
                other.memory.write(mem, self.memory.read(pa, PGSIZE))
                try:
                    other.map_pages(i, PGSIZE, mem, _pte_flags(pte))
                except OutOfMemory:
                    other.memory.free(mem)
                    raise
        except OutOfMemory:
            other.unmap(0, i // PGSIZE, True)
            raise

    def clear_user(self, va: int) -> None:
        """Remove user access from the page holding ``va``."""
        addr = self.walk(va)
        if addr is None:
            raise MappingError("uvmclear")
        self._store(addr, self._load(addr) & ~PteFlag.U)

    def copy_out(self, dstva: int, data: bytes) -> None:
        """Copy ``data`` to user virtual address ``dstva``."""
        data = bytes(data)
        pos = 0
        while pos < len(data):
            va0 = _round_down(dstva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {dstva:#x} is not mapped")
            n = min(PGSIZE - (dstva - va0), len(data) - pos)
            self.memory.write(pa0 + (dstva - va0), data[pos:pos + n])
            pos += n
            dstva = va0 + PGSIZE

    def copy_in(self, srcva: int, n: int) -> bytes:
        """Return ``n`` bytes from user virtual address ``srcva``."""
        out = bytearray()
        while n > 0:
            va0 = _round_down(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} is not mapped")
            chunk = min(PGSIZE - (srcva - va0), n)
            out += self.memory.read(pa0 + (srcva - va0), chunk)
            n -= chunk
            srcva = va0 + PGSIZE
        return bytes(out)

    def copy_in_str(self, srcva: int, limit: int) -> bytes:
        """Return the NUL-terminated string at ``srcva``, without the NUL.

        BadAddress is raised if no NUL turns up within ``limit`` bytes.
        """
        out = bytearray()
        while limit > 0:
            va0 = _round_down(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} is not mapped")
            n = min(PGSIZE - (srcva - va0), limit)
            chunk = self.memory.read(pa0 + (srcva - va0), n)
            nul = chunk.find(0)
            if nul >= 0:
                out += chunk[:nul]
                return bytes(out)
            out += chunk
            limit -= n
            srcva = va0 + PGSIZE
        raise BadAddress("string is not terminated within the limit")