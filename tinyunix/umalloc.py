"""Next-fit free-list allocator over a growable address range."""

from __future__ import annotations

from bisect import bisect_left
from operator import itemgetter

HEADER_SIZE = 16
_MIN_UNITS = 4096
_BASE = -HEADER_SIZE  # the empty sentinel sits below every heap address


class Arena:
    """A simulated program break that grows up to ``limit`` bytes."""

    def __init__(self, limit: int = 1 << 24) -> None:
        if limit < 0:
            raise ValueError("arena limit must not be negative")
        self.limit = limit
        self.brk = 0

    def sbrk(self, nbytes: int) -> int:
        """Move the break by ``nbytes`` and return the previous break."""
        new = self.brk + nbytes
        if new < 0 or new > self.limit:
            raise MemoryError(f"cannot move break by {nbytes} bytes")
        old, self.brk = self.brk, new
        return old


class Allocator:
    """Allocator keeping an address-ordered circular free list.

    Blocks carry a one-unit header; sizes are counted in units of
    ``HEADER_SIZE`` bytes.  Requests are served from the tail of the first
    block large enough, searching onward from where the last search ended.
    """

    def __init__(self, arena: Arena) -> None:
        self.arena = arena
        self._blocks: list[list[int]] = []
        self._rover = 0
        self._allocated: dict[int, int] = {}

    def malloc(self, nbytes: int) -> int:
        """Allocate ``nbytes`` bytes and return the address of the payload."""
        if nbytes < 0:
            raise ValueError("size must not be negative")
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        if not self._blocks:
            self._blocks = [[_BASE, 0]]
            self._rover = 0
        prev = self._rover
        i = (prev + 1) % len(self._blocks)
        while True:
            addr, size = self._blocks[i]
            if size >= nunits:
                if size == nunits:
                    del self._blocks[i]
                    self._rover = prev if prev < i else prev - 1
                else:
                    self._blocks[i][1] = size - nunits
                    addr += (size - nunits) * HEADER_SIZE
                    self._rover = prev
                self._allocated[addr] = nunits
                return addr + HEADER_SIZE
            if i == self._rover:
                self._morecore(nunits)
                i = self._rover
            prev, i = i, (i + 1) % len(self._blocks)

    def free(self, address: int) -> None:
        """Return the block whose payload starts at ``address`` to the free list."""
        bp = address - HEADER_SIZE
        try:
            units = self._allocated.pop(bp)
        except KeyError:
            raise ValueError(f"address {address:#x} is not allocated") from None
        blocks = self._blocks
        idx = bisect_left(blocks, bp, key=itemgetter(0))
        prev_i = idx - 1
        if idx < len(blocks) and bp + units * HEADER_SIZE == blocks[idx][0]:
            units += blocks[idx][1]
            del blocks[idx]
        before = blocks[prev_i]
        if before[0] + before[1] * HEADER_SIZE == bp:
            before[1] += units
        else:
            blocks.insert(idx, [bp, units])
        self._rover = prev_i

    def free_blocks(self) -> list[tuple[int, int]]:
        """Free blocks as (header address, size in bytes), in address order."""
        return [(addr, size * HEADER_SIZE) for addr, size in self._blocks if addr != _BASE]

    def _morecore(self, nunits: int) -> None:
        units = max(nunits, _MIN_UNITS)
        addr = self.arena.sbrk(units * HEADER_SIZE)
        self._allocated[addr] = units
        self.free(addr + HEADER_SIZE)