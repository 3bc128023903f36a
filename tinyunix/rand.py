"""Small deterministic pseudo-random generators used by the stress tools."""

from __future__ import annotations

from collections.abc import Iterator

_ULONG = 0xFFFFFFFFFFFFFFFF


class ParkMiller:
    """Park-Miller "minimal standard" generator, results in [0, 0x7ffffffd]."""

    def __init__(self, seed: int = 1) -> None:
        self.state = seed & _ULONG

    def draw(self) -> int:
        """Advance the generator and return the next value."""
        x = (self.state % 0x7FFFFFFE) + 1
        hi, lo = divmod(x, 127773)
        x = 16807 * lo - 2836 * hi
        if x < 0:
            x += 0x7FFFFFFF
        x -= 1
        self.state = x
        return x

    def __iter__(self) -> Iterator[int]:
        while True:
            yield self.draw()


class LinearCongruential:
    """64-bit linear congruential generator returning 32-bit values."""

    def __init__(self, seed: int = 1) -> None:
        self.state = seed & _ULONG

    def draw(self) -> int:
        """Advance the generator and return the next value."""
        self.state = (self.state * 1664525 + 1013904223) & _ULONG
        return self.state & 0xFFFFFFFF

    def __iter__(self) -> Iterator[int]:
        while True:
            yield self.draw()