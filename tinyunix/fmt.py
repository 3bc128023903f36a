"""Minimal printf-style formatting understanding %d %l %x %p %s %c and %%."""

from __future__ import annotations

import sys
from typing import IO, Any

_UINT32 = 0xFFFFFFFF
_UINT64 = 0xFFFFFFFFFFFFFFFF


def _to_int32(value: int) -> int:
    value = int(value) & _UINT32
    return value - (1 << 32) if value & 0x80000000 else value


def _format_int(value: int, base: int, signed: bool) -> str:
    xx = _to_int32(value)
    if signed and xx < 0:
        return "-" + _digits(-xx, base)
    return _digits(xx & _UINT32, base)


def _digits(x: int, base: int) -> str:
    return format(x, "X") if base == 16 else str(x)


def sprintf(fmt: str, *args: Any) -> str:
    """Format ``args`` according to ``fmt`` and return the text."""
    values = iter(args)

    def next_arg() -> Any:
        try:
            return next(values)
        except StopIteration:
            raise TypeError(f"not enough arguments for format {fmt!r}") from None

    out: list[str] = []
    pending = False
    for c in fmt:
        if not pending:
            if c == "%":
                pending = True
            else:
                out.append(c)
            continue
        pending = False
        if c == "d":
            out.append(_format_int(next_arg(), 10, True))
        elif c == "l":
            out.append(_format_int(next_arg(), 10, False))
        elif c == "x":
            out.append(_format_int(next_arg(), 16, False))
        elif c == "p":
            out.append(f"0x{int(next_arg()) & _UINT64:016X}")
        elif c == "s":
            s = next_arg()
            out.append("(null)" if s is None else str(s).split("\0", 1)[0])
        elif c == "c":
            ch = next_arg()
            out.append(ch[:1] if isinstance(ch, str) else chr(int(ch) & 0xFF))
        elif c == "%":
            out.append("%")
        else:
            # Unknown conversion: echo it to draw attention.
            out.append("%" + c)
    return "".join(out)


def fprintf(stream: IO[str], fmt: str, *args: Any) -> None:
    """Write formatted text to ``stream``."""
    stream.write(sprintf(fmt, *args))


def printf(fmt: str, *args: Any) -> None:
    """Write formatted text to standard output."""
    fprintf(sys.stdout, fmt, *args)