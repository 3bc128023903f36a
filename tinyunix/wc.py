"""Count lines, words and characters."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import IO

_BUFSIZE = 512
_SEPARATORS = frozenset(" \r\t\n\v\0")


@dataclass(frozen=True)
class Counts:
    """Line, word and character totals for one input."""

    lines: int
    words: int
    chars: int


def count(stream: IO) -> Counts:
    """Count a text or binary stream; binary input is counted in bytes."""
    lines = words = chars = 0
    in_word = False
    while chunk := stream.read(_BUFSIZE):
        if isinstance(chunk, bytes):
            chunk = chunk.decode("latin-1")
        for ch in chunk:
            chars += 1
            if ch == "\n":
                lines += 1
            if ch in _SEPARATORS:
                in_word = False
            elif not in_word:
                words += 1
                in_word = True
    return Counts(lines, words, chars)


def _report(stream: IO, name: str) -> bool:
    try:
        counts = count(stream)
    except OSError:
        print("wc: read error")
        return False
    print(f"{counts.lines} {counts.words} {counts.chars} {name}")
    return True


def main(argv: Sequence[str] | None = None) -> int:
    """Print counts for each named file, or for standard input."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        return 0 if _report(sys.stdin.buffer, "") else 1
    for name in args:
        try:
            stream = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with stream:
            if not _report(stream, name):
                return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())