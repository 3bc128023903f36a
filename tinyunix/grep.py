"""Simple grep supporting only the ^ . * $ operators."""

from __future__ import annotations

import sys
from collections.abc import Iterator, Sequence
from typing import IO

_BUFSIZE = 1024


def match(pattern: str, text: str) -> bool:
    """Return True if ``pattern`` matches somewhere in ``text``."""
    if pattern.startswith("^"):
        return _match_here(pattern, 1, text, 0)
    return any(_match_here(pattern, 0, text, i) for i in range(len(text) + 1))


def _match_here(pattern: str, pi: int, text: str, ti: int) -> bool:
    if pi == len(pattern):
        return True
    if pi + 1 < len(pattern) and pattern[pi + 1] == "*":
        return _match_star(pattern[pi], pattern, pi + 2, text, ti)
    if pattern[pi] == "$" and pi + 1 == len(pattern):
        return ti == len(text)
    if ti < len(text) and pattern[pi] in (".", text[ti]):
        return _match_here(pattern, pi + 1, text, ti + 1)
    return False


def _match_star(c: str, pattern: str, pi: int, text: str, ti: int) -> bool:
    while True:
        if _match_here(pattern, pi, text, ti):
            return True
        if ti < len(text) and (text[ti] == c or c == "."):
            ti += 1
        else:
            return False


def grep(pattern: str, stream: IO[str]) -> Iterator[str]:
    """Yield each newline-terminated line of ``stream`` matching ``pattern``.

    A final line without a newline is not examined, and reading stops once
    a single line fills the whole line buffer.
    """
    pending = ""
    while chunk := stream.read(_BUFSIZE - 1 - len(pending)):
        pending += chunk
        *lines, pending = pending.split("\n")
        for line in lines:
            if match(pattern, line):
                yield line + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Run grep over the named files, or standard input."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, *files = args
    if not files:
        sys.stdout.writelines(grep(pattern, sys.stdin))
        return 0
    for name in files:
        try:
            stream = open(name, encoding="utf-8", errors="surrogateescape", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {name}\n")
            return 1
        with stream:
            sys.stdout.writelines(grep(pattern, stream))
    return 0


if __name__ == "__main__":
    sys.exit(main())