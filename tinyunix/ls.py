"""List files and directory entries with their type, inode number and size."""

from __future__ import annotations

import os
import stat
import sys
from collections.abc import Sequence
from enum import IntEnum
from typing import IO

from .fmt import fprintf

DIRSIZ = 14
_BUFSIZE = 512


class FileType(IntEnum):
    """Kinds of file as reported in listings."""

    DIR = 1
    FILE = 2
    DEVICE = 3


def _file_type(mode: int) -> FileType:
    if stat.S_ISDIR(mode):
        return FileType.DIR
    if stat.S_ISREG(mode):
        return FileType.FILE
    return FileType.DEVICE


def format_name(path: str) -> str:
    """Return the last component of ``path``, blank-padded to DIRSIZ."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def ls(path: str, out: IO[str]) -> None:
    """Write a listing of ``path`` to ``out``."""
    try:
        st = os.stat(path)
    except OSError:
        sys.stderr.write(f"ls: cannot open {path}\n")
        return
    kind = _file_type(st.st_mode)
    if kind is FileType.FILE:
        fprintf(out, "%s %d %d %l\n", format_name(path), kind, st.st_ino, st.st_size)
    elif kind is FileType.DIR:
        if len(path) + 1 + DIRSIZ + 1 > _BUFSIZE:
            out.write("ls: path too long\n")
            return
        try:
            names = sorted(os.listdir(path))
        except OSError:
            sys.stderr.write(f"ls: cannot open {path}\n")
            return
        for name in (".", "..", *names):
            entry = f"{path}/{name}"
            try:
                est = os.stat(entry)
            except OSError:
                fprintf(out, "ls: cannot stat %s\n", entry)
                continue
            fprintf(
                out,
                "%s %d %d %d\n",
                format_name(entry),
                _file_type(est.st_mode),
                est.st_ino,
                est.st_size,
            )


def main(argv: Sequence[str] | None = None) -> int:
    """List each named path, or the current directory."""
    args = sys.argv[1:] if argv is None else list(argv)
    for path in args or ["."]:
        ls(path, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())