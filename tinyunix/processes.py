"""Concurrency exercises: a file-system stress run and a short-lived child."""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

_BLOCK = 512


def stressfs(
    directory: str | os.PathLike = ".", nchildren: int = 4, rounds: int = 20
) -> dict[Path, int]:
    """Have ``nchildren + 1`` workers each write then read back their own file.

    Worker ``i`` writes ``rounds`` blocks of 512 ``a`` bytes to
    ``stressfs<i>`` and reads them back.  Returns the bytes read per file.
    """
    print("stressfs starting")
    data = b"a" * _BLOCK
    base = Path(directory)

    def worker(i: int) -> tuple[Path, int]:
        print(f"write {i}")
        path = base / f"stressfs{chr(ord('0') + i)}"
        fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o666)
        with open(fd, "r+b") as f:
            for _ in range(rounds):
                f.write(data)
        print("read")
        total = 0
        with open(path, "rb") as f:
            for _ in range(rounds):
                total += len(f.read(_BLOCK))
        return path, total

    with ThreadPoolExecutor(max_workers=nchildren + 1) as pool:
        return dict(pool.map(worker, range(nchildren + 1)))


def zombie(delay: float = 0.5) -> int:
    """Start a child worker that exits at once, wait ``delay`` seconds, return its id.

    The child is never joined, so it is left for whoever holds it to reap.
    """
    started = threading.Event()
    ident: list[int] = []

    def child() -> None:
        ident.append(threading.get_native_id())
        started.set()

    worker = threading.Thread(target=child, daemon=True)
    worker.start()
    started.wait()
    time.sleep(delay)
    return ident[0]