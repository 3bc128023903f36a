"""Build a file-system image holding a root directory and some files.

Disk layout, one block per sector:
[ boot block | superblock | log | inode blocks | free bit map | data blocks ]
"""

from __future__ import annotations

import struct
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .ls import FileType

FSMAGIC = 0x10203040
ROOTINO = 1

_SUPERBLOCK = struct.Struct("<8I")
_DINODE_HEAD = struct.Struct("<hhhhI")
_DIRENT_INUM = struct.Struct("<H")


@dataclass(frozen=True)
class FsGeometry:
    """Sizes that fix the layout of an image."""

    block_size: int = 1024
    fs_size: int = 1000
    log_size: int = 30
    ninodes: int = 200
    ndirect: int = 12
    dirsiz: int = 14

    def __post_init__(self) -> None:
        if self.block_size <= 0 or self.block_size % 4:
            raise ValueError("block size must be a positive multiple of 4")
        if self.block_size % self.dinode_size:
            raise ValueError("block size must be a multiple of the inode size")
        if self.block_size % self.dirent_size:
            raise ValueError("block size must be a multiple of the entry size")
        if self.nblocks <= 0:
            raise ValueError("file system too small for its metadata")

    @property
    def dinode_size(self) -> int:
        return _DINODE_HEAD.size + 4 * (self.ndirect + 1)

    @property
    def dirent_size(self) -> int:
        return _DIRENT_INUM.size + self.dirsiz

    @property
    def inodes_per_block(self) -> int:
        return self.block_size // self.dinode_size

    @property
    def nindirect(self) -> int:
        return self.block_size // 4

    @property
    def maxfile(self) -> int:
        return self.ndirect + self.nindirect

    @property
    def nbitmap(self) -> int:
        return self.fs_size // (self.block_size * 8) + 1

    @property
    def ninodeblocks(self) -> int:
        return self.ninodes // self.inodes_per_block + 1

    @property
    def nmeta(self) -> int:
        return 2 + self.log_size + self.ninodeblocks + self.nbitmap

    @property
    def nblocks(self) -> int:
        return self.fs_size - self.nmeta

    def superblock(self) -> Superblock:
        """The superblock describing this layout."""
        return Superblock(
            magic=FSMAGIC,
            size=self.fs_size,
            nblocks=self.nblocks,
            ninodes=self.ninodes,
            nlog=self.log_size,
            logstart=2,
            inodestart=2 + self.log_size,
            bmapstart=2 + self.log_size + self.ninodeblocks,
        )


@dataclass(frozen=True)
class Superblock:
    """The second block of the image, describing the layout."""

    magic: int
    size: int
    nblocks: int
    ninodes: int
    nlog: int
    logstart: int
    inodestart: int
    bmapstart: int

    def pack(self) -> bytes:
        return _SUPERBLOCK.pack(
            self.magic, self.size, self.nblocks, self.ninodes,
            self.nlog, self.logstart, self.inodestart, self.bmapstart,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        return cls(*_SUPERBLOCK.unpack_from(data))


@dataclass
class Dinode:
    """An on-disk inode."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=list)

    def pack(self) -> bytes:
        head = _DINODE_HEAD.pack(self.type, self.major, self.minor, self.nlink, self.size)
        return head + struct.pack(f"<{len(self.addrs)}I", *self.addrs)

    @classmethod
    def unpack(cls, data: bytes, ndirect: int) -> Dinode:
        type_, major, minor, nlink, size = _DINODE_HEAD.unpack_from(data)
        addrs = list(struct.unpack_from(f"<{ndirect + 1}I", data, _DINODE_HEAD.size))
        return cls(type_, major, minor, nlink, size, addrs)


class ImageBuilder:
    """Write an image into a seekable binary file, one file at a time."""

    def __init__(self, image: BinaryIO, geometry: FsGeometry | None = None) -> None:
        self.image = image
        self.geometry = geometry or FsGeometry()
        self.superblock = self.geometry.superblock()
        self._free_inode = 1
        self._free_block = self.geometry.nmeta
        self._finished = False

        zeroes = bytes(self.geometry.block_size)
        for sec in range(self.geometry.fs_size):
            self._write_sector(sec, zeroes)
        self._write_sector(1, self.superblock.pack().ljust(self.geometry.block_size, b"\0"))

        root = self._alloc_inode(FileType.DIR)
        if root != ROOTINO:
            raise RuntimeError("root directory did not get the root inode number")
        self._append(root, self._dirent(root, b"."))
        self._append(root, self._dirent(root, b".."))

    def _write_sector(self, sec: int, data: bytes) -> None:
        bs = self.geometry.block_size
        if len(data) != bs:
            raise ValueError("sector data must be exactly one block")
        self.image.seek(sec * bs)
        written = self.image.write(data)
        if written is not None and written != bs:
            raise OSError("write: short write")

    def _read_sector(self, sec: int) -> bytes:
        bs = self.geometry.block_size
        self.image.seek(sec * bs)
        data = self.image.read(bs)
        if len(data) != bs:
            raise OSError("read: short read")
        return data

    def _inode_location(self, inum: int) -> tuple[int, int]:
        g = self.geometry
        block = inum // g.inodes_per_block + self.superblock.inodestart
        return block, (inum % g.inodes_per_block) * g.dinode_size

    def read_inode(self, inum: int) -> Dinode:
        """Read inode ``inum`` back from the image."""
        block, off = self._inode_location(inum)
        data = self._read_sector(block)
        return Dinode.unpack(data[off:off + self.geometry.dinode_size], self.geometry.ndirect)

    def _write_inode(self, inum: int, din: Dinode) -> None:
        block, off = self._inode_location(inum)
        buf = bytearray(self._read_sector(block))
        buf[off:off + self.geometry.dinode_size] = din.pack()
        self._write_sector(block, bytes(buf))

    def _alloc_inode(self, kind: FileType) -> int:
        inum = self._free_inode
        self._free_inode += 1
        din = Dinode(type=int(kind), nlink=1, size=0, addrs=[0] * (self.geometry.ndirect + 1))
        self._write_inode(inum, din)
        return inum

    def _take_block(self) -> int:
        block = self._free_block
        self._free_block += 1
        return block

    def _dirent(self, inum: int, name: bytes) -> bytes:
        dirsiz = self.geometry.dirsiz
        return _DIRENT_INUM.pack(inum) + name[:dirsiz].ljust(dirsiz, b"\0")

    def _append(self, inum: int, data: bytes) -> None:
        g = self.geometry
        bs = g.block_size
        din = self.read_inode(inum)
        off = din.size
        pos = 0
        while pos < len(data):
            fbn = off // bs
            if fbn >= g.maxfile:
                raise ValueError(f"inode {inum} would exceed the largest file size")
            if fbn < g.ndirect:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._take_block()
                block = din.addrs[fbn]
            else:
                if din.addrs[g.ndirect] == 0:
                    din.addrs[g.ndirect] = self._take_block()
                ind_block = din.addrs[g.ndirect]
                indirect = list(struct.unpack(f"<{g.nindirect}I", self._read_sector(ind_block)))
                slot = fbn - g.ndirect
                if indirect[slot] == 0:
                    indirect[slot] = self._take_block()
                    self._write_sector(ind_block, struct.pack(f"<{g.nindirect}I", *indirect))
                block = indirect[slot]
            n = min(len(data) - pos, (fbn + 1) * bs - off)
            buf = bytearray(self._read_sector(block))
            start = off - fbn * bs
            buf[start:start + n] = data[pos:pos + n]
            self._write_sector(block, bytes(buf))
            pos += n
            off += n
        din.size = off
        self._write_inode(inum, din)

    def add_file(self, name: str | bytes, data: bytes) -> int:
        """Add a regular file to the root directory and return its inode number.

        Names longer than the directory-entry size are cut short.
        """
        if self._finished:
            raise RuntimeError("image is already finished")
        raw = name.encode("utf-8", "surrogateescape") if isinstance(name, str) else bytes(name)
        if b"/" in raw:
            raise ValueError(f"file name {name!r} contains '/'")
        inum = self._alloc_inode(FileType.FILE)
        self._append(ROOTINO, self._dirent(inum, raw))
        self._append(inum, bytes(data))
        return inum

    def finish(self) -> int:
        """Round up the root directory size and write the free bitmap.

        Returns the number of blocks in use.
        """
        if self._finished:
            raise RuntimeError("image is already finished")
        bs = self.geometry.block_size
        root = self.read_inode(ROOTINO)
        root.size = (root.size // bs + 1) * bs
        self._write_inode(ROOTINO, root)

        used = self._free_block
        if used >= bs * 8:
            raise ValueError(f"{used} blocks in use do not fit in one bitmap block")
        bitmap = bytearray(bs)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self._write_sector(self.superblock.bmapstart, bytes(bitmap))
        self._finished = True
        return used


def build_image(
    image: BinaryIO,
    files: Iterable[tuple[str | bytes, bytes]],
    geometry: FsGeometry | None = None,
) -> ImageBuilder:
    """Write an image holding ``files`` (name, contents) and return the builder."""
    builder = ImageBuilder(image, geometry)
    for name, data in files:
        builder.add_file(name, data)
    builder.finish()
    return builder


def _perror(what: str, exc: OSError) -> None:
    sys.stderr.write(f"{what}: {exc.strerror or exc}\n")


def main(argv: Sequence[str] | None = None) -> int:
    """Create an image from the command line: mkfs fs.img files..."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        sys.stderr.write("Usage: mkfs fs.img files...\n")
        return 1
    image_path, *paths = args
    geometry = FsGeometry()
    try:
        image = open(image_path, "w+b")
    except OSError as exc:
        _perror(image_path, exc)
        return 1
    with image:
        print(
            f"nmeta {geometry.nmeta} (boot, super, log blocks {geometry.log_size} "
            f"inode blocks {geometry.ninodeblocks}, bitmap blocks {geometry.nbitmap}) "
            f"blocks {geometry.nblocks} total {geometry.fs_size}"
        )
        try:
            builder = ImageBuilder(image, geometry)
            for path in paths:
                short = path[5:] if path.startswith("user/") else path
                if "/" in short:
                    sys.stderr.write(f"mkfs: {short}: name contains '/'\n")
                    return 1
                try:
                    data = Path(path).read_bytes()
                except OSError as exc:
                    _perror(path, exc)
                    return 1
                # Binaries carry a leading _ on the host; drop it inside the image.
                if short.startswith("_"):
                    short = short[1:]
                builder.add_file(short, data)
            used = builder.finish()
        except (ValueError, OSError) as exc:
            sys.stderr.write(f"mkfs: {exc}\n")
            return 1
        print(f"balloc: first {used} blocks have been allocated")
        print(f"balloc: write bitmap block at sector {builder.superblock.bmapstart}")
    return 0


if __name__ == "__main__":
    sys.exit(main())