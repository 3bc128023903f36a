# tinyunix

Small, self-contained pieces of a minimal Unix system, written as plain
Python with no third-party dependencies:

- **Command-line tools** – `grep` (with `^ . * $`), `wc`, `ls` and
  `mkfs`.
- **A shell command parser** – `tinyunix.shell` turns a command line into
  a tree of `ExecCommand`, `RedirCommand`, `PipeCommand`, `ListCommand`
  and `BackCommand` nodes.
- **A free-list memory allocator** – `tinyunix.umalloc.Allocator` on top
  of a growable `Arena`, with next-fit allocation and coalescing on free.
- **An Sv39 page-table model** – `tinyunix.vm.PageTable` over simulated
  `PhysicalMemory`, with mapping, unmapping, growing, shrinking, copying
  and user/kernel data transfer.
- **A file-system image builder** – `tinyunix.mkfs.build_image` and
  `ImageBuilder` lay out boot block, superblock, log, inodes, bitmap and
  data blocks.
- **Helpers** – `printf`-style formatting in `tinyunix.fmt`
  (`%d %l %x %p %s %c %%`), two pseudo-random generators in
  `tinyunix.rand` (`ParkMiller`, `LinearCongruential`), and two
  concurrency exercises in `tinyunix.processes` (`stressfs`, `zombie`).

Requires Python 3.10 or later.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Command-line tools

```
tinyunix-grep PATTERN [FILE ...]
tinyunix-wc [FILE ...]
tinyunix-ls [PATH ...]
tinyunix-mkfs fs.img [FILE ...]
```

`tinyunix-grep` and `tinyunix-wc` read standard input when no file is
given. `tinyunix-grep` prints each newline-terminated matching line.
`tinyunix-wc` prints lines, words and characters followed by the name.
`tinyunix-ls` lists a file, or each entry of a directory (including `.`
and `..`), as a name padded to 14 characters, a type number (1 directory,
2 file, 3 anything else), the inode number and the size.

`tinyunix-mkfs` creates a fresh image and stores each listed file in its
root directory; a leading `user/` and a leading underscore are dropped
from the stored name, and a name still containing `/` is refused.

## Library use

### Matching and counting

```python
import io
from tinyunix.grep import match, grep
from tinyunix.wc import count

match("^ab*c$", "abbbc")        # True
match("x.z", "wxyz")            # True

list(grep("needle", io.StringIO("hay\nneedle here\nhay\n")))
# ['needle here\n']

count(io.BytesIO(b"one two\nthree\n"))
# Counts(lines=2, words=3, chars=14)
```

`grep` reads a text stream and yields matching lines; a final line
without a newline is not examined. `count` accepts text or binary streams.

### Formatting

```python
from tinyunix.fmt import sprintf, fprintf, printf

sprintf("%d items at %p: %s", -3, 0x1000, "ok")
# '-3 items at 0x0000000000001000: ok'
```

An unknown conversion is copied through as `%` followed by the character.

### Parsing shell commands

```python
from tinyunix.shell import parse_command, split_cd, ShellSyntaxError

tree = parse_command("cat < in.txt | grep foo > out.txt ; echo done &")

try:
    parse_command("echo (")
except ShellSyntaxError as exc:
    print("bad command:", exc)

split_cd("cd /tmp\n")            # '/tmp'
```

An exec command holds at most nine arguments; more raise
`ShellSyntaxError("too many args")`. Redirection modes are `os.O_*` flags.

### The allocator

```python
from tinyunix.umalloc import Arena, Allocator

heap = Allocator(Arena(limit=1 << 20))
a = heap.malloc(100)
b = heap.malloc(2000)
heap.free(a)
heap.free(b)
heap.free_blocks()               # [(header address, size in bytes), ...]
```

`malloc` raises `MemoryError` when the arena cannot grow far enough;
`free` raises `ValueError` for an address that is not allocated.

### Page tables

```python
from tinyunix.vm import PhysicalMemory, PageTable, BadAddress

memory = PhysicalMemory(npages=64)
table = PageTable(memory)
size = table.grow(0, 3 * 4096)

table.copy_out(100, b"hello\0")
table.copy_in(100, 5)            # b'hello'
table.copy_in_str(100, 64)       # b'hello'

child = PageTable(memory)
table.copy_into(child, size)
```

Unmapped or non-user addresses raise `BadAddress`; running out of pages
raises `OutOfMemory`; inconsistent mappings raise `MappingError`.

### File-system images

```python
from tinyunix.mkfs import build_image

with open("fs.img", "w+b") as image:
    builder = build_image(image, [("README", b"hello\n")])
```

`ImageBuilder` gives step-by-step control through `add_file`,
`read_inode` and `finish`; `FsGeometry` sets the block size, image size,
log size and inode count.

## What this package does not do

- It has no `cat`, `echo`, `kill`, `ln`, `mkdir` or `rm` commands; only
  the four commands listed above are installed.
- The shell module parses command lines but does not run them: there is
  no interactive shell.
- There is no `atoi` or line-reading helper.
- `mkfs` only writes images; there is no code to mount or read a file
  system back beyond `ImageBuilder.read_inode`.