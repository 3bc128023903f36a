"""Unix-style grep, wc, ls and mkfs tools, a shell command parser, an allocator, a page-table model and helpers."""

__version__ = "0.1.0"