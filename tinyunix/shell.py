"""Command-line parser for a small shell: pipes, lists, background and redirection."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Union

MAXARGS = 10
WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"


class ShellSyntaxError(Exception):
    """Raised when a command line cannot be parsed."""

    def __init__(self, message: str, leftovers: str | None = None) -> None:
        super().__init__(message)
        self.leftovers = leftovers


@dataclass
class ExecCommand:
    """Run a program with arguments."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCommand:
    """Run ``cmd`` with descriptor ``fd`` opened on ``file`` using ``mode``."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCommand:
    """Connect the output of ``left`` to the input of ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class ListCommand:
    """Run ``left`` to completion, then ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class BackCommand:
    """Run ``cmd`` without waiting for it."""

    cmd: "Command"


Command = Union[ExecCommand, RedirCommand, PipeCommand, ListCommand, BackCommand]


class Scanner:
    """Tokenizer over one command line."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _skip_space(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    @property
    def rest(self) -> str:
        return self.text[self.pos:]

    def peek(self, tokens: str) -> bool:
        """Skip blanks and report whether the next character is one of ``tokens``."""
        self._skip_space()
        return not self.at_end and self.text[self.pos] in tokens

    def next_token(self) -> tuple[str, str]:
        """Consume a token and return (kind, text).

        The kind is the symbol itself, ``"+"`` for ``>>``, ``"a"`` for a
        word, or ``""`` at the end of the line.
        """
        self._skip_space()
        text = self.text
        start = self.pos
        if self.at_end:
            return "", ""
        ch = text[self.pos]
        if ch in "|();&<":
            kind = ch
            self.pos += 1
        elif ch == ">":
            kind = ">"
            self.pos += 1
            if self.pos < len(text) and text[self.pos] == ">":
                kind = "+"
                self.pos += 1
        else:
            kind = "a"
            while (
                self.pos < len(text)
                and text[self.pos] not in WHITESPACE
                and text[self.pos] not in SYMBOLS
            ):
                self.pos += 1
        lexeme = text[start:self.pos]
        self._skip_space()
        return kind, lexeme


def parse_command(line: str) -> Command:
    """Parse a whole command line into a command tree."""
    scanner = Scanner(line)
    cmd = _parse_line(scanner)
    scanner.peek("")
    if not scanner.at_end:
        raise ShellSyntaxError("syntax", leftovers=scanner.rest)
    return cmd


def _parse_line(sc: Scanner) -> Command:
    cmd = _parse_pipe(sc)
    while sc.peek("&"):
        sc.next_token()
        cmd = BackCommand(cmd)
    if sc.peek(";"):
        sc.next_token()
        cmd = ListCommand(cmd, _parse_line(sc))
    return cmd


def _parse_pipe(sc: Scanner) -> Command:
    cmd = _parse_exec(sc)
    if sc.peek("|"):
        sc.next_token()
        cmd = PipeCommand(cmd, _parse_pipe(sc))
    return cmd


def _parse_redirs(cmd: Command, sc: Scanner) -> Command:
    while sc.peek("<>"):
        tok, _ = sc.next_token()
        kind, word = sc.next_token()
        if kind != "a":
            raise ShellSyntaxError("missing file for redirection")
        if tok == "<":
            cmd = RedirCommand(cmd, word, os.O_RDONLY, 0)
        elif tok == ">":
            cmd = RedirCommand(cmd, word, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 1)
        else:
            cmd = RedirCommand(cmd, word, os.O_WRONLY | os.O_CREAT, 1)
    return cmd


def _parse_block(sc: Scanner) -> Command:
    if not sc.peek("("):
        raise ShellSyntaxError("parseblock")
    sc.next_token()
    cmd = _parse_line(sc)
    if not sc.peek(")"):
        raise ShellSyntaxError("syntax - missing )")
    sc.next_token()
    return _parse_redirs(cmd, sc)


def _parse_exec(sc: Scanner) -> Command:
    if sc.peek("("):
        return _parse_block(sc)
    cmd = ExecCommand()
    ret = _parse_redirs(cmd, sc)
    while not sc.peek("|)&;"):
        kind, word = sc.next_token()
        if kind == "":
            break
        if kind != "a":
            raise ShellSyntaxError("syntax")
        cmd.argv.append(word)
        if len(cmd.argv) >= MAXARGS:
            raise ShellSyntaxError("too many args")
        ret = _parse_redirs(ret, sc)
    return ret


def split_cd(line: str) -> str | None:
    """Return the directory of a ``cd`` line (its final character dropped), else None."""
    if not line.startswith("cd "):
        return None
    return line[3:len(line) - 1]