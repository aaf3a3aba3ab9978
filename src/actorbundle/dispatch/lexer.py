"""Tokenizer and token-tree builder for actor entry-point sources.

Only the lexical layer of the actor language is modelled: identifiers,
literals, lifetimes, punctuation and comments. Delimited groups are folded
into trees so the extractor can walk nesting levels without a grammar.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from actorbundle.errors import SourceSyntaxError

TK_IDENT = "IDENT"
TK_LITERAL = "LITERAL"
TK_LIFETIME = "LIFETIME"
TK_PUNCT = "PUNCT"

LIT_STR = "str"
LIT_RAW_STR = "raw_str"
LIT_BYTE_STR = "byte_str"
LIT_CHAR = "char"
LIT_BYTE = "byte"
LIT_NUMBER = "number"

MULTI_PUNCT = ("=>", "->", "::")
OPEN_DELIMS = {"(": ")", "[": "]", "{": "}"}
CLOSE_DELIMS = {value: key for key, value in OPEN_DELIMS.items()}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    line: int
    col: int
    literal: str | None = None
    value: str | None = None

    @property
    def is_string(self) -> bool:
        return self.kind == TK_LITERAL and self.literal in (LIT_STR, LIT_RAW_STR)


@dataclass(frozen=True)
class Group:
    delimiter: str
    trees: tuple[TokenTree, ...]
    line: int
    col: int


TokenTree = Union[Token, Group]


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_continue(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


class _Scanner:
    def __init__(self, text: str, source: Path | str | None) -> None:
        self.text = text
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []

    def error(self, message: str, line: int | None = None, col: int | None = None) -> SourceSyntaxError:
        return SourceSyntaxError(
            message,
            line=self.line if line is None else line,
            col=self.col if col is None else col,
            path=self.source,
        )

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index < len(self.text):
            return self.text[index]
        return ""

    def advance(self, count: int = 1) -> str:
        chunk = self.text[self.pos : self.pos + count]
        for ch in chunk:
            if ch == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
        self.pos += len(chunk)
        return chunk

    def emit(self, kind: str, start: int, line: int, col: int, **extra: str | None) -> None:
        self.tokens.append(
            Token(kind=kind, text=self.text[start : self.pos], line=line, col=col, **extra)
        )

    def run(self) -> list[Token]:
        while self.pos < len(self.text):
            ch = self.peek()
            if ch.isspace():
                self.advance()
            elif ch == "/" and self.peek(1) == "/":
                self.skip_line_comment()
            elif ch == "/" and self.peek(1) == "*":
                self.skip_block_comment()
            elif ch == "r" and self.peek(1) == "#" and _is_ident_start(self.peek(2)):
                self.raw_ident()
            elif ch == "r" and self.peek(1) in ('"', "#"):
                self.raw_string(prefix=1, literal=LIT_RAW_STR)
            elif ch == "b" and self.peek(1) == "r" and self.peek(2) in ('"', "#"):
                self.raw_string(prefix=2, literal=LIT_BYTE_STR)
            elif ch == "b" and self.peek(1) == '"':
                self.string(prefix=1, literal=LIT_BYTE_STR)
            elif ch == "b" and self.peek(1) == "'":
                self.char(prefix=1, literal=LIT_BYTE)
            elif ch == '"':
                self.string(prefix=0, literal=LIT_STR)
            elif ch == "'":
                self.quote()
            elif ch.isdigit():
                self.number()
            elif _is_ident_start(ch):
                self.ident()
            else:
                self.punct()
        return self.tokens

    def skip_line_comment(self) -> None:
        while self.pos < len(self.text) and self.peek() != "\n":
            self.advance()

    def skip_block_comment(self) -> None:
        line, col = self.line, self.col
        depth = 0
        while self.pos < len(self.text):
            if self.peek() == "/" and self.peek(1) == "*":
                depth += 1
                self.advance(2)
            elif self.peek() == "*" and self.peek(1) == "/":
                depth -= 1
                self.advance(2)
                if depth == 0:
                    return
            else:
                self.advance()
        raise self.error("unterminated block comment", line, col)

    def ident(self) -> None:
        start, line, col = self.pos, self.line, self.col
        while self.pos < len(self.text) and _is_ident_continue(self.peek()):
            self.advance()
        self.emit(TK_IDENT, start, line, col, value=self.text[start : self.pos])

    def raw_ident(self) -> None:
        start, line, col = self.pos, self.line, self.col
        self.advance(2)
        name_start = self.pos
        while self.pos < len(self.text) and _is_ident_continue(self.peek()):
            self.advance()
        self.emit(TK_IDENT, start, line, col, value=self.text[name_start : self.pos])

    def number(self) -> None:
        start, line, col = self.pos, self.line, self.col
        while self.pos < len(self.text) and _is_ident_continue(self.peek()):
            self.advance()
        if self.peek() == "." and self.peek(1).isdigit():
            self.advance()
            while self.pos < len(self.text) and _is_ident_continue(self.peek()):
                self.advance()
        self.emit(TK_LITERAL, start, line, col, literal=LIT_NUMBER)

    def string(self, *, prefix: int, literal: str) -> None:
        start, line, col = self.pos, self.line, self.col
        self.advance(prefix + 1)
        content_start = self.pos
        while True:
            if self.pos >= len(self.text):
                raise self.error("unterminated string literal", line, col)
            ch = self.peek()
            if ch == "\\":
                self.advance(2)
                continue
            if ch == '"':
                value = self.text[content_start : self.pos]
                self.advance()
                break
            self.advance()
        self.literal_suffix()
        self.emit(TK_LITERAL, start, line, col, literal=literal, value=value)

    def raw_string(self, *, prefix: int, literal: str) -> None:
        start, line, col = self.pos, self.line, self.col
        self.advance(prefix)
        hashes = 0
        while self.peek() == "#":
            hashes += 1
            self.advance()
        if self.peek() != '"':
            raise self.error("malformed raw string literal", line, col)
        self.advance()
        terminator = '"' + "#" * hashes
        end = self.text.find(terminator, self.pos)
        if end < 0:
            raise self.error("unterminated raw string literal", line, col)
        value = self.text[self.pos : end]
        self.advance(end - self.pos + len(terminator))
        self.literal_suffix()
        self.emit(TK_LITERAL, start, line, col, literal=literal, value=value)

    def char(self, *, prefix: int, literal: str) -> None:
        start, line, col = self.pos, self.line, self.col
        self.advance(prefix + 1)
        if self.peek() == "\\":
            self.advance(2)
            while self.pos < len(self.text) and self.peek() not in ("'", "\n"):
                self.advance()
        else:
            self.advance()
        if self.peek() != "'":
            raise self.error("unterminated character literal", line, col)
        self.advance()
        self.emit(TK_LITERAL, start, line, col, literal=literal)

    def quote(self) -> None:
        # 'a' and '\n' are characters, 'a alone is a lifetime or label.
        if self.peek(1) == "\\" or (self.peek(1) and self.peek(2) == "'"):
            self.char(prefix=0, literal=LIT_CHAR)
            return
        if not _is_ident_start(self.peek(1)):
            raise self.error("unexpected quote")
        start, line, col = self.pos, self.line, self.col
        self.advance()
        while self.pos < len(self.text) and _is_ident_continue(self.peek()):
            self.advance()
        self.emit(TK_LIFETIME, start, line, col)

    def literal_suffix(self) -> None:
        while self.pos < len(self.text) and _is_ident_continue(self.peek()):
            self.advance()

    def punct(self) -> None:
        start, line, col = self.pos, self.line, self.col
        pair = self.text[self.pos : self.pos + 2]
        self.advance(2 if pair in MULTI_PUNCT else 1)
        self.emit(TK_PUNCT, start, line, col)


def tokenize(text: str, source: Path | str | None = None) -> list[Token]:
    return _Scanner(text, source).run()


def parse_token_trees(
    tokens: list[Token], source: Path | str | None = None
) -> list[TokenTree]:
    root: list[TokenTree] = []
    stack: list[tuple[Token, list[TokenTree]]] = []
    current = root
    for token in tokens:
        if token.kind == TK_PUNCT and token.text in OPEN_DELIMS:
            stack.append((token, current))
            current = []
            continue
        if token.kind == TK_PUNCT and token.text in CLOSE_DELIMS:
            if not stack:
                raise SourceSyntaxError(
                    f"unexpected closing {token.text!r}",
                    line=token.line,
                    col=token.col,
                    path=source,
                )
            opener, parent = stack.pop()
            if OPEN_DELIMS[opener.text] != token.text:
                raise SourceSyntaxError(
                    f"mismatched {token.text!r} for {opener.text!r} opened at {opener.line}:{opener.col}",
                    line=token.line,
                    col=token.col,
                    path=source,
                )
            parent.append(
                Group(delimiter=opener.text, trees=tuple(current), line=opener.line, col=opener.col)
            )
            current = parent
            continue
        current.append(token)
    if stack:
        opener, _parent = stack[-1]
        raise SourceSyntaxError(
            f"unclosed {opener.text!r}", line=opener.line, col=opener.col, path=source
        )
    return root


def parse_source(text: str, source: Path | str | None = None) -> list[TokenTree]:
    return parse_token_trees(tokenize(text, source), source)
