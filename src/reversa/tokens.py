"""Reversa tokenizer.

Source is ASCII text made of integers, names, keywords and operators.
`--` starts a comment that runs to the end of the line, which is also how
pragmas are written. Keywords are their own token type; everything else is
TK_INT, TK_IDENT or TK_OP.
"""

from __future__ import annotations


TK_INT = "INT"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

KEYWORDS: frozenset[str] = frozenset(
    """
    fn int bool true false
    local delocal call swap
    if else fi from do loop until
    """.split()
)

# Only some compound operators are invertible; the transformers decide which.
COMPOUND_OPS: tuple[str, ...] = ("<<=", ">>=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=")
COMPARE_OPS: tuple[str, ...] = ("==", "!=", "<=", ">=", "<", ">")
LOGIC_OPS: tuple[str, ...] = ("&&", "||", "!")
ARITH_OPS: tuple[str, ...] = ("<<", ">>", "+", "-", "*", "/", "%", "&", "|", "^", "~")
PUNCTUATION: tuple[str, ...] = ("(", ")", "[", "]", "{", "}", ",", ":", "=")

# Longest first, so "<<=" wins over "<<" and "<".
OPERATORS: list[str] = sorted(
    set(COMPOUND_OPS + COMPARE_OPS + LOGIC_OPS + ARITH_OPS + PUNCTUATION),
    key=len,
    reverse=True,
)

_DIGITS = frozenset("0123456789")
_NAME_START = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_NAME_CHARS = _NAME_START | _DIGITS


class TokenizeError(Exception):
    """Error during tokenization."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, {self.line}, {self.col})"


class _Lexer:
    def __init__(self, source: str):
        self.src = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []

    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.src[i] if i < len(self.src) else ""

    def take_while(self, chars: frozenset[str]) -> str:
        start = self.pos
        while self.peek() in chars:
            self.pos += 1
        self.col += self.pos - start
        return self.src[start : self.pos]

    def emit(self, type_: str, value: str, line: int, col: int) -> None:
        self.tokens.append(Token(type_, value, line, col))

    def skip_trivia(self) -> None:
        while self.peek():
            c = self.peek()
            if c == "\n":
                self.pos += 1
                self.line += 1
                self.col = 1
            elif c in " \t\r":
                self.pos += 1
                self.col += 1
            elif c == "-" and self.peek(1) == "-":
                end = self.src.find("\n", self.pos)
                self.pos = len(self.src) if end < 0 else end
            else:
                return

    def number(self) -> None:
        line, col = self.line, self.col
        digits = self.take_while(_DIGITS)
        if self.peek() in _NAME_START:
            raise TokenizeError("invalid integer literal", line, col)
        self.emit(TK_INT, digits, line, col)

    def word(self) -> None:
        line, col = self.line, self.col
        text = self.take_while(_NAME_CHARS)
        self.emit(text if text in KEYWORDS else TK_IDENT, text, line, col)

    def operator(self) -> None:
        for op in OPERATORS:
            if self.src.startswith(op, self.pos):
                self.emit(TK_OP, op, self.line, self.col)
                self.pos += len(op)
                self.col += len(op)
                return
        raise TokenizeError(
            "unexpected character: " + repr(self.peek()), self.line, self.col
        )

    def run(self) -> list[Token]:
        while True:
            self.skip_trivia()
            c = self.peek()
            if not c:
                break
            if c in _DIGITS:
                self.number()
            elif c in _NAME_START:
                self.word()
            else:
                self.operator()
        self.emit(TK_EOF, "", self.line, self.col)
        return self.tokens


def tokenize(source: str) -> list[Token]:
    """Tokenize Reversa source into a flat list ending with TK_EOF."""
    return _Lexer(source).run()
