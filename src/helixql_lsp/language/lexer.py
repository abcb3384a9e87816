from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class TokenKind(Enum):
    IDENT = "ident"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    PUNCT = "punct"
    COMMENT = "comment"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Token:
    """One lexeme. ``line`` and ``column`` are 0-based; offsets index the text."""

    kind: TokenKind
    text: str
    start: int
    end: int
    line: int
    column: int

    @property
    def is_word(self) -> bool:
        return self.kind in (TokenKind.IDENT, TokenKind.INTEGER, TokenKind.FLOAT)

    def is_punct(self, text: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text == text


_TOKEN_RE = re.compile(
    r"""
    (?P<comment>//[^\n]*)
  | (?P<string>"(?:\\.|[^"\\\n])*")
  | (?P<unterminated>"(?:\\.|[^"\\\n])*)
  | (?P<float>\d+\.\d+)
  | (?P<integer>\d+)
  | (?P<ident>[^\W\d]\w*)
  | (?P<punct>::|<-|=>|[<>(){}\[\],:;!?.=+\-*/&|])
  | (?P<newline>\n)
  | (?P<space>[ \t\r\f\v]+)
  | (?P<unknown>.)
    """,
    re.VERBOSE,
)

_KIND_BY_GROUP = {
    "comment": TokenKind.COMMENT,
    "string": TokenKind.STRING,
    "unterminated": TokenKind.UNKNOWN,
    "float": TokenKind.FLOAT,
    "integer": TokenKind.INTEGER,
    "ident": TokenKind.IDENT,
    "punct": TokenKind.PUNCT,
    "unknown": TokenKind.UNKNOWN,
}


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens, keeping comments; never fails."""
    tokens: list[Token] = []
    line = 0
    line_start = 0
    for match in _TOKEN_RE.finditer(text):
        group = match.lastgroup
        if group == "newline":
            line += 1
            line_start = match.end()
            continue
        if group == "space" or group is None:
            continue
        tokens.append(
            Token(
                kind=_KIND_BY_GROUP[group],
                text=match.group(),
                start=match.start(),
                end=match.end(),
                line=line,
                column=match.start() - line_start,
            )
        )
    return tokens
