"""Cursor context recovered from a span-indexed token list.

A :class:`TokenIndex` is built once per document text and answers position
queries with binary search over token offsets, so neither the word under the
cursor nor the enclosing generic or object-access construct needs a rescan
of the line.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Optional

from helixql_lsp.keywords import generic_marker_kind
from helixql_lsp.language.lexer import Token, TokenKind, tokenize
from helixql_lsp.language.model import EntityKind


@dataclass(frozen=True)
class WordSpan:
    text: str
    start: int
    end: int
    line: int
    start_character: int
    end_character: int


@dataclass(frozen=True)
class EntityContext:
    kind: EntityKind
    type_name: str


@dataclass(frozen=True)
class LexicalContext:
    offset: int
    line: int
    character: int
    word: Optional[WordSpan] = None
    entity: Optional[EntityContext] = None
    field_access: bool = False


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


class TokenIndex:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens: list[Token] = tokenize(text)
        self._starts = [token.start for token in self.tokens]
        self._ends = [token.end for token in self.tokens]
        self._line_starts = [0]
        for position, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(position + 1)

    # -- positions -------------------------------------------------------

    def offset_at(self, line: int, character: int) -> Optional[int]:
        """Offset of a 0-based position; columns past the line end are clamped."""
        if line < 0 or line >= len(self._line_starts):
            return None
        start = self._line_starts[line]
        if line + 1 < len(self._line_starts):
            end = self._line_starts[line + 1] - 1
        else:
            end = len(self.text)
        if end > start and self.text[end - 1] == "\r":
            end -= 1
        return start + max(0, min(character, end - start))

    def position_at(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self._line_starts, offset) - 1
        return line, offset - self._line_starts[line]

    # -- tokens ----------------------------------------------------------

    def token_at(self, offset: int) -> Optional[Token]:
        """The token touching ``offset``, preferring a word over punctuation."""
        last = bisect_right(self._starts, offset) - 1
        candidates = [
            self.tokens[position]
            for position in (last, last - 1)
            if 0 <= position < len(self.tokens)
            and self.tokens[position].start <= offset <= self.tokens[position].end
        ]
        for token in candidates:
            if token.is_word:
                return token
        return candidates[0] if candidates else None

    def tokens_before(self, offset: int) -> list[Token]:
        return self.tokens[: bisect_left(self._starts, offset)]

    def in_literal(self, offset: int) -> bool:
        """True when ``offset`` sits inside a comment or a string literal."""
        position = bisect_left(self._starts, offset) - 1
        if position < 0:
            return False
        token = self.tokens[position]
        if token.kind is TokenKind.COMMENT:
            return offset <= token.end
        if token.kind is TokenKind.STRING:
            return offset < token.end
        if token.kind is TokenKind.UNKNOWN and token.text.startswith('"'):
            return offset <= token.end
        return False

    def word_at(self, offset: int) -> Optional[WordSpan]:
        """Maximal word span touching ``offset``, inside literals and comments too."""
        token = self.token_at(offset)
        if token is None:
            return None
        if token.kind is TokenKind.IDENT:
            start, end = token.start, token.end
        else:
            cursor = offset - token.start
            left = cursor
            while left > 0 and _is_word_char(token.text[left - 1]):
                left -= 1
            right = cursor
            while right < len(token.text) and _is_word_char(token.text[right]):
                right += 1
            if left == right:
                return None
            start, end = token.start + left, token.start + right
        line, character = self.position_at(start)
        return WordSpan(
            text=self.text[start:end],
            start=start,
            end=end,
            line=line,
            start_character=character,
            end_character=character + (end - start),
        )

    # -- generic brackets ------------------------------------------------

    def bracket_context(self, offset: int) -> Optional[EntityContext]:
        """The generic type context open before ``offset``.

        For each entity kind only its rightmost marker counts; among the
        kinds whose rightmost marker carries a type name, the latest wins.
        """
        seen: set[EntityKind] = set()
        for position in range(bisect_left(self._starts, offset) - 1, -1, -1):
            token = self.tokens[position]
            if token.kind is not TokenKind.IDENT:
                continue
            kind = generic_marker_kind(token.text)
            if kind is None or kind in seen or not self._opens_generic(position, offset):
                continue
            seen.add(kind)
            type_name = self._generic_argument(position + 2, offset)
            if type_name:
                return EntityContext(kind=kind, type_name=type_name)
            if len(seen) == len(EntityKind):
                break
        return None

    def _opens_generic(self, position: int, offset: int) -> bool:
        if position + 1 >= len(self.tokens):
            return False
        marker = self.tokens[position]
        opener = self.tokens[position + 1]
        return opener.is_punct("<") and opener.start == marker.end and opener.start < offset

    def _generic_argument(self, position: int, offset: int) -> Optional[str]:
        if position >= len(self.tokens):
            return None
        opener = self.tokens[position - 1]
        name = self.tokens[position]
        if name.kind is not TokenKind.IDENT or name.start != opener.end or name.start >= offset:
            return None
        if name.end >= offset:
            return name.text[: offset - name.start]
        if position + 1 < len(self.tokens):
            closer = self.tokens[position + 1]
            if closer.is_punct(">") and closer.start == name.end and closer.start < offset:
                return name.text
        return None

    # -- object access ---------------------------------------------------

    def field_access_opener(self, offset: int) -> Optional[Token]:
        """The ``{`` of the innermost unclosed ``::{`` block around ``offset``."""
        depth = 0
        for position in range(bisect_right(self._ends, offset) - 1, -1, -1):
            token = self.tokens[position]
            if token.kind is not TokenKind.PUNCT:
                continue
            if token.text == "}":
                depth += 1
            elif token.text == "{":
                if depth:
                    depth -= 1
                    continue
                return token if self._is_access_opener(position) else None
        return None

    def _is_access_opener(self, position: int) -> bool:
        if position >= 1 and self.tokens[position - 1].is_punct("::"):
            return True
        return (
            position >= 2
            and self.tokens[position - 1].is_punct("!")
            and self.tokens[position - 2].is_punct("::")
        )

    # -- combined --------------------------------------------------------

    def context_at(self, offset: int) -> LexicalContext:
        opener = self.field_access_opener(offset)
        anchor = opener.start if opener is not None else offset
        line, character = self.position_at(offset)
        return LexicalContext(
            offset=offset,
            line=line,
            character=character,
            word=self.word_at(offset),
            entity=self.bracket_context(anchor),
            field_access=opener is not None,
        )


def word_at(text: str, line: int, character: int) -> Optional[WordSpan]:
    index = TokenIndex(text)
    offset = index.offset_at(line, character)
    if offset is None:
        return None
    return index.word_at(offset)


def bracket_context(text_before_cursor: str) -> Optional[EntityContext]:
    return TokenIndex(text_before_cursor).bracket_context(len(text_before_cursor))


def field_access_context(text: str, line: int, character: int) -> bool:
    index = TokenIndex(text)
    offset = index.offset_at(line, character)
    if offset is None:
        return False
    return index.field_access_opener(offset) is not None
