"""Column conversion between document text and the client's position encoding.

Everything inside the session counts columns in code points. Clients count
in the encoding negotiated at ``initialize`` (UTF-16 unless both sides agree
otherwise), so positions are converted with pygls's codec on the way in and
on the way out.
"""

from __future__ import annotations

from typing import Optional

from lsprotocol.types import Position, Range
from pygls.workspace import PositionCodec


class ClientPositions:
    def __init__(self, codec: Optional[PositionCodec] = None) -> None:
        self.codec = codec or PositionCodec()

    @staticmethod
    def _lines(text: str) -> list[str]:
        return text.split("\n")

    def from_client(self, text: str, line: int, character: int) -> int:
        """Code-point column of a client position; lines outside ``text`` pass through."""
        lines = self._lines(text)
        if not 0 <= line < len(lines):
            return character
        position = self.codec.position_from_client_units(
            lines, Position(line=line, character=character)
        )
        return position.character

    def to_client(self, text: str, position: Position) -> Position:
        lines = self._lines(text)
        if not 0 <= position.line < len(lines):
            return position
        return self.codec.position_to_client_units(lines, position)

    def range_to_client(self, text: Optional[str], value: Range) -> Range:
        if text is None:
            return value
        return Range(start=self.to_client(text, value.start), end=self.to_client(text, value.end))
