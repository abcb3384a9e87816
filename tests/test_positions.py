from __future__ import annotations

from lsprotocol.types import Position, PositionEncodingKind, Range
from pygls.workspace import PositionCodec

from helixql_lsp.positions import ClientPositions

TEXT = 'QUERY Ghost() =>\n    RETURN "😀", ghost\n'


def test_utf16_columns_count_astral_characters_twice() -> None:
    positions = ClientPositions()
    assert positions.from_client(TEXT, 1, 17) == 16
    assert positions.from_client(TEXT, 1, 4) == 4
    assert positions.to_client(TEXT, Position(line=1, character=16)) == Position(line=1, character=17)


def test_utf32_columns_are_code_points() -> None:
    positions = ClientPositions(PositionCodec(encoding=PositionEncodingKind.Utf32))
    assert positions.from_client(TEXT, 1, 16) == 16
    assert positions.to_client(TEXT, Position(line=1, character=16)).character == 16


def test_lines_outside_the_text_pass_through() -> None:
    positions = ClientPositions()
    assert positions.from_client(TEXT, 99, 5) == 5
    beyond = Position(line=99, character=5)
    assert positions.to_client(TEXT, beyond) is beyond


def test_range_to_client_without_text_is_unchanged() -> None:
    value = Range(start=Position(line=1, character=16), end=Position(line=1, character=21))
    assert ClientPositions().range_to_client(None, value) is value
    converted = ClientPositions().range_to_client(TEXT, value)
    assert (converted.start.character, converted.end.character) == (17, 22)
