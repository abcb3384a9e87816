"""Keyword and operator registry shared by hover and completion."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from helixql_lsp.language.model import EntityKind


class KeywordCategory(Enum):
    KEYWORD = "keyword"
    SOURCE = "source"
    CREATION = "creation"
    TRAVERSAL = "traversal"
    FILTER = "filter"
    COMPARISON = "comparison"
    OPERATION = "operation"
    TYPE = "type"


STEP_CATEGORIES = frozenset(
    {
        KeywordCategory.TRAVERSAL,
        KeywordCategory.FILTER,
        KeywordCategory.COMPARISON,
        KeywordCategory.OPERATION,
    }
)
DEFAULT_CATEGORIES = frozenset(
    {KeywordCategory.KEYWORD, KeywordCategory.SOURCE, KeywordCategory.CREATION}
)


@dataclass(frozen=True)
class KeywordSpec:
    name: str
    category: KeywordCategory
    documentation: str
    snippet: Optional[str] = None
    generic_kind: Optional[EntityKind] = None
    step: Optional[bool] = None

    @property
    def is_step(self) -> bool:
        if self.step is not None:
            return self.step
        return self.category in STEP_CATEGORIES

    @property
    def is_default(self) -> bool:
        return self.category in DEFAULT_CATEGORIES


_C = KeywordCategory

KEYWORDS: tuple[KeywordSpec, ...] = (
    # Creation operations
    KeywordSpec(
        "AddN",
        _C.CREATION,
        "**AddN\\<Type\\>** - Create a new node\n\n```helixql\nAddN<User>({name: \"Alice\"})\n```",
        "AddN<${1:Type}>({${2}})",
        EntityKind.NODE,
    ),
    KeywordSpec(
        "AddE",
        _C.CREATION,
        "**AddE\\<Type\\>** - Create a new edge\n\n```helixql\nAddE<Follows>::From(user1)::To(user2)\n```",
        "AddE<${1:Type}>::From(${2:from})::To(${3:to})",
        EntityKind.EDGE,
        step=True,
    ),
    KeywordSpec(
        "AddV",
        _C.CREATION,
        "**AddV\\<Type\\>** - Add a vector\n\n```helixql\nAddV<Document>(vector, {content: \"text\"})\n```",
        "AddV<${1:Type}>(${2:vector}, {${3}})",
        EntityKind.VECTOR,
    ),
    KeywordSpec(
        "SearchV",
        _C.CREATION,
        "**SearchV\\<Type\\>** - Search for vectors\n\n```helixql\nSearchV<Document>(vector, 10)\n```",
        "SearchV<${1:Type}>(${2:vector}, ${3:k})",
        EntityKind.VECTOR,
    ),
    # Sources
    KeywordSpec(
        "N",
        _C.SOURCE,
        "**N\\<Type\\>** - Select nodes of a type, optionally by id\n\n```helixql\nN<User>(user_id)\n```",
        "N<${1:Type}>(${2})",
        EntityKind.NODE,
    ),
    KeywordSpec(
        "E",
        _C.SOURCE,
        "**E\\<Type\\>** - Select edges of a type, optionally by id",
        "E<${1:Type}>(${2})",
        EntityKind.EDGE,
    ),
    KeywordSpec(
        "V",
        _C.SOURCE,
        "**V\\<Type\\>** - Select vectors of a type, optionally by id",
        "V<${1:Type}>(${2})",
        EntityKind.VECTOR,
    ),
    # Traversal operations
    KeywordSpec("Out", _C.TRAVERSAL, "**Out\\<EdgeType\\>** - Traverse outgoing edges to connected nodes", "Out<${1:EdgeType}>"),
    KeywordSpec("In", _C.TRAVERSAL, "**In\\<EdgeType\\>** - Traverse incoming edges to connected nodes", "In<${1:EdgeType}>"),
    KeywordSpec(
        "OutE",
        _C.TRAVERSAL,
        "**OutE\\<EdgeType\\>** - Get outgoing edges",
        "OutE<${1:EdgeType}>",
        EntityKind.EDGE,
    ),
    KeywordSpec(
        "InE",
        _C.TRAVERSAL,
        "**InE\\<EdgeType\\>** - Get incoming edges",
        "InE<${1:EdgeType}>",
        EntityKind.EDGE,
    ),
    KeywordSpec("FromN", _C.TRAVERSAL, "**FromN** - Get the source node of an edge"),
    KeywordSpec("ToN", _C.TRAVERSAL, "**ToN** - Get the target node of an edge"),
    KeywordSpec("From", _C.TRAVERSAL, "**From** - Source of a new edge", "From(${1:node})"),
    KeywordSpec("To", _C.TRAVERSAL, "**To** - Target of a new edge", "To(${1:node})"),
    # Filtering and conditions
    KeywordSpec(
        "WHERE",
        _C.FILTER,
        "**WHERE** - Filter elements based on conditions\n\n```helixql\n::WHERE(_::{age}::GT(18))\n```",
        "WHERE(${1:condition})",
    ),
    KeywordSpec(
        "EXISTS",
        _C.FILTER,
        "**EXISTS** - Check if traversal has results\n\n```helixql\nEXISTS(_::Out<Follows>)\n```",
        "EXISTS(${1:traversal})",
        step=False,
    ),
    KeywordSpec("AND", _C.FILTER, "**AND** - Logical AND operation", "AND(${1}, ${2})", step=False),
    KeywordSpec("OR", _C.FILTER, "**OR** - Logical OR operation", "OR(${1}, ${2})", step=False),
    # Comparison operations
    KeywordSpec("GT", _C.COMPARISON, "**GT** - Greater than", "GT(${1:value})"),
    KeywordSpec("GTE", _C.COMPARISON, "**GTE** - Greater than or equal", "GTE(${1:value})"),
    KeywordSpec("LT", _C.COMPARISON, "**LT** - Less than", "LT(${1:value})"),
    KeywordSpec("LTE", _C.COMPARISON, "**LTE** - Less than or equal", "LTE(${1:value})"),
    KeywordSpec("EQ", _C.COMPARISON, "**EQ** - Equal to", "EQ(${1:value})"),
    KeywordSpec("NEQ", _C.COMPARISON, "**NEQ** - Not equal to", "NEQ(${1:value})"),
    # Other operations
    KeywordSpec("COUNT", _C.OPERATION, "**COUNT** - Count the number of elements"),
    KeywordSpec("UPDATE", _C.OPERATION, "**UPDATE** - Update properties of elements", "UPDATE({${1}})"),
    KeywordSpec("RANGE", _C.OPERATION, "**RANGE** - Get a range of elements", "RANGE(${1:start}, ${2:end})"),
    KeywordSpec("DROP", _C.KEYWORD, "**DROP** - Delete elements from the graph", "DROP ${1:traversal}"),
    # Types
    KeywordSpec("String", _C.TYPE, "**String** - Text data type"),
    KeywordSpec("Boolean", _C.TYPE, "**Boolean** - True/false value"),
    KeywordSpec("I8", _C.TYPE, "**I8** - 8-bit signed integer (-128 to 127)"),
    KeywordSpec("I16", _C.TYPE, "**I16** - 16-bit signed integer"),
    KeywordSpec("I32", _C.TYPE, "**I32** - 32-bit signed integer"),
    KeywordSpec("I64", _C.TYPE, "**I64** - 64-bit signed integer"),
    KeywordSpec("U8", _C.TYPE, "**U8** - 8-bit unsigned integer (0 to 255)"),
    KeywordSpec("U16", _C.TYPE, "**U16** - 16-bit unsigned integer"),
    KeywordSpec("U32", _C.TYPE, "**U32** - 32-bit unsigned integer"),
    KeywordSpec("U64", _C.TYPE, "**U64** - 64-bit unsigned integer"),
    KeywordSpec("U128", _C.TYPE, "**U128** - 128-bit unsigned integer"),
    KeywordSpec("F32", _C.TYPE, "**F32** - 32-bit floating point"),
    KeywordSpec("F64", _C.TYPE, "**F64** - 64-bit floating point"),
    KeywordSpec("ID", _C.TYPE, "**ID** - UUID identifier"),
    KeywordSpec("Date", _C.TYPE, "**Date** - Date/timestamp value"),
    # Keywords
    KeywordSpec(
        "QUERY",
        _C.KEYWORD,
        "**QUERY** - Define a query function",
        "QUERY ${1:Name}(${2}) =>\n    ${3}\n    RETURN ${4}",
    ),
    KeywordSpec("RETURN", _C.KEYWORD, "**RETURN** - Specify query output", "RETURN ${1}"),
    KeywordSpec("FOR", _C.KEYWORD, "**FOR** - Loop over a collection", "FOR ${1:item} IN ${2:items} {\n    ${3}\n}"),
    KeywordSpec("IN", _C.KEYWORD, "**IN** - Part of FOR loop syntax"),
    KeywordSpec("INDEX", _C.KEYWORD, "**INDEX** - Mark a field as indexed"),
    KeywordSpec("DEFAULT", _C.KEYWORD, "**DEFAULT** - Set default value for a field"),
)

_BY_NAME: dict[str, KeywordSpec] = {spec.name: spec for spec in KEYWORDS}

GENERIC_MARKERS: dict[str, EntityKind] = {
    spec.name: spec.generic_kind for spec in KEYWORDS if spec.generic_kind is not None
}


def lookup(word: str) -> Optional[KeywordSpec]:
    return _BY_NAME.get(word)


def generic_marker_kind(word: str) -> Optional[EntityKind]:
    return GENERIC_MARKERS.get(word)


def step_keywords() -> list[KeywordSpec]:
    return [spec for spec in KEYWORDS if spec.is_step]


def default_keywords() -> list[KeywordSpec]:
    return [spec for spec in KEYWORDS if spec.is_default]
