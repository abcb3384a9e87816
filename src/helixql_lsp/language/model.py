"""Structured model produced by the HelixQL parser and analyzer.

Locations are 1-based (line and column), the way the compiler reports them;
the editor-facing layer converts them to 0-based ranges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Optional, Tuple


PRIMITIVE_TYPES = frozenset(
    {
        "String",
        "Boolean",
        "F32",
        "F64",
        "I8",
        "I16",
        "I32",
        "I64",
        "U8",
        "U16",
        "U32",
        "U64",
        "U128",
        "ID",
        "Date",
    }
)


class EntityKind(str, Enum):
    NODE = "Node"
    EDGE = "Edge"
    VECTOR = "Vector"

    @property
    def prefix(self) -> str:
        return self.value[0]


@dataclass(frozen=True)
class Position:
    line: int
    column: int


@dataclass(frozen=True)
class Loc:
    filepath: Optional[str]
    start: Position
    end: Position

    def contains_line(self, line: int) -> bool:
        return self.start.line <= line <= self.end.line


class FieldTypeKind(Enum):
    PRIMITIVE = "primitive"
    ARRAY = "array"
    IDENTIFIER = "identifier"
    OBJECT = "object"


@dataclass(frozen=True)
class FieldType:
    kind: FieldTypeKind
    name: str = ""
    inner: Optional["FieldType"] = None
    fields: Tuple["FieldDef", ...] = ()

    def render(self) -> str:
        if self.kind is FieldTypeKind.ARRAY and self.inner is not None:
            return f"[{self.inner.render()}]"
        if self.kind is FieldTypeKind.OBJECT:
            inner = ", ".join(f"{item.name}: {item.field_type.render()}" for item in self.fields)
            return "{" + inner + "}"
        return self.name

    def referenced_names(self) -> Iterator[str]:
        if self.kind is FieldTypeKind.IDENTIFIER:
            yield self.name
        elif self.kind is FieldTypeKind.ARRAY and self.inner is not None:
            yield from self.inner.referenced_names()
        elif self.kind is FieldTypeKind.OBJECT:
            for item in self.fields:
                yield from item.field_type.referenced_names()


@dataclass(frozen=True)
class FieldDef:
    name: str
    field_type: FieldType
    loc: Loc
    indexed: bool = False
    default: Optional[str] = None


@dataclass(frozen=True)
class EntitySchema:
    kind: EntityKind
    name: str
    loc: Loc
    fields: Tuple[FieldDef, ...] = ()
    from_type: Optional[str] = None
    to_type: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.kind.prefix}::{self.name}"

    def field_named(self, name: str) -> Optional[FieldDef]:
        for item in self.fields:
            if item.name == name:
                return item
        return None


@dataclass(frozen=True)
class SchemaVersion:
    version: int
    entities: Tuple[EntitySchema, ...] = ()
    explicit: bool = False
    loc: Optional[Loc] = None

    def of_kind(self, kind: EntityKind) -> Tuple[EntitySchema, ...]:
        return tuple(entity for entity in self.entities if entity.kind is kind)

    def find(self, name: str, kind: Optional[EntityKind] = None) -> Optional[EntitySchema]:
        for entity in self.entities:
            if entity.name == name and (kind is None or entity.kind is kind):
                return entity
        return None


class ExpressionKind(Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    IDENTIFIER = "identifier"
    ANONYMOUS = "anonymous"
    ENTITY = "entity"
    ADD_NODE = "add_node"
    ADD_EDGE = "add_edge"
    ADD_VECTOR = "add_vector"
    SEARCH_VECTOR = "search_vector"
    TRAVERSAL = "traversal"
    EXISTS = "exists"
    CALL = "call"
    OBJECT = "object"
    ARRAY = "array"


CONSTRUCTION_KINDS = {
    ExpressionKind.ADD_NODE: EntityKind.NODE,
    ExpressionKind.ADD_EDGE: EntityKind.EDGE,
    ExpressionKind.ADD_VECTOR: EntityKind.VECTOR,
    ExpressionKind.SEARCH_VECTOR: EntityKind.VECTOR,
}


class StepKind(Enum):
    CALL = "call"
    OBJECT = "object"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class ObjectEntry:
    key: str
    loc: Loc
    value: Optional["Expression"] = None


@dataclass(frozen=True)
class Step:
    kind: StepKind
    loc: Loc
    name: str = ""
    type_name: Optional[str] = None
    args: Tuple["Expression", ...] = ()
    entries: Tuple[ObjectEntry, ...] = ()


@dataclass(frozen=True)
class Expression:
    kind: ExpressionKind
    loc: Loc
    name: Optional[str] = None
    entity_kind: Optional[EntityKind] = None
    type_name: Optional[str] = None
    args: Tuple["Expression", ...] = ()
    entries: Tuple[ObjectEntry, ...] = ()
    start: Optional["Expression"] = None
    steps: Tuple[Step, ...] = ()


class StatementKind(Enum):
    ASSIGNMENT = "assignment"
    FOR_LOOP = "for_loop"
    DROP = "drop"
    EXPRESSION = "expression"


@dataclass(frozen=True)
class Statement:
    kind: StatementKind
    loc: Loc
    expression: Expression
    variable: Optional[str] = None
    variable_loc: Optional[Loc] = None
    loop_variables: Tuple[str, ...] = ()
    body: Tuple["Statement", ...] = ()


@dataclass(frozen=True)
class Parameter:
    name: str
    param_type: FieldType
    loc: Loc
    optional: bool = False


@dataclass(frozen=True)
class Query:
    name: str
    loc: Loc
    name_loc: Loc
    parameters: Tuple[Parameter, ...] = ()
    statements: Tuple[Statement, ...] = ()
    returns: Tuple[Expression, ...] = ()

    def parameter_named(self, name: str) -> Optional[Parameter]:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None


@dataclass(frozen=True)
class SourceFile:
    name: str
    content: str


@dataclass(frozen=True)
class Source:
    files: Tuple[str, ...] = ()
    schema_blocks: Tuple[SchemaVersion, ...] = ()
    queries: Tuple[Query, ...] = ()


class Severity(Enum):
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    HINT = "Hint"
    EMPTY = "Empty"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    location: Loc
    hint: Optional[str] = None
    filepath: Optional[str] = None

    @property
    def owner(self) -> Optional[str]:
        return self.filepath or self.location.filepath


@dataclass(frozen=True)
class AnalyzedModel:
    """Schema versions and queries of one successfully analyzed workspace."""

    versions: Mapping[int, SchemaVersion] = field(default_factory=dict)
    queries: Tuple[Query, ...] = ()

    def newest_first(self) -> list[SchemaVersion]:
        return [self.versions[number] for number in sorted(self.versions, reverse=True)]

    @property
    def latest(self) -> Optional[SchemaVersion]:
        ordered = self.newest_first()
        return ordered[0] if ordered else None

    def find_entity(
        self, name: str, kind: Optional[EntityKind] = None
    ) -> Optional[EntitySchema]:
        for version in self.newest_first():
            entity = version.find(name, kind)
            if entity is not None:
                return entity
        return None

    def type_names(self, kind: EntityKind) -> list[str]:
        names: list[str] = []
        for version in self.newest_first():
            for entity in version.of_kind(kind):
                if entity.name not in names:
                    names.append(entity.name)
        return names

    def query_at(self, filepath: Optional[str], line: int) -> Optional[Query]:
        for query in self.queries:
            if filepath is not None and query.loc.filepath not in (None, filepath):
                continue
            if query.loc.contains_line(line):
                return query
        return None
