"""Hover and go-to-definition over the cached analyzed model.

Resolution walks an ordered chain of strategies and stops at the first one
that produces an answer:

1. keyword documentation from the shared registry;
2. schema types (every version, newest first);
3. the inferred type of a variable assigned in the enclosing query;
4. the declared type of a parameter of the enclosing query;
5. the type of a field inside a ``::{...}`` access, for the entity named in
   the surrounding generic brackets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from helixql_lsp import keywords
from helixql_lsp.language.model import (
    CONSTRUCTION_KINDS,
    AnalyzedModel,
    EntityKind,
    EntitySchema,
    Expression,
    ExpressionKind,
    FieldDef,
    Loc,
    Query,
    Statement,
    StatementKind,
    StepKind,
)
from helixql_lsp.lexical import LexicalContext

BUILTIN_FIELDS: dict[EntityKind, tuple[tuple[str, str], ...]] = {
    EntityKind.NODE: (("id", "ID"), ("label", "String")),
    EntityKind.EDGE: (
        ("id", "ID"),
        ("label", "String"),
        ("from_node", "ID"),
        ("to_node", "ID"),
    ),
    EntityKind.VECTOR: (
        ("id", "ID"),
        ("label", "String"),
        ("data", "[F64]"),
        ("score", "F64"),
    ),
}

LITERAL_TYPES = {
    ExpressionKind.STRING: "String",
    ExpressionKind.INTEGER: "I64",
    ExpressionKind.FLOAT: "F64",
    ExpressionKind.BOOLEAN: "Boolean",
}


@dataclass(frozen=True)
class SymbolRequest:
    word: str
    context: LexicalContext
    model: Optional[AnalyzedModel] = None
    filepath: Optional[str] = None

    @property
    def line(self) -> int:
        """1-based line of the cursor, as the model reports lines."""
        return self.context.line + 1


@dataclass(frozen=True)
class Resolution:
    markdown: str
    target: Optional[Loc] = None


Strategy = Callable[[SymbolRequest], Optional[Resolution]]


def render_entity(entity: EntitySchema, version: Optional[int] = None) -> str:
    lines = [f"{entity.label} {{"]
    indent = "    "
    if entity.kind is EntityKind.EDGE:
        if entity.from_type:
            lines.append(f"{indent}From: {entity.from_type},")
        if entity.to_type:
            lines.append(f"{indent}To: {entity.to_type},")
        if entity.fields:
            lines.append(f"{indent}Properties: {{")
            lines.extend(f"{indent * 2}{_render_field(item)}," for item in entity.fields)
            lines.append(f"{indent}}}")
    else:
        lines.extend(f"{indent}{_render_field(item)}," for item in entity.fields)
    lines.append("}")
    header = f"**{entity.kind.value}** `{entity.name}`"
    if version is not None:
        header += f" (schema v{version})"
    return header + "\n\n```helixql\n" + "\n".join(lines) + "\n```"


def _render_field(item: FieldDef) -> str:
    text = f"{item.name}: {item.field_type.render()}"
    if item.indexed:
        text = "INDEX " + text
    if item.default is not None:
        text += f" DEFAULT {item.default}"
    return text


def keyword_documentation(request: SymbolRequest) -> Optional[Resolution]:
    spec = keywords.lookup(request.word)
    if spec is None:
        return None
    return Resolution(markdown=spec.documentation)


def schema_type(request: SymbolRequest) -> Optional[Resolution]:
    if request.model is None:
        return None
    for version in request.model.newest_first():
        entity = version.find(request.word)
        if entity is not None:
            return Resolution(
                markdown=render_entity(entity, version.version),
                target=entity.loc,
            )
    return None


def _assignment_for(statements: Sequence[Statement], name: str) -> Optional[Statement]:
    for statement in statements:
        if statement.kind is StatementKind.ASSIGNMENT and statement.variable == name:
            return statement
        if statement.kind is StatementKind.FOR_LOOP:
            found = _assignment_for(statement.body, name)
            if found is not None:
                return found
    return None


def _typed(kind: EntityKind, type_name: Optional[str]) -> str:
    return f"{kind.value}<{type_name}>" if type_name else kind.value


def infer_expression_type(expression: Expression) -> Optional[str]:
    if expression.kind in LITERAL_TYPES:
        return LITERAL_TYPES[expression.kind]
    if expression.kind in CONSTRUCTION_KINDS:
        return _typed(CONSTRUCTION_KINDS[expression.kind], expression.type_name)
    if expression.kind is ExpressionKind.ENTITY and expression.entity_kind is not None:
        return _typed(expression.entity_kind, expression.type_name)
    if expression.kind is ExpressionKind.TRAVERSAL:
        first = expression.steps[0] if expression.steps else None
        if first is not None and first.kind is StepKind.CALL and first.name == "AddE":
            return _typed(EntityKind.EDGE, first.type_name)
        if expression.start is not None:
            return infer_expression_type(expression.start)
    return None


def _enclosing_query(request: SymbolRequest) -> Optional[Query]:
    if request.model is None:
        return None
    return request.model.query_at(request.filepath, request.line)


def variable_type(request: SymbolRequest) -> Optional[Resolution]:
    query = _enclosing_query(request)
    if query is None:
        return None
    statement = _assignment_for(query.statements, request.word)
    if statement is None:
        return None
    inferred = infer_expression_type(statement.expression)
    if inferred is None:
        return None
    return Resolution(
        markdown=f"(variable) `{request.word}`: `{inferred}`",
        target=statement.variable_loc,
    )


def parameter_type(request: SymbolRequest) -> Optional[Resolution]:
    query = _enclosing_query(request)
    if query is None:
        return None
    parameter = query.parameter_named(request.word)
    if parameter is None:
        return None
    markdown = f"(parameter) `{parameter.name}`: `{parameter.param_type.render()}`"
    if parameter.optional:
        markdown += " (optional)"
    return Resolution(markdown=markdown, target=parameter.loc)


def field_type(request: SymbolRequest) -> Optional[Resolution]:
    context = request.context
    if not context.field_access or context.entity is None:
        return None
    kind, type_name = context.entity.kind, context.entity.type_name
    for name, builtin in BUILTIN_FIELDS[kind]:
        if name == request.word:
            return Resolution(markdown=f"(field) `{type_name}.{name}`: `{builtin}`")
    if request.model is None:
        return None
    entity = request.model.find_entity(type_name, kind)
    if entity is None:
        return None
    item = entity.field_named(request.word)
    if item is None:
        return None
    return Resolution(
        markdown=f"(field) `{type_name}.{item.name}`: `{item.field_type.render()}`",
        target=item.loc,
    )


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    keyword_documentation,
    schema_type,
    variable_type,
    parameter_type,
    field_type,
)


class SymbolResolver:
    def __init__(self, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    def resolutions(self, request: SymbolRequest) -> Iterator[Resolution]:
        for strategy in self.strategies:
            resolution = strategy(request)
            if resolution is not None:
                yield resolution

    def hover(self, request: SymbolRequest) -> Optional[str]:
        for resolution in self.resolutions(request):
            return resolution.markdown
        return None

    def definition(self, request: SymbolRequest) -> Optional[Loc]:
        for resolution in self.resolutions(request):
            if resolution.target is not None:
                return resolution.target
        return None
