"""Semantic checks over a parsed HelixQL bundle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from helixql_lsp.exceptions import AnalysisFailure
from helixql_lsp.language.model import (
    AnalyzedModel,
    Diagnostic,
    EntityKind,
    EntitySchema,
    Expression,
    ExpressionKind,
    FieldDef,
    Loc,
    Query,
    SchemaVersion,
    Severity,
    Source,
    Statement,
    StatementKind,
    StepKind,
)

BUILTIN_VALUES = frozenset({"NONE", "NOW"})

_EDGE_STEPS = frozenset({"Out", "In", "OutE", "InE", "AddE"})
_STEP_KINDS = {"AddN": EntityKind.NODE, "AddV": EntityKind.VECTOR, "SearchV": EntityKind.VECTOR}
_PROPERTY_CONSTRUCTORS = frozenset(
    {ExpressionKind.ADD_NODE, ExpressionKind.ADD_EDGE, ExpressionKind.ADD_VECTOR}
)


def merge_schema_blocks(blocks: Iterable[SchemaVersion]) -> dict[int, SchemaVersion]:
    """Key schema blocks by version, merging the implicit top-level blocks.

    Raises :class:`AnalysisFailure` when a version is claimed by an explicit
    ``schema::<n>`` block more than once, or by both an explicit block and
    top-level declarations.
    """
    versions: dict[int, SchemaVersion] = {}
    for block in blocks:
        existing = versions.get(block.version)
        if existing is None:
            versions[block.version] = block
            continue
        if block.explicit or existing.explicit:
            where = block.loc if block.explicit and block.loc is not None else existing.loc
            locator = f" at {where.start.line}:{where.start.column}" if where is not None else ""
            raise AnalysisFailure(
                f"schema version {block.version} is declared more than once{locator}",
                filepath=where.filepath if where is not None else None,
            )
        versions[block.version] = SchemaVersion(
            version=block.version,
            entities=existing.entities + block.entities,
        )
    return versions


@dataclass
class _QueryScope:
    query: Query
    names: set[str] = field(default_factory=set)
    used: set[str] = field(default_factory=set)

    def child(self) -> "_QueryScope":
        return _QueryScope(query=self.query, names=set(self.names), used=self.used)


class HelixAnalyzer:
    """Checks a :class:`Source` and returns its diagnostics and analyzed model."""

    def analyze(self, source: Source) -> tuple[list[Diagnostic], AnalyzedModel]:
        versions = merge_schema_blocks(source.schema_blocks)
        model = AnalyzedModel(versions=versions, queries=source.queries)
        diagnostics: list[Diagnostic] = []
        for number in sorted(versions):
            diagnostics.extend(self._check_schema(versions[number]))
        diagnostics.extend(self._check_queries(model))
        return diagnostics, model

    # -- schema ----------------------------------------------------------

    def _check_schema(self, version: SchemaVersion) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        seen: set[str] = set()
        declared = {entity.name for entity in version.entities}
        nodes = {entity.name for entity in version.of_kind(EntityKind.NODE)}
        for entity in version.entities:
            if entity.name in seen:
                diagnostics.append(
                    _error(
                        f"`{entity.name}` is declared more than once in schema version {version.version}",
                        entity.loc,
                        hint="rename one of the declarations",
                    )
                )
            seen.add(entity.name)
            diagnostics.extend(self._check_fields(entity, entity.fields, declared))
            if entity.kind is EntityKind.EDGE:
                diagnostics.extend(self._check_endpoints(entity, nodes))
        return diagnostics

    def _check_fields(
        self, entity: EntitySchema, fields: Iterable[FieldDef], declared: set[str]
    ) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        names: set[str] = set()
        for item in fields:
            if item.name in names:
                diagnostics.append(
                    _error(f"field `{item.name}` is declared more than once on `{entity.name}`", item.loc)
                )
            names.add(item.name)
            for referenced in item.field_type.referenced_names():
                if referenced not in declared:
                    diagnostics.append(
                        _error(
                            f"unknown type `{referenced}` for field `{item.name}`",
                            item.loc,
                            hint="use a primitive type or a declared schema type",
                        )
                    )
        return diagnostics

    def _check_endpoints(self, edge: EntitySchema, nodes: set[str]) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for label, endpoint in (("From", edge.from_type), ("To", edge.to_type)):
            if endpoint is None:
                diagnostics.append(_error(f"edge `{edge.name}` is missing `{label}`", edge.loc))
            elif endpoint not in nodes:
                diagnostics.append(
                    _error(
                        f"`{label}: {endpoint}` on edge `{edge.name}` is not a declared node type",
                        edge.loc,
                        hint=f"declare it with `N::{endpoint} {{ ... }}`",
                    )
                )
        return diagnostics

    # -- queries ---------------------------------------------------------

    def _check_queries(self, model: AnalyzedModel) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        seen: set[str] = set()
        for query in model.queries:
            if query.name in seen:
                diagnostics.append(_error(f"query `{query.name}` is declared more than once", query.name_loc))
            seen.add(query.name)
            diagnostics.extend(self._check_query(model, query))
        return diagnostics

    def _check_query(self, model: AnalyzedModel, query: Query) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        scope = _QueryScope(query=query)
        for parameter in query.parameters:
            if parameter.name in scope.names:
                diagnostics.append(
                    _error(f"parameter `{parameter.name}` is declared more than once", parameter.loc)
                )
            scope.names.add(parameter.name)
            for referenced in parameter.param_type.referenced_names():
                if model.find_entity(referenced) is None:
                    diagnostics.append(
                        _error(f"unknown type `{referenced}` for parameter `{parameter.name}`", parameter.loc)
                    )
        for statement in query.statements:
            diagnostics.extend(self._check_statement(model, scope, statement))
        for value in query.returns:
            diagnostics.extend(self._check_expression(model, scope, value))
        for parameter in query.parameters:
            if parameter.name not in scope.used:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        message=f"parameter `{parameter.name}` is never used",
                        location=parameter.loc,
                        hint="remove it or reference it in the query body",
                        filepath=parameter.loc.filepath,
                    )
                )
        return diagnostics

    def _check_statement(
        self, model: AnalyzedModel, scope: _QueryScope, statement: Statement
    ) -> list[Diagnostic]:
        diagnostics = self._check_expression(model, scope, statement.expression)
        if statement.kind is StatementKind.ASSIGNMENT and statement.variable is not None:
            scope.names.add(statement.variable)
        elif statement.kind is StatementKind.FOR_LOOP:
            body_scope = scope.child()
            body_scope.names.update(statement.loop_variables)
            for inner in statement.body:
                diagnostics.extend(self._check_statement(model, body_scope, inner))
        return diagnostics

    def _check_expression(
        self, model: AnalyzedModel, scope: _QueryScope, expression: Optional[Expression]
    ) -> list[Diagnostic]:
        if expression is None:
            return []
        diagnostics: list[Diagnostic] = []
        kind = expression.kind
        if kind is ExpressionKind.IDENTIFIER and expression.name is not None:
            if expression.name in scope.names:
                scope.used.add(expression.name)
            elif expression.name not in BUILTIN_VALUES:
                diagnostics.append(
                    _error(
                        f"`{expression.name}` is not defined in query `{scope.query.name}`",
                        expression.loc,
                        hint="declare it as a parameter or assign it with `<-`",
                    )
                )
        if expression.entity_kind is not None and expression.type_name is not None:
            diagnostics.extend(
                _check_type_reference(model, expression.entity_kind, expression.type_name, expression.loc)
            )
        if kind in _PROPERTY_CONSTRUCTORS and expression.type_name is not None:
            entity = model.find_entity(expression.type_name, expression.entity_kind)
            for arg in expression.args:
                if arg.kind is ExpressionKind.OBJECT and entity is not None:
                    diagnostics.extend(_check_properties(entity, arg))
        for arg in expression.args:
            diagnostics.extend(self._check_expression(model, scope, arg))
        for entry in expression.entries:
            diagnostics.extend(self._check_expression(model, scope, entry.value))
        diagnostics.extend(self._check_expression(model, scope, expression.start))
        for step in expression.steps:
            if step.type_name is not None:
                step_kind = EntityKind.EDGE if step.name in _EDGE_STEPS else _STEP_KINDS.get(step.name)
                if step_kind is not None:
                    diagnostics.extend(_check_type_reference(model, step_kind, step.type_name, step.loc))
            for arg in step.args:
                diagnostics.extend(self._check_expression(model, scope, arg))
            for entry in step.entries:
                # Bare names inside `::{...}` refer to fields, not variables.
                if entry.value is not None and entry.value.kind is not ExpressionKind.IDENTIFIER:
                    diagnostics.extend(self._check_expression(model, scope, entry.value))
            if step.kind is StepKind.CALL and step.name in {"From", "To"} and not step.args:
                diagnostics.append(_error(f"`{step.name}` needs a target", step.loc))
        return diagnostics


def _check_type_reference(
    model: AnalyzedModel, kind: EntityKind, type_name: str, loc: Loc
) -> list[Diagnostic]:
    if model.find_entity(type_name, kind) is not None:
        return []
    return [
        _error(
            f"`{type_name}` is not a declared {kind.value.lower()} type",
            loc,
            hint=f"declare it with `{kind.prefix}::{type_name} {{ ... }}`",
        )
    ]


def _check_properties(entity: EntitySchema, properties: Expression) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for entry in properties.entries:
        if entry.key == "..":
            continue
        if entity.field_named(entry.key) is None:
            diagnostics.append(_error(f"`{entity.name}` has no field `{entry.key}`", entry.loc))
    return diagnostics


def _error(message: str, loc: Loc, hint: Optional[str] = None) -> Diagnostic:
    return Diagnostic(
        severity=Severity.ERROR,
        message=message,
        location=loc,
        hint=hint,
        filepath=loc.filepath,
    )


__all__ = ["BUILTIN_VALUES", "HelixAnalyzer", "merge_schema_blocks"]
