from __future__ import annotations

import pytest

from helixql_lsp.exceptions import AnalysisFailure
from helixql_lsp.language import HelixAnalyzer, HelixParser
from helixql_lsp.language.model import EntityKind, Severity, SourceFile
from tests.samples import QUERIES_SOURCE, SCHEMA_SOURCE


def _analyze(*sources: tuple[str, str]):
    source = HelixParser().parse([SourceFile(name=name, content=content) for name, content in sources])
    return HelixAnalyzer().analyze(source)


def _messages(diagnostics) -> list[str]:
    return [diagnostic.message for diagnostic in diagnostics]


def test_sample_workspace_is_clean() -> None:
    diagnostics, model = _analyze(("schema.hx", SCHEMA_SOURCE), ("queries.hx", QUERIES_SOURCE))
    assert diagnostics == []
    assert model.type_names(EntityKind.NODE) == ["Person", "User"]
    assert model.type_names(EntityKind.EDGE) == ["Follows"]
    assert model.type_names(EntityKind.VECTOR) == ["Document"]
    assert [query.name for query in model.queries] == ["CreatePerson", "FollowUser", "Followers"]


def test_implicit_blocks_from_several_files_merge() -> None:
    _, model = _analyze(("a.hx", "N::A { x: I32 }"), ("b.hx", "N::B { a: A }"))
    assert sorted(model.versions) == [1]
    assert [entity.name for entity in model.versions[1].entities] == ["A", "B"]


def test_conflicting_schema_versions_fail_analysis() -> None:
    with pytest.raises(AnalysisFailure) as excinfo:
        _analyze(
            ("a.hx", "schema::2 { N::A { x: I32 } }"),
            ("b.hx", "schema::2 { N::B { y: I32 } }"),
        )
    assert "schema version 2 is declared more than once at 1:1" in excinfo.value.message
    assert excinfo.value.filepath == "b.hx"


def test_newest_version_wins_lookup() -> None:
    _, model = _analyze(
        (
            "s.hx",
            """
            schema::1 { N::User { name: String } }
            schema::2 { N::User { name: String, age: I32 } }
            """,
        )
    )
    user = model.find_entity("User")
    assert user is not None
    assert user.field_named("age") is not None
    assert model.latest.version == 2
    assert model.type_names(EntityKind.NODE) == ["User"]


def test_schema_errors() -> None:
    diagnostics, _ = _analyze(
        (
            "s.hx",
            """
            N::User { name: String, name: I32, friend: Pal }
            N::User { x: I32 }
            E::Knows { From: User, To: Document }
            E::Dangling { To: User }
            V::Document { content: String }
            """,
        )
    )
    messages = _messages(diagnostics)
    assert "field `name` is declared more than once on `User`" in messages
    assert "unknown type `Pal` for field `friend`" in messages
    assert "`User` is declared more than once in schema version 1" in messages
    assert "`To: Document` on edge `Knows` is not a declared node type" in messages
    assert "edge `Dangling` is missing `From`" in messages
    assert all(diagnostic.severity is Severity.ERROR for diagnostic in diagnostics)
    unknown = next(d for d in diagnostics if d.message.startswith("unknown type"))
    assert unknown.hint == "use a primitive type or a declared schema type"


def test_query_errors_and_unused_parameter_warning() -> None:
    diagnostics, _ = _analyze(
        ("schema.hx", SCHEMA_SOURCE),
        (
            "q.hx",
            """
            QUERY Broken(id: ID, unused: String, id: I32) =>
                user <- N<Ghost>(id)
                person <- AddN<Person>({name: missing, nickname: "x"})
                edge <- AddE<Follows>::From(user)::To
                RETURN person

            QUERY Broken() =>
                RETURN NONE
            """,
        ),
    )
    messages = _messages(diagnostics)
    assert "parameter `id` is declared more than once" in messages
    assert "`Ghost` is not a declared node type" in messages
    assert "`missing` is not defined in query `Broken`" in messages
    assert "`Person` has no field `nickname`" in messages
    assert "`To` needs a target" in messages
    assert "query `Broken` is declared more than once" in messages
    warning = next(d for d in diagnostics if d.severity is Severity.WARNING)
    assert warning.message == "parameter `unused` is never used"
    assert warning.hint == "remove it or reference it in the query body"
    assert warning.filepath == "q.hx"
    ghost = next(d for d in diagnostics if "Ghost" in d.message)
    assert ghost.hint == "declare it with `N::Ghost { ... }`"


def test_for_loop_variables_are_scoped_to_the_body() -> None:
    diagnostics, _ = _analyze(
        ("schema.hx", SCHEMA_SOURCE),
        (
            "q.hx",
            """
            QUERY Loop(ids: [ID]) =>
                FOR id IN ids {
                    user <- N<User>(id)
                }
                RETURN id
            """,
        ),
    )
    assert _messages(diagnostics) == ["`id` is not defined in query `Loop`"]


def test_field_access_names_are_not_variables() -> None:
    diagnostics, _ = _analyze(
        ("schema.hx", SCHEMA_SOURCE),
        (
            "q.hx",
            """
            QUERY Adults() =>
                people <- N<Person>::WHERE(_::{age}::GT(18))
                RETURN people::{name, years: age}
            """,
        ),
    )
    assert diagnostics == []
