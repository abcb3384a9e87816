from __future__ import annotations

from pathlib import Path

from lsprotocol.types import DiagnosticSeverity

from helixql_lsp.config import ServerSettings
from helixql_lsp.pipeline import AnalysisStatus
from helixql_lsp.session import HelixQLSession
from tests.samples import QUERIES_SOURCE, write


def test_open_publishes_every_member(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    publication = session.open(uri, QUERIES_SOURCE)
    assert set(publication) == {uri, (helix_workspace / "schema.hx").as_uri()}
    assert all(diagnostics == [] for diagnostics in publication.values())


def test_diagnostics_land_on_owning_file(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    broken = QUERIES_SOURCE.replace("AddN<Person>", "AddN<Persn>")
    publication = session.open(uri, broken)
    (diagnostic,) = publication[uri]
    assert diagnostic.message.startswith("`Persn` is not a declared node type")
    assert diagnostic.message.endswith("Hint: declare it with `N::Persn { ... }`")
    assert diagnostic.severity == DiagnosticSeverity.Error
    assert diagnostic.range.start.line == 1
    assert publication[(helix_workspace / "schema.hx").as_uri()] == []


def test_fixing_a_file_clears_its_diagnostics(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    session.open(uri, QUERIES_SOURCE + "QUERY Bad() =>\n    RETURN ghost\n")
    publication = session.update(uri, QUERIES_SOURCE)
    assert publication[uri] == []


def test_save_with_and_without_text(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    session.open(uri, QUERIES_SOURCE)
    assert session.save(uri)[uri] == []
    publication = session.save(uri, "QUERY Bad() =>\n    RETURN ghost\n")
    assert len(publication[uri]) == 1
    assert session.documents.get(uri).text.startswith("QUERY Bad()")


def test_close_clears_only_the_closed_document(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    session.open(uri, QUERIES_SOURCE)
    runs = session.cache.state_for(str(helix_workspace)).runs
    assert session.close(uri) == {uri: []}
    assert uri not in session.documents
    assert session.cache.state_for(str(helix_workspace)).runs == runs


def test_unrecognized_extension_is_not_analyzed(session, tmp_path: Path) -> None:
    uri = (tmp_path / "notes.txt").as_uri()
    assert session.open(uri, "anything") == {}
    assert session.cache.keys() == []


def test_configure_changes_extensions_and_source(tmp_path: Path) -> None:
    write(tmp_path, "schema.helix", "N::User { name: String }")
    session = HelixQLSession(ServerSettings(extensions=(".helix",), source="helix"))
    uri = (tmp_path / "q.helix").as_uri()
    publication = session.open(uri, "QUERY f(id: ID) =>\n    RETURN NONE\n")
    (warning,) = publication[uri]
    assert warning.source == "helix"
    assert warning.severity == DiagnosticSeverity.Warning
    assert set(publication) == {uri, (tmp_path / "schema.helix").as_uri()}


def test_workspace_schema_command(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "queries.hx").as_uri()
    session.open(uri, QUERIES_SOURCE)
    result = session.workspace_schema({"uri": uri})
    assert result["errors"] == []
    assert result["status"] == AnalysisStatus.OK.value
    assert result["workspace"] == str(helix_workspace)
    (version,) = result["versions"]
    assert version["version"] == 1
    names = [entity["name"] for entity in version["entities"]]
    assert names == ["Person", "User", "Follows", "Document"]
    follows = version["entities"][2]
    assert (follows["from_type"], follows["to_type"]) == ("User", "User")
    assert follows["fields"] == [{"name": "since", "type": "Date", "indexed": False, "default": None}]
    assert [query["name"] for query in result["queries"]] == ["CreatePerson", "FollowUser", "Followers"]
    assert result["queries"][0]["parameters"] == ["name", "age"]


def test_workspace_schema_command_errors(session, tmp_path: Path) -> None:
    invalid = session.workspace_schema({"path": "x"})
    assert invalid["errors"] and invalid["versions"] == []
    missing = session.workspace_schema(None)
    assert missing["errors"]
    empty = session.workspace_schema({"uri": (tmp_path / "a.hx").as_uri()})
    assert empty["errors"] == [f"no analyzed model for {tmp_path}"]
    assert empty["status"] is None


def test_positions_use_utf16_code_units(session, helix_workspace: Path) -> None:
    uri = (helix_workspace / "emoji.hx").as_uri()
    session.open(uri, 'QUERY Emoji(age: I32) =>\n    p <- AddN<Person>({name: "😀"}) RETURN age\n')
    hover = session.hover(uri, 1, 44)
    assert "(parameter) `age`: `I32`" in hover.contents.value
    assert (hover.range.start.character, hover.range.end.character) == (43, 46)


def test_diagnostic_columns_use_utf16_code_units(session, tmp_path: Path) -> None:
    uri = (tmp_path / "ghost.hx").as_uri()
    (diagnostic,) = session.open(uri, 'QUERY Ghost() =>\n    RETURN "😀", ghost\n')[uri]
    assert diagnostic.message.startswith("`ghost` is not defined")
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (1, 17)
