from __future__ import annotations

from pathlib import Path

from helixql_lsp.documents import DocumentStore
from helixql_lsp.workspace import WorkspaceResolver, uri_to_path, workspace_key
from tests.samples import write


def test_uri_to_path_and_key() -> None:
    assert uri_to_path("file:///tmp/my%20dir/a.hx") == Path("/tmp/my dir/a.hx")
    assert workspace_key("file:///tmp/proj/a.hx") == str(Path("/tmp/proj"))


def test_members_are_recognized_files_on_disk_or_open(tmp_path: Path) -> None:
    write(tmp_path, "schema.hx", "N::User { name: String }")
    write(tmp_path, "queries.hql", "QUERY f() =>\n    RETURN NONE")
    write(tmp_path, "notes.txt", "ignored")
    write(tmp_path, "nested/other.hx", "N::Other {}")
    store = DocumentStore()
    open_uri = (tmp_path / "draft.hx").as_uri()
    store.open(open_uri, "N::Draft {}")
    store.open((tmp_path / "nested" / "open.hx").as_uri(), "N::Elsewhere {}")

    workspace = WorkspaceResolver(store).resolve(open_uri)

    assert workspace.key == str(tmp_path)
    assert [member.name for member in workspace.members] == ["draft.hx", "queries.hql", "schema.hx"]
    draft = workspace.member_by_uri(open_uri)
    assert draft is not None and draft.is_open and draft.text == "N::Draft {}"


def test_open_text_wins_over_disk(tmp_path: Path) -> None:
    path = write(tmp_path, "schema.hx", "N::OnDisk {}")
    store = DocumentStore()
    store.open(path.as_uri(), "N::InEditor {}")
    workspace = WorkspaceResolver(store).resolve(path.as_uri())
    assert len(workspace.members) == 1
    assert workspace.members[0].text == "N::InEditor {}"
    assert workspace.members[0].is_open


def test_custom_extensions(tmp_path: Path) -> None:
    write(tmp_path, "a.hx", "")
    write(tmp_path, "b.helix", "")
    resolver = WorkspaceResolver(DocumentStore(), extensions=[".HELIX"])
    workspace = resolver.resolve((tmp_path / "b.helix").as_uri())
    assert [member.name for member in workspace.members] == ["b.helix"]


def test_missing_directory_yields_only_open_members(tmp_path: Path) -> None:
    missing = tmp_path / "gone"
    store = DocumentStore()
    uri = (missing / "a.hx").as_uri()
    store.open(uri, "N::A {}")
    workspace = WorkspaceResolver(store).resolve(uri)
    assert [member.uri for member in workspace.members] == [uri]


def test_non_file_uris_use_open_documents_only() -> None:
    store = DocumentStore()
    store.open("untitled:scratch.hx", "N::A {}")
    workspace = WorkspaceResolver(store).resolve("untitled:scratch.hx")
    assert [member.uri for member in workspace.members] == ["untitled:scratch.hx"]


def test_member_for_matches_path_then_basename(tmp_path: Path) -> None:
    write(tmp_path, "schema.hx", "")
    workspace = WorkspaceResolver(DocumentStore()).resolve_directory(tmp_path)
    by_path = workspace.member_for(str(tmp_path / "schema.hx"))
    by_name = workspace.member_for("elsewhere/schema.hx")
    assert by_path is not None and by_path is by_name
    assert workspace.member_for("missing.hx") is None
    assert workspace.member_for(None) is None
