from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

from helixql_lsp.documents import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".hx", ".hql")


def uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def is_file_uri(uri: str) -> bool:
    return urlparse(uri).scheme == "file"


def workspace_key(uri: str) -> str:
    """Compilation-unit key: the directory holding the document."""
    return str(uri_to_path(uri).parent)


@dataclass(frozen=True)
class WorkspaceMember:
    path: str
    uri: str
    text: str
    is_open: bool = False

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass(frozen=True)
class Workspace:
    key: str
    members: tuple[WorkspaceMember, ...]

    def member_for(self, filepath: Optional[str]) -> Optional[WorkspaceMember]:
        if filepath is None:
            return None
        for member in self.members:
            if member.path == filepath:
                return member
        name = Path(filepath).name
        for member in self.members:
            if member.name == name:
                return member
        return None

    def member_by_uri(self, uri: str) -> Optional[WorkspaceMember]:
        for member in self.members:
            if member.uri == uri:
                return member
        return None


class WorkspaceResolver:
    """Groups a document with its sibling HelixQL files.

    Members are the open documents in the same directory united with the
    matching files on disk; open text always wins over disk text.
    """

    def __init__(
        self,
        documents: DocumentStore,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.documents = documents
        self.extensions = tuple(extension.lower() for extension in extensions)

    def recognizes(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def resolve(self, uri: str) -> Workspace:
        return self._collect(workspace_key(uri), include_disk=is_file_uri(uri))

    def resolve_directory(self, directory: Path) -> Workspace:
        return self._collect(str(directory), include_disk=True)

    def _collect(self, key: str, *, include_disk: bool) -> Workspace:
        members: dict[str, WorkspaceMember] = {}
        for document in self.documents.snapshot():
            path = uri_to_path(document.uri)
            if str(path.parent) != key or not self.recognizes(path):
                continue
            members[str(path)] = WorkspaceMember(
                path=str(path), uri=document.uri, text=document.text, is_open=True
            )
        if include_disk:
            for path in self._list_directory(Path(key)):
                if str(path) in members:
                    continue
                members[str(path)] = WorkspaceMember(
                    path=str(path), uri=path.absolute().as_uri(), text=self.read(path)
                )
        ordered = tuple(members[name] for name in sorted(members))
        return Workspace(key=key, members=ordered)

    def _list_directory(self, directory: Path) -> list[Path]:
        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)
            return []
        return [entry for entry in entries if self.recognizes(entry) and entry.is_file()]

    def read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read %s: %s", path, exc)
            return ""
