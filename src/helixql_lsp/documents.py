from __future__ import annotations

import threading
from dataclasses import dataclass
from functools import cached_property
from typing import Optional

from helixql_lsp.lexical import TokenIndex


@dataclass
class Document:
    uri: str
    text: str

    @cached_property
    def index(self) -> TokenIndex:
        return TokenIndex(self.text)


class DocumentStore:
    """Live text of every open buffer, keyed by URI.

    Every change replaces the whole document; there is no range-based
    editing. State lives only as long as the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}

    def open(self, uri: str, text: str) -> Document:
        document = Document(uri=uri, text=text)
        with self._lock:
            self._documents[uri] = document
        return document

    def update(self, uri: str, text: str) -> Document:
        return self.open(uri, text)

    def close(self, uri: str) -> Optional[Document]:
        with self._lock:
            return self._documents.pop(uri, None)

    def get(self, uri: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(uri)

    def snapshot(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._documents

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)
