from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from pygls.lsp.server import LanguageServer
from lsprotocol.types import (
    INITIALIZE,
    INITIALIZED,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_HOVER,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    Hover,
    HoverParams,
    InitializeParams,
    InitializedParams,
    Location,
    LogMessageParams,
    MessageType,
    PublishDiagnosticsParams,
    SaveOptions,
    TextDocumentSyncKind,
)

from helixql_lsp import __version__
from helixql_lsp.completion import TRIGGER_CHARACTERS
from helixql_lsp.config import TomlTable, load_settings
from helixql_lsp.positions import ClientPositions
from helixql_lsp.session import HelixQLSession, Publication
from helixql_lsp.workspace import uri_to_path

logger = logging.getLogger(__name__)

WORKSPACE_SCHEMA_COMMAND = "helixql.workspaceSchema"


class HelixQLLanguageServer(LanguageServer):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.session = HelixQLSession()
        self.config_path: Optional[Path] = None
        self.overrides: TomlTable = {}


server = HelixQLLanguageServer(
    "helixql-lsp",
    __version__,
    text_document_sync_kind=TextDocumentSyncKind.Full,
)


def _root_from_params(params: InitializeParams) -> Optional[Path]:
    if params.workspace_folders:
        return uri_to_path(params.workspace_folders[0].uri)
    if params.root_uri:
        return uri_to_path(params.root_uri)
    if params.root_path:
        return Path(params.root_path)
    return None


def _publish(ls: HelixQLLanguageServer, publication: Publication) -> None:
    for uri, diagnostics in publication.items():
        ls.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )


@server.feature(INITIALIZE)
def initialize(ls: HelixQLLanguageServer, params: InitializeParams) -> None:
    root = _root_from_params(params)
    settings = load_settings(root=root, config_path=ls.config_path, overrides=ls.overrides)
    ls.session.configure(settings, ClientPositions(ls.workspace.position_codec))
    logger.info("Initialized for root %s with extensions %s", root, ", ".join(settings.extensions))


@server.feature(INITIALIZED)
def initialized(ls: HelixQLLanguageServer, params: InitializedParams) -> None:
    ls.window_log_message(
        LogMessageParams(type=MessageType.Info, message=f"HelixQL language server {__version__} initialized")
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: HelixQLLanguageServer, params: DidOpenTextDocumentParams) -> None:
    document = params.text_document
    _publish(ls, ls.session.open(document.uri, document.text))


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: HelixQLLanguageServer, params: DidChangeTextDocumentParams) -> None:
    if not params.content_changes:
        return
    text = params.content_changes[-1].text
    _publish(ls, ls.session.update(params.text_document.uri, text))


@server.feature(TEXT_DOCUMENT_DID_SAVE, SaveOptions(include_text=True))
def did_save(ls: HelixQLLanguageServer, params: DidSaveTextDocumentParams) -> None:
    _publish(ls, ls.session.save(params.text_document.uri, params.text))


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: HelixQLLanguageServer, params: DidCloseTextDocumentParams) -> None:
    _publish(ls, ls.session.close(params.text_document.uri))


@server.thread()
@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: HelixQLLanguageServer, params: HoverParams) -> Optional[Hover]:
    position = params.position
    return ls.session.hover(params.text_document.uri, position.line, position.character)


@server.thread()
@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: HelixQLLanguageServer, params: DefinitionParams) -> Optional[Location]:
    position = params.position
    return ls.session.definition(params.text_document.uri, position.line, position.character)


@server.thread()
@server.feature(
    TEXT_DOCUMENT_COMPLETION,
    CompletionOptions(trigger_characters=TRIGGER_CHARACTERS),
)
def completion(ls: HelixQLLanguageServer, params: CompletionParams) -> Optional[CompletionList]:
    position = params.position
    return ls.session.completion(params.text_document.uri, position.line, position.character)


@server.command(WORKSPACE_SCHEMA_COMMAND)
def execute_workspace_schema(ls: HelixQLLanguageServer, payload: dict | None = None) -> dict:
    return ls.session.workspace_schema(payload)


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server over stdio unless another starter is given."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
