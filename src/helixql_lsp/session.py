"""Editor-independent state of one language-server process.

The pygls handlers in :mod:`helixql_lsp.server` are thin wrappers around a
:class:`HelixQLSession`; the CLI ``check`` command drives the same session
without a client attached.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from lsprotocol.types import (
    CompletionList,
    Diagnostic as LspDiagnostic,
    Hover,
    Location,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
)
from pydantic import ValidationError

from helixql_lsp.completion import CompletionGenerator
from helixql_lsp.config import ServerSettings
from helixql_lsp.diagnostics import DiagnosticTranslator, to_range
from helixql_lsp.documents import Document, DocumentStore
from helixql_lsp.language import HelixAnalyzer, HelixParser
from helixql_lsp.language.model import Loc
from helixql_lsp.lexical import WordSpan
from helixql_lsp.pipeline import (
    AnalysisOutcome,
    AnalyzePipeline,
    SourceAnalyzer,
    SourceParser,
    WorkspaceCache,
)
from helixql_lsp.positions import ClientPositions
from helixql_lsp.resolver import SymbolRequest, SymbolResolver
from helixql_lsp.schema import (
    EntityDTO,
    FieldDTO,
    QueryDTO,
    SchemaVersionDTO,
    WorkspaceSchemaRequest,
    WorkspaceSchemaResponse,
)
from helixql_lsp.workspace import (
    Workspace,
    WorkspaceResolver,
    is_file_uri,
    uri_to_path,
    workspace_key,
)

logger = logging.getLogger(__name__)

Publication = dict[str, list[LspDiagnostic]]


def _word_range(word: WordSpan) -> Range:
    return Range(
        start=Position(line=word.line, character=word.start_character),
        end=Position(line=word.line, character=word.end_character),
    )


class HelixQLSession:
    def __init__(
        self,
        settings: Optional[ServerSettings] = None,
        *,
        parser: Optional[SourceParser] = None,
        analyzer: Optional[SourceAnalyzer] = None,
    ) -> None:
        self.documents = DocumentStore()
        self.cache = WorkspaceCache()
        self.symbols = SymbolResolver()
        self.completions = CompletionGenerator()
        self.positions = ClientPositions()
        self.parser = parser or HelixParser()
        self.analyzer = analyzer or HelixAnalyzer()
        self.configure(settings or ServerSettings())

    def configure(
        self, settings: ServerSettings, positions: Optional[ClientPositions] = None
    ) -> None:
        if positions is not None:
            self.positions = positions
        self.settings = settings
        self.workspaces = WorkspaceResolver(self.documents, settings.extensions)
        self.pipeline = AnalyzePipeline(self.parser, self.analyzer, self.cache)
        self.translator = DiagnosticTranslator(
            settings.source, settings.empty_severity, self.positions
        )

    # -- document lifecycle ----------------------------------------------

    def open(self, uri: str, text: str) -> Publication:
        self.documents.open(uri, text)
        return self.analyze(uri)

    def update(self, uri: str, text: str) -> Publication:
        self.documents.update(uri, text)
        return self.analyze(uri)

    def save(self, uri: str, text: Optional[str] = None) -> Publication:
        if text is not None:
            self.documents.update(uri, text)
        return self.analyze(uri)

    def close(self, uri: str) -> Publication:
        """Forget the buffer and clear its diagnostics; nothing is re-analyzed."""
        self.documents.close(uri)
        return {uri: []}

    # -- analysis --------------------------------------------------------

    def analyze_workspace(self, uri: str) -> tuple[Workspace, AnalysisOutcome]:
        workspace = self.workspaces.resolve(uri)
        return workspace, self.pipeline.run(workspace)

    def analyze(self, uri: str) -> Publication:
        if not self.workspaces.recognizes(uri_to_path(uri)):
            logger.debug("Skipping %s: unrecognized extension", uri)
            return {}
        workspace, outcome = self.analyze_workspace(uri)
        return self.translator.translate(outcome.diagnostics, workspace)

    # -- queries ---------------------------------------------------------
    #
    # Line/character arguments and returned ranges are in client units;
    # everything below them counts code points.

    def _offset(self, document: Document, line: int, character: int) -> Optional[int]:
        character = self.positions.from_client(document.text, line, character)
        return document.index.offset_at(line, character)

    def _symbol_request(self, uri: str, line: int, character: int) -> Optional[SymbolRequest]:
        document = self.documents.get(uri)
        if document is None:
            return None
        offset = self._offset(document, line, character)
        if offset is None:
            return None
        context = document.index.context_at(offset)
        if context.word is None:
            return None
        return SymbolRequest(
            word=context.word.text,
            context=context,
            model=self.cache.get(workspace_key(uri)),
            filepath=str(uri_to_path(uri)),
        )

    def hover(self, uri: str, line: int, character: int) -> Optional[Hover]:
        request = self._symbol_request(uri, line, character)
        if request is None:
            return None
        markdown = self.symbols.hover(request)
        if markdown is None:
            return None
        word = request.context.word
        word_range = None
        if word is not None:
            word_range = self.positions.range_to_client(self.text_for(uri), _word_range(word))
        return Hover(
            contents=MarkupContent(kind=MarkupKind.Markdown, value=markdown),
            range=word_range,
        )

    def definition(self, uri: str, line: int, character: int) -> Optional[Location]:
        request = self._symbol_request(uri, line, character)
        if request is None:
            return None
        target = self.symbols.definition(request)
        if target is None:
            return None
        return self.location(target, default_uri=uri)

    def completion(self, uri: str, line: int, character: int) -> Optional[CompletionList]:
        document = self.documents.get(uri)
        if document is None:
            return None
        offset = self._offset(document, line, character)
        if offset is None:
            return None
        model = self.cache.get(workspace_key(uri))
        return self.completions.complete(document.index, offset, model)

    def location(self, loc: Loc, *, default_uri: str) -> Location:
        uri = self.uri_for(loc.filepath, default_uri)
        value = self.positions.range_to_client(self.text_for(uri), to_range(loc))
        return Location(uri=uri, range=value)

    def text_for(self, uri: str) -> Optional[str]:
        """Open buffer text, else disk content for file URIs."""
        document = self.documents.get(uri)
        if document is not None:
            return document.text
        if not is_file_uri(uri):
            return None
        return self.workspaces.read(uri_to_path(uri))

    def uri_for(self, filepath: Optional[str], default_uri: str) -> str:
        if filepath is None:
            return default_uri
        for document in self.documents.snapshot():
            if str(uri_to_path(document.uri)) == filepath:
                return document.uri
        path = Path(filepath)
        if path.is_absolute():
            return path.as_uri()
        return default_uri

    # -- commands --------------------------------------------------------

    def workspace_schema(self, payload: object) -> dict:
        try:
            request = WorkspaceSchemaRequest.model_validate(payload)
        except ValidationError as exc:
            return WorkspaceSchemaResponse(errors=[str(exc)]).model_dump()
        key = workspace_key(request.uri)
        state = self.cache.state_for(key)
        status = state.last_status.value if state.last_status is not None else None
        if state.model is None:
            return WorkspaceSchemaResponse(
                workspace=key,
                status=status,
                errors=[f"no analyzed model for {key}"],
            ).model_dump()
        versions = [
            SchemaVersionDTO(
                version=version.version,
                entities=[
                    EntityDTO(
                        kind=entity.kind.value,
                        name=entity.name,
                        fields=[
                            FieldDTO(
                                name=item.name,
                                type=item.field_type.render(),
                                indexed=item.indexed,
                                default=item.default,
                            )
                            for item in entity.fields
                        ],
                        from_type=entity.from_type,
                        to_type=entity.to_type,
                    )
                    for entity in version.entities
                ],
            )
            for version in sorted(state.model.versions.values(), key=lambda item: item.version)
        ]
        queries = [
            QueryDTO(
                name=query.name,
                parameters=[parameter.name for parameter in query.parameters],
                path=query.loc.filepath,
            )
            for query in state.model.queries
        ]
        return WorkspaceSchemaResponse(
            workspace=key,
            status=status,
            versions=versions,
            queries=queries,
        ).model_dump()
