from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    InsertTextFormat,
    MarkupContent,
    MarkupKind,
)

from helixql_lsp import keywords
from helixql_lsp.keywords import KeywordCategory, KeywordSpec
from helixql_lsp.language.lexer import TokenKind
from helixql_lsp.language.model import AnalyzedModel, EntityKind
from helixql_lsp.lexical import TokenIndex

TRIGGER_CHARACTERS = [":", "<"]


class CompletionState(Enum):
    NODE_TYPE = "node_type"
    EDGE_TYPE = "edge_type"
    VECTOR_TYPE = "vector_type"
    SCOPE = "scope"
    DEFAULT = "default"
    NONE = "none"


_STATE_BY_KIND = {
    EntityKind.NODE: CompletionState.NODE_TYPE,
    EntityKind.EDGE: CompletionState.EDGE_TYPE,
    EntityKind.VECTOR: CompletionState.VECTOR_TYPE,
}
_KIND_BY_STATE = {state: kind for kind, state in _STATE_BY_KIND.items()}

_ITEM_KINDS = {
    KeywordCategory.KEYWORD: CompletionItemKind.Keyword,
    KeywordCategory.SOURCE: CompletionItemKind.Function,
    KeywordCategory.CREATION: CompletionItemKind.Constructor,
    KeywordCategory.TRAVERSAL: CompletionItemKind.Method,
    KeywordCategory.FILTER: CompletionItemKind.Method,
    KeywordCategory.COMPARISON: CompletionItemKind.Operator,
    KeywordCategory.OPERATION: CompletionItemKind.Method,
    KeywordCategory.TYPE: CompletionItemKind.TypeParameter,
}


def classify(index: TokenIndex, offset: int) -> CompletionState:
    """Completion state from the tokens left of ``offset``.

    A word being typed at the cursor is ignored, so ``N<Us|`` classifies the
    same as ``N<|``.
    """
    if index.in_literal(offset):
        return CompletionState.NONE
    before = [
        token for token in index.tokens_before(offset) if token.kind is not TokenKind.COMMENT
    ]
    if before and before[-1].kind is TokenKind.IDENT and before[-1].end >= offset:
        before.pop()
    if not before:
        return CompletionState.DEFAULT
    last = before[-1]
    if last.is_punct("<") and len(before) >= 2:
        marker = before[-2]
        if marker.kind is TokenKind.IDENT and marker.end == last.start:
            kind = keywords.generic_marker_kind(marker.text)
            if kind is not None:
                return _STATE_BY_KIND[kind]
    if last.is_punct("::"):
        return CompletionState.SCOPE
    return CompletionState.DEFAULT


def keyword_item(spec: KeywordSpec) -> CompletionItem:
    item = CompletionItem(
        label=spec.name,
        kind=_ITEM_KINDS[spec.category],
        detail=spec.category.value,
        documentation=MarkupContent(kind=MarkupKind.Markdown, value=spec.documentation),
    )
    if spec.snippet:
        item.insert_text = spec.snippet
        item.insert_text_format = InsertTextFormat.Snippet
    return item


def type_item(name: str, kind: EntityKind) -> CompletionItem:
    return CompletionItem(
        label=name,
        kind=CompletionItemKind.Class,
        detail=f"{kind.value} type",
    )


class CompletionGenerator:
    """Completion lists keyed on the classified cursor state.

    Type-name completion reads the last successfully analyzed model of the
    workspace; without one it offers nothing for type positions.
    """

    def items(self, state: CompletionState, model: Optional[AnalyzedModel]) -> list[CompletionItem]:
        if state is CompletionState.NONE:
            return []
        if state in _KIND_BY_STATE:
            if model is None:
                return []
            kind = _KIND_BY_STATE[state]
            return [type_item(name, kind) for name in model.type_names(kind)]
        specs: Iterable[KeywordSpec]
        if state is CompletionState.SCOPE:
            specs = keywords.step_keywords()
        else:
            specs = keywords.default_keywords()
        return [keyword_item(spec) for spec in specs]

    def complete(
        self, index: TokenIndex, offset: int, model: Optional[AnalyzedModel]
    ) -> Optional[CompletionList]:
        state = classify(index, offset)
        if state is CompletionState.NONE:
            return None
        return CompletionList(is_incomplete=False, items=self.items(state, model))
