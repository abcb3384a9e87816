"""Reference HelixQL compiler front end: lexer, parser and analyzer."""

from helixql_lsp.language.analyzer import HelixAnalyzer
from helixql_lsp.language.lexer import Token, TokenKind, tokenize
from helixql_lsp.language.parser import HelixParser

__all__ = ["HelixAnalyzer", "HelixParser", "Token", "TokenKind", "tokenize"]
