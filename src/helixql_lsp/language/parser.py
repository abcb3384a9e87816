"""Recursive-descent parser for HelixQL schema and query files."""

from __future__ import annotations

from typing import Optional, Sequence

from helixql_lsp.exceptions import ParseFailure
from helixql_lsp.language.lexer import Token, TokenKind, tokenize
from helixql_lsp.language.model import (
    PRIMITIVE_TYPES,
    EntityKind,
    EntitySchema,
    Expression,
    ExpressionKind,
    FieldDef,
    FieldType,
    FieldTypeKind,
    Loc,
    ObjectEntry,
    Parameter,
    Position,
    Query,
    SchemaVersion,
    Source,
    SourceFile,
    Statement,
    StatementKind,
    Step,
    StepKind,
)

DEFAULT_SCHEMA_VERSION = 1

_ENTITY_PREFIXES = {"N": EntityKind.NODE, "E": EntityKind.EDGE, "V": EntityKind.VECTOR}
_CONSTRUCTORS = {
    "AddN": ExpressionKind.ADD_NODE,
    "AddE": ExpressionKind.ADD_EDGE,
    "AddV": ExpressionKind.ADD_VECTOR,
    "SearchV": ExpressionKind.SEARCH_VECTOR,
}
_CONSTRUCTOR_KINDS = {
    "AddN": EntityKind.NODE,
    "AddE": EntityKind.EDGE,
    "AddV": EntityKind.VECTOR,
    "SearchV": EntityKind.VECTOR,
}
_BOOLEANS = {"true", "false"}


def _start(token: Token) -> Position:
    return Position(line=token.line + 1, column=token.column + 1)


def _end(token: Token) -> Position:
    return Position(line=token.line + 1, column=token.column + len(token.text) + 1)


class _FileParser:
    def __init__(self, name: str, content: str) -> None:
        self.name = name
        self.tokens = [token for token in tokenize(content) if token.kind is not TokenKind.COMMENT]
        self.index = 0

    # -- token helpers -------------------------------------------------

    def _peek(self, ahead: int = 0) -> Optional[Token]:
        position = self.index + ahead
        if position < len(self.tokens):
            return self.tokens[position]
        return None

    def _previous(self) -> Token:
        return self.tokens[self.index - 1]

    def _at_punct(self, text: str, ahead: int = 0) -> bool:
        token = self._peek(ahead)
        return token is not None and token.is_punct(text)

    def _at_word(self, text: str, ahead: int = 0) -> bool:
        token = self._peek(ahead)
        return token is not None and token.kind is TokenKind.IDENT and token.text == text

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _fail(self, expected: str) -> ParseFailure:
        token = self._peek()
        if token is None:
            if self.tokens:
                last = self.tokens[-1]
                where = f"{last.line + 1}:{last.column + len(last.text) + 1}"
            else:
                where = "1:1"
            return ParseFailure(
                f"expected {expected} but reached end of file at {where}",
                filepath=self.name,
            )
        return ParseFailure(
            f"expected {expected} but found `{token.text}` at {token.line + 1}:{token.column + 1}",
            filepath=self.name,
        )

    def _expect_punct(self, text: str) -> Token:
        if not self._at_punct(text):
            raise self._fail(f"`{text}`")
        return self._advance()

    def _expect_word(self, text: str) -> Token:
        if not self._at_word(text):
            raise self._fail(f"`{text}`")
        return self._advance()

    def _expect_ident(self, what: str = "identifier") -> Token:
        token = self._peek()
        if token is None or token.kind is not TokenKind.IDENT:
            raise self._fail(what)
        return self._advance()

    def _loc(self, first: Token, last: Optional[Token] = None) -> Loc:
        return Loc(self.name, _start(first), _end(last or first))

    def _loc_since(self, first: Token) -> Loc:
        return Loc(self.name, _start(first), _end(self._previous()))

    # -- items -----------------------------------------------------------

    def parse(self) -> tuple[list[SchemaVersion], list[Query]]:
        blocks: list[SchemaVersion] = []
        implicit: list[EntitySchema] = []
        queries: list[Query] = []
        while self._peek() is not None:
            if self._at_word("schema") and self._at_punct("::", 1):
                blocks.append(self._schema_block())
            elif self._at_word("QUERY"):
                queries.append(self._query())
            elif self._at_schema_declaration():
                implicit.append(self._entity())
            else:
                raise self._fail("a schema declaration or `QUERY`")
        if implicit:
            blocks.insert(0, SchemaVersion(version=DEFAULT_SCHEMA_VERSION, entities=tuple(implicit)))
        return blocks, queries

    def _at_schema_declaration(self) -> bool:
        token = self._peek()
        return (
            token is not None
            and token.kind is TokenKind.IDENT
            and token.text in _ENTITY_PREFIXES
            and self._at_punct("::", 1)
        )

    def _schema_block(self) -> SchemaVersion:
        first = self._advance()
        self._expect_punct("::")
        number = self._peek()
        if number is None or number.kind is not TokenKind.INTEGER:
            raise self._fail("a schema version number")
        self._advance()
        self._expect_punct("{")
        entities: list[EntitySchema] = []
        while not self._at_punct("}"):
            if not self._at_schema_declaration():
                raise self._fail("a schema declaration or `}`")
            entities.append(self._entity())
        self._expect_punct("}")
        return SchemaVersion(
            version=int(number.text),
            entities=tuple(entities),
            explicit=True,
            loc=self._loc_since(first),
        )

    def _entity(self) -> EntitySchema:
        prefix = self._advance()
        kind = _ENTITY_PREFIXES[prefix.text]
        self._expect_punct("::")
        name = self._expect_ident("a type name")
        self._expect_punct("{")
        if kind is EntityKind.EDGE:
            from_type, to_type, fields = self._edge_body()
        else:
            from_type, to_type = None, None
            fields = self._field_list("}")
        self._expect_punct("}")
        return EntitySchema(
            kind=kind,
            name=name.text,
            loc=self._loc(name),
            fields=tuple(fields),
            from_type=from_type,
            to_type=to_type,
        )

    def _edge_body(self) -> tuple[Optional[str], Optional[str], list[FieldDef]]:
        from_type: Optional[str] = None
        to_type: Optional[str] = None
        fields: list[FieldDef] = []
        while not self._at_punct("}"):
            key = self._expect_ident("`From`, `To` or `Properties`")
            self._expect_punct(":")
            if key.text == "From":
                from_type = self._expect_ident("a node type").text
            elif key.text == "To":
                to_type = self._expect_ident("a node type").text
            elif key.text == "Properties":
                self._expect_punct("{")
                fields = self._field_list("}")
                self._expect_punct("}")
            else:
                self.index -= 2
                raise self._fail("`From`, `To` or `Properties`")
            if not self._at_punct(","):
                break
            self._advance()
        return from_type, to_type, fields

    def _field_list(self, closer: str) -> list[FieldDef]:
        fields: list[FieldDef] = []
        while not self._at_punct(closer):
            indexed = False
            if self._at_word("INDEX") and not self._at_punct(":", 1):
                self._advance()
                indexed = True
            name = self._expect_ident("a field name")
            self._expect_punct(":")
            field_type = self._field_type()
            default: Optional[str] = None
            if self._at_word("DEFAULT"):
                self._advance()
                default = self._default_value()
            fields.append(
                FieldDef(
                    name=name.text,
                    field_type=field_type,
                    loc=self._loc(name),
                    indexed=indexed,
                    default=default,
                )
            )
            if not self._at_punct(","):
                break
            self._advance()
        return fields

    def _default_value(self) -> str:
        token = self._peek()
        if token is None or token.kind is TokenKind.PUNCT or token.kind is TokenKind.UNKNOWN:
            raise self._fail("a default value")
        return self._advance().text

    def _field_type(self) -> FieldType:
        if self._at_punct("["):
            self._advance()
            inner = self._field_type()
            self._expect_punct("]")
            return FieldType(FieldTypeKind.ARRAY, inner=inner)
        if self._at_punct("{"):
            self._advance()
            fields = self._field_list("}")
            self._expect_punct("}")
            return FieldType(FieldTypeKind.OBJECT, fields=tuple(fields))
        name = self._expect_ident("a type")
        if name.text in PRIMITIVE_TYPES:
            return FieldType(FieldTypeKind.PRIMITIVE, name=name.text)
        return FieldType(FieldTypeKind.IDENTIFIER, name=name.text)

    # -- queries ---------------------------------------------------------

    def _query(self) -> Query:
        first = self._advance()
        name = self._expect_ident("a query name")
        self._expect_punct("(")
        parameters: list[Parameter] = []
        while not self._at_punct(")"):
            parameters.append(self._parameter())
            if not self._at_punct(","):
                break
            self._advance()
        self._expect_punct(")")
        self._expect_punct("=>")
        statements: list[Statement] = []
        while not self._at_word("RETURN"):
            if self._peek() is None or self._at_word("QUERY") or self._at_schema_declaration():
                raise self._fail("`RETURN`")
            statements.append(self._statement())
        self._advance()
        returns: list[Expression] = [self._expression()]
        while self._at_punct(","):
            self._advance()
            returns.append(self._expression())
        return Query(
            name=name.text,
            loc=self._loc_since(first),
            name_loc=self._loc(name),
            parameters=tuple(parameters),
            statements=tuple(statements),
            returns=tuple(returns),
        )

    def _parameter(self) -> Parameter:
        name = self._expect_ident("a parameter name")
        optional = False
        if self._at_punct("?"):
            self._advance()
            optional = True
        self._expect_punct(":")
        param_type = self._field_type()
        return Parameter(name=name.text, param_type=param_type, loc=self._loc(name), optional=optional)

    def _statement(self) -> Statement:
        first = self._peek()
        if first is None:
            raise self._fail("a statement")
        if first.kind is TokenKind.IDENT and self._at_punct("<-", 1):
            self._advance()
            self._advance()
            value = self._expression()
            return Statement(
                kind=StatementKind.ASSIGNMENT,
                loc=self._loc_since(first),
                expression=value,
                variable=first.text,
                variable_loc=self._loc(first),
            )
        if self._at_word("FOR"):
            return self._for_loop()
        if self._at_word("DROP"):
            self._advance()
            target = self._expression()
            return Statement(kind=StatementKind.DROP, loc=self._loc_since(first), expression=target)
        value = self._expression()
        return Statement(kind=StatementKind.EXPRESSION, loc=self._loc_since(first), expression=value)

    def _for_loop(self) -> Statement:
        first = self._advance()
        variables: list[str] = []
        if self._at_punct("{"):
            self._advance()
            while not self._at_punct("}"):
                variables.append(self._expect_ident("a loop variable").text)
                if not self._at_punct(","):
                    break
                self._advance()
            self._expect_punct("}")
        else:
            variables.append(self._expect_ident("a loop variable").text)
        self._expect_word("IN")
        iterable = self._expression()
        self._expect_punct("{")
        body: list[Statement] = []
        while not self._at_punct("}"):
            if self._peek() is None:
                raise self._fail("`}`")
            body.append(self._statement())
        self._expect_punct("}")
        return Statement(
            kind=StatementKind.FOR_LOOP,
            loc=self._loc_since(first),
            expression=iterable,
            loop_variables=tuple(variables),
            body=tuple(body),
        )

    # -- expressions -----------------------------------------------------

    def _expression(self) -> Expression:
        first = self._peek()
        if first is None:
            raise self._fail("an expression")
        primary = self._primary()
        steps: list[Step] = []
        while self._at_punct("::"):
            self._advance()
            steps.append(self._step())
        if not steps:
            return primary
        return Expression(
            kind=ExpressionKind.TRAVERSAL,
            loc=self._loc_since(first),
            start=primary,
            steps=tuple(steps),
        )

    def _generic_argument(self) -> Optional[str]:
        if not self._at_punct("<"):
            return None
        self._advance()
        name = self._expect_ident("a type name")
        self._expect_punct(">")
        return name.text

    def _arguments(self, closer: str = ")") -> tuple[Expression, ...]:
        args: list[Expression] = []
        while not self._at_punct(closer):
            args.append(self._expression())
            if not self._at_punct(","):
                break
            self._advance()
        self._expect_punct(closer)
        return tuple(args)

    def _object_entries(self) -> tuple[ObjectEntry, ...]:
        entries: list[ObjectEntry] = []
        while not self._at_punct("}"):
            if self._at_punct(".") and self._at_punct(".", 1):
                first = self._advance()
                self._advance()
                entries.append(ObjectEntry(key="..", loc=self._loc_since(first)))
            else:
                key = self._expect_ident("a field name")
                value: Optional[Expression] = None
                if self._at_punct(":"):
                    self._advance()
                    value = self._expression()
                entries.append(ObjectEntry(key=key.text, loc=self._loc(key), value=value))
            if not self._at_punct(","):
                break
            self._advance()
        self._expect_punct("}")
        return tuple(entries)

    def _primary(self) -> Expression:
        token = self._advance()
        if token.kind is TokenKind.STRING:
            return Expression(ExpressionKind.STRING, self._loc(token), name=token.text)
        if token.kind is TokenKind.INTEGER:
            return Expression(ExpressionKind.INTEGER, self._loc(token), name=token.text)
        if token.kind is TokenKind.FLOAT:
            return Expression(ExpressionKind.FLOAT, self._loc(token), name=token.text)
        if token.is_punct("-"):
            number = self._peek()
            if number is None or number.kind not in (TokenKind.INTEGER, TokenKind.FLOAT):
                raise self._fail("a number")
            self._advance()
            kind = ExpressionKind.INTEGER if number.kind is TokenKind.INTEGER else ExpressionKind.FLOAT
            return Expression(kind, self._loc(token, number), name="-" + number.text)
        if token.is_punct("{"):
            entries = self._object_entries()
            return Expression(ExpressionKind.OBJECT, self._loc_since(token), entries=entries)
        if token.is_punct("["):
            items = self._arguments("]")
            return Expression(ExpressionKind.ARRAY, self._loc_since(token), args=items)
        if token.kind is not TokenKind.IDENT:
            self.index -= 1
            raise self._fail("an expression")
        word = token.text
        if word in _BOOLEANS:
            return Expression(ExpressionKind.BOOLEAN, self._loc(token), name=word)
        if word == "_":
            return Expression(ExpressionKind.ANONYMOUS, self._loc(token), name=word)
        if word in _ENTITY_PREFIXES and (self._at_punct("<") or self._at_punct("(")):
            type_name = self._generic_argument()
            args: tuple[Expression, ...] = ()
            if self._at_punct("("):
                self._advance()
                args = self._arguments()
            return Expression(
                ExpressionKind.ENTITY,
                self._loc_since(token),
                name=word,
                entity_kind=_ENTITY_PREFIXES[word],
                type_name=type_name,
                args=args,
            )
        if word in _CONSTRUCTORS:
            type_name = self._generic_argument()
            if type_name is None:
                raise self._fail("`<`")
            args = ()
            if self._at_punct("("):
                self._advance()
                args = self._arguments()
            return Expression(
                _CONSTRUCTORS[word],
                self._loc_since(token),
                name=word,
                entity_kind=_CONSTRUCTOR_KINDS[word],
                type_name=type_name,
                args=args,
            )
        if word == "EXISTS":
            self._expect_punct("(")
            args = self._arguments()
            return Expression(ExpressionKind.EXISTS, self._loc_since(token), name=word, args=args)
        if self._at_punct("("):
            self._advance()
            args = self._arguments()
            return Expression(ExpressionKind.CALL, self._loc_since(token), name=word, args=args)
        return Expression(ExpressionKind.IDENTIFIER, self._loc(token), name=word)

    def _step(self) -> Step:
        first = self._peek()
        if first is None:
            raise self._fail("a traversal step")
        if first.is_punct("{"):
            self._advance()
            entries = self._object_entries()
            return Step(StepKind.OBJECT, self._loc_since(first), name="{}", entries=entries)
        if first.is_punct("!"):
            self._advance()
            self._expect_punct("{")
            entries = self._object_entries()
            return Step(StepKind.EXCLUDE, self._loc_since(first), name="!{}", entries=entries)
        name = self._expect_ident("a traversal step")
        type_name = self._generic_argument()
        args: tuple[Expression, ...] = ()
        if self._at_punct("("):
            self._advance()
            args = self._arguments()
        return Step(
            StepKind.CALL,
            self._loc_since(first),
            name=name.text,
            type_name=type_name,
            args=args,
        )


class HelixParser:
    """Parses a bundle of HelixQL files into one :class:`Source`."""

    def parse(self, files: Sequence[SourceFile]) -> Source:
        blocks: list[SchemaVersion] = []
        queries: list[Query] = []
        for source_file in files:
            parser = _FileParser(source_file.name, source_file.content)
            try:
                file_blocks, file_queries = parser.parse()
            except RecursionError:
                raise ParseFailure(
                    "expression nesting is too deep", filepath=source_file.name
                ) from None
            blocks.extend(file_blocks)
            queries.extend(file_queries)
        return Source(
            files=tuple(source_file.name for source_file in files),
            schema_blocks=tuple(blocks),
            queries=tuple(queries),
        )
