"""Parser for the schema text DSL.

Schema text is a sequence of tables separated by blank lines. A table is a
name underlined with dashes, followed by one field per line::

    post
    ----
    id pk
    author_id fk >- user.id
    title varchar(120) unique
    status enum('active','pending') default 'active'

Parsing never fails. Lines that do not fit the grammar are dropped and
logged at debug level:

- text lines outside a table (before the first header or after a blank line),
- ``#`` comments that are not directives, and trailing ``# ...`` comments,
- words after the type that are not keywords,
- ``default`` and ``not`` without their operand.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import Any

import ply.yacc as yacc

from quick_erd.meta import decode_meta
from quick_erd.parsing.schema_lexer import FieldLexer, LineKind, LineToken, classify_lines
from quick_erd.types import (
    DEFAULT_RELATION,
    Field,
    ParseResult,
    Reference,
    Table,
    strip_id_suffix,
)

logger = getLogger(__name__)

# Tokens that may name a field
_NAME_TOKENS = ("WORD", "MODIFIER", "NULL", "FK", "NOT", "DEFAULT")


@dataclass
class FieldItem:
    """One element of a field declaration after the name.

    ``kind`` is one of ``modifier``, ``not_null``, ``type``, ``default``,
    ``fk``, ``relation`` or ``ignored``.
    """

    kind: str
    value: Any = None
    reference: Reference | None = None


def _reference(target: str, relation: str) -> Reference:
    """Build a reference from ``table`` or ``table.field``."""
    table, _, field_name = target.partition(".")
    return Reference(table=table, field=field_name or "id", relation=relation)


class FieldParser:
    """Grammar for a single field declaration.

    Every token sequence after the field name is accepted. Keywords whose
    operand is optional are resolved by precedence: the operand is taken
    whenever the next token can be one, and the bare keyword rules rank
    below every token.
    """

    tokens = FieldLexer.tokens

    start = "field"

    precedence = (
        ("nonassoc", "BARE"),
        ("right",) + tuple(FieldLexer.tokens),
    )

    def __init__(self, lexer: FieldLexer) -> None:
        self.lexer = lexer
        self.parser: yacc.LRParser = None  # type: ignore

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : name item_list"""
        p[0] = (p[1], p[2])

    def p_name(self, p: yacc.YaccProduction) -> None:
        """name : WORD
                | MODIFIER
                | NULL
                | FK
                | NOT
                | DEFAULT"""
        p[0] = p[1]

    def p_item_list_empty(self, p: yacc.YaccProduction) -> None:
        """item_list : empty"""
        p[0] = []

    def p_item_list_multiple(self, p: yacc.YaccProduction) -> None:
        """item_list : item_list item"""
        p[0] = p[1] + [p[2]]

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""

    def p_item_modifier(self, p: yacc.YaccProduction) -> None:
        """item : MODIFIER
                | NULL"""
        p[0] = FieldItem("modifier", p[1].lower())

    def p_item_not_null(self, p: yacc.YaccProduction) -> None:
        """item : NOT NULL"""
        p[0] = FieldItem("not_null")

    def p_item_type_args(self, p: yacc.YaccProduction) -> None:
        """item : WORD ARGS"""
        p[0] = FieldItem("type", p[1] + p[2])

    def p_item_type(self, p: yacc.YaccProduction) -> None:
        """item : WORD %prec BARE
                | TARGET"""
        p[0] = FieldItem("type", p[1])

    def p_item_default(self, p: yacc.YaccProduction) -> None:
        """item : DEFAULT value"""
        p[0] = FieldItem("default", p[2])

    def p_item_fk_target(self, p: yacc.YaccProduction) -> None:
        """item : FK TARGET"""
        p[0] = FieldItem("fk", reference=_reference(p[2], DEFAULT_RELATION))

    def p_item_fk(self, p: yacc.YaccProduction) -> None:
        """item : FK %prec BARE"""
        p[0] = FieldItem("fk")

    def p_item_relation_target(self, p: yacc.YaccProduction) -> None:
        """item : RELATION WORD
                | RELATION TARGET"""
        p[0] = FieldItem("relation", p[1], _reference(p[2], p[1]))

    def p_item_relation(self, p: yacc.YaccProduction) -> None:
        """item : RELATION %prec BARE"""
        p[0] = FieldItem("relation", p[1])

    def p_item_missing_operand(self, p: yacc.YaccProduction) -> None:
        """item : DEFAULT %prec BARE
                | NOT %prec BARE"""
        p[0] = FieldItem("ignored", p[1])

    def p_item_stray(self, p: yacc.YaccProduction) -> None:
        """item : NUMBER
                | STRING
                | ARGS
                | DOT"""
        p[0] = FieldItem("ignored", p[1])

    def p_value(self, p: yacc.YaccProduction) -> None:
        """value : atom ARGS
                 | atom %prec BARE"""
        p[0] = p[1] + p[2] if len(p) == 3 else p[1]

    def p_atom(self, p: yacc.YaccProduction) -> None:
        """atom : WORD
                | TARGET
                | NUMBER
                | STRING
                | MODIFIER
                | NULL
                | FK
                | NOT
                | DEFAULT"""
        p[0] = p[1]

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            logger.debug("Syntax error at %r in field line", p.value)
        else:
            logger.debug("Syntax error at end of field line")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, text: str) -> tuple[str, list[FieldItem]] | None:
        """Parse one field line into its name and items.

        Returns None when the line does not start with a field name.
        """
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        tokens = self.lexer.tokenize(text)
        if not tokens or tokens[0].type not in _NAME_TOKENS:
            return None
        stream = iter(tokens)
        return self.parser.parse(lexer=self.lexer.lexer, tokenfunc=lambda: next(stream, None))


class SchemaParser:
    """Parser for schema text."""

    def __init__(self) -> None:
        self.lexer = FieldLexer()
        self.lexer.build()
        self.field_parser = FieldParser(self.lexer)
        self.field_parser.build(debug=False, write_tables=False)

    def parse(self, text: str) -> ParseResult:
        """Parse schema text into tables and presentation state."""
        tables: list[Table] = []
        name: str | None = None
        fields: list[Field] = []

        def flush() -> None:
            if name is not None:
                tables.append(Table(name=name, field_list=tuple(fields)))

        for line in classify_lines(text):
            if line.kind is LineKind.HEADER:
                flush()
                name, fields = line.text, []
            elif line.kind is LineKind.BLANK:
                flush()
                name, fields = None, []
            elif line.kind is LineKind.TEXT:
                if name is None:
                    logger.debug("Dropping line %d outside a table: %r", line.lineno + 1, line.text)
                    continue
                parsed = self.parse_field(line)
                if parsed is not None:
                    fields.append(parsed)
        flush()

        return ParseResult(table_list=tuple(tables), **decode_meta(text))

    def parse_field(self, line: LineToken) -> Field | None:
        """Parse one field declaration, or return None if it has no name."""
        parsed = self.field_parser.parse(line.text)
        if parsed is None:
            logger.debug("Dropping line %d without a field name: %r", line.lineno + 1, line.text)
            return None

        name, items = parsed
        field_type: str | None = None
        modifiers: set[str] = set()
        reference: Reference | None = None
        default: str | None = None
        relation = DEFAULT_RELATION

        for item in items:
            if item.kind == "modifier":
                modifiers.add(item.value)
            elif item.kind == "not_null":
                modifiers.discard("null")
            elif item.kind == "default":
                default = item.value
            elif item.kind == "fk":
                modifiers.add("fk")
                if item.reference is not None:
                    reference = item.reference
            elif item.kind == "relation":
                modifiers.add("fk")
                relation = item.value
                reference = item.reference
            elif item.kind == "type" and field_type is None:
                field_type = item.value
            else:
                logger.debug("Ignoring %r in field %r on line %d", item.value, name, line.lineno + 1)

        if "fk" in modifiers and reference is None:
            reference = Reference(table=strip_id_suffix(name), relation=relation)

        return Field(
            name=name,
            type=field_type,
            modifiers=frozenset(modifiers),
            references=reference,
            default=default,
        )


_parser: SchemaParser | None = None


def parse(text: str) -> ParseResult:
    """Parse schema text with a shared parser instance."""
    global _parser
    if _parser is None:
        _parser = SchemaParser()
    return _parser.parse(text)
