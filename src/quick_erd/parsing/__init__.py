"""Parsing module for the schema text DSL."""

from quick_erd.parsing.schema_lexer import FieldLexer, LineKind, LineToken, classify_lines
from quick_erd.parsing.schema_parser import FieldParser, SchemaParser, parse

__all__ = [
    "FieldLexer",
    "FieldParser",
    "LineKind",
    "LineToken",
    "SchemaParser",
    "classify_lines",
    "parse",
]
