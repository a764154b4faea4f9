"""quick_erd - Plain-text ER diagrams with SQL join generation."""

from quick_erd.normalize import normalize, normalize_text
from quick_erd.parsing import SchemaParser, parse
from quick_erd.query import ReferenceGraph, find_path, generate_query
from quick_erd.query_builder import QueryBuilder
from quick_erd.serializer import format_text, serialize
from quick_erd.types import (
    Column,
    Field,
    ParseResult,
    PathStep,
    Position,
    Reference,
    Table,
    TablePath,
    TablePosition,
    strip_id_suffix,
)

__all__ = [
    # Main API
    "parse",
    "serialize",
    "format_text",
    "generate_query",
    "find_path",
    "normalize",
    "normalize_text",
    "SchemaParser",
    "QueryBuilder",
    "ReferenceGraph",
    # Schema model
    "ParseResult",
    "Table",
    "Field",
    "Reference",
    "Position",
    "TablePosition",
    "strip_id_suffix",
    # Query model
    "Column",
    "PathStep",
    "TablePath",
]

__version__ = "0.1.0"
