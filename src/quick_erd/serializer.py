"""Canonical text output for parsed schemas."""

from __future__ import annotations

from quick_erd.meta import SCALAR_DIRECTIVES, TABLE_POSITION
from quick_erd.parsing import parse
from quick_erd.types import Field, ParseResult, Table


def field_to_text(field: Field) -> str:
    """Format a field declaration in canonical order."""
    parts = [field.name]
    if field.type:
        parts.append(field.type)
    for modifier in ("unsigned", "null", "unique"):
        if modifier in field.modifiers:
            parts.append(modifier)
    if field.default is not None:
        parts.append(f"default {field.default}")
    if field.is_primary_key:
        parts.append("pk")
    ref = field.references
    if ref is not None:
        parts.append(f"fk {ref.relation} {ref.table}.{ref.field}")
    elif field.is_foreign_key:
        parts.append("fk")
    return " ".join(parts)


def table_to_text(table: Table) -> str:
    """Format a table as its name, a dash underline and one line per field."""
    lines = [table.name, "-" * len(table.name)]
    lines.extend(field_to_text(f) for f in table.field_list)
    return "\n".join(lines)


def meta_to_lines(result: ParseResult) -> list[str]:
    """Return the directive lines for the presentation state of *result*."""
    lines = []
    for directive in SCALAR_DIRECTIVES:
        value = getattr(result, directive.name)
        if value is not None:
            line = directive.readable_line(value)
            if line is not None:
                lines.append(line)

    names = [name for name in result.table_names() if name in result.table_positions]
    names.extend(name for name in result.table_positions if name not in names)
    for name in dict.fromkeys(names):
        line = TABLE_POSITION.readable_line((name, result.table_positions[name]))
        if line is not None:
            lines.append(line)
    return lines


def serialize(result: ParseResult, include_meta: bool = True) -> str:
    """Format *result* as canonical schema text.

    Tables are separated by one blank line and the output ends with a newline.
    Directives follow the tables after a blank line.
    """
    blocks = [table_to_text(table) for table in result.table_list]
    if include_meta:
        meta = meta_to_lines(result)
        if meta:
            blocks.append("\n".join(meta))
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def format_text(text: str, include_meta: bool = True) -> str:
    """Parse *text* and return it in canonical form."""
    return serialize(parse(text), include_meta=include_meta)
