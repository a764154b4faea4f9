"""Move a repeated field into its own lookup table."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger

from quick_erd.parsing import parse
from quick_erd.serializer import serialize
from quick_erd.types import Field, ParseResult, Reference, Table

logger = getLogger(__name__)


def _replace_field(table: Table, field_name: str, ref_field: Field) -> Table:
    has_ref = table.get_field(ref_field.name) is not None
    fields = []
    for f in table.field_list:
        if f.name != field_name:
            fields.append(f)
        elif not has_ref:
            modifiers = ref_field.modifiers | (f.modifiers & {"null"})
            fields.append(replace(ref_field, modifiers=modifiers))
    return replace(table, field_list=tuple(fields))


def normalize(result: ParseResult, field_name: str, table_name: str | None = None) -> ParseResult:
    """Replace *field_name* by a foreign key to a lookup table.

    Every table except the lookup table that declares *field_name* gets a
    ``<table_name>_id`` reference in its place. The lookup table holds ``id``
    and the field itself; it is created after the last affected table, or
    extended if it already exists. ``table_name`` defaults to *field_name*.
    """
    table_name = table_name or field_name
    affected = [
        i
        for i, table in enumerate(result.table_list)
        if table.name != table_name and table.get_field(field_name) is not None
    ]
    if not affected:
        logger.debug("No table has a field named %r", field_name)
        return result

    source = result.table_list[affected[0]].get_field(field_name)
    value_field = Field(name=field_name, type=source.type if source else None)
    ref_field = Field(
        name=f"{table_name}_id",
        modifiers=frozenset({"fk"}),
        references=Reference(table=table_name),
    )

    tables = list(result.table_list)
    for i in affected:
        tables[i] = _replace_field(tables[i], field_name, ref_field)

    lookup_index = next((i for i, t in enumerate(tables) if t.name == table_name), None)
    if lookup_index is None:
        lookup = Table(
            name=table_name,
            field_list=(Field(name="id", modifiers=frozenset({"pk"})), value_field),
        )
        tables.insert(affected[-1] + 1, lookup)
    elif tables[lookup_index].get_field(field_name) is None:
        lookup = tables[lookup_index]
        tables[lookup_index] = replace(lookup, field_list=lookup.field_list + (value_field,))

    return replace(result, table_list=tuple(tables))


def normalize_text(text: str, field_name: str, table_name: str | None = None) -> str:
    """Normalize schema text and return it in canonical form."""
    return serialize(normalize(parse(text), field_name, table_name))
