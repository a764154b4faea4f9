"""Schema model for the quick_erd text DSL."""

from __future__ import annotations

from dataclasses import dataclass, field

# Modifier keywords, in the order the serializer writes them
MODIFIER_ORDER: tuple[str, ...] = ("unsigned", "null", "unique", "pk", "fk")

MODIFIERS: frozenset[str] = frozenset(MODIFIER_ORDER)

# Relationship tokens accepted after a foreign key
RELATIONS: tuple[str, ...] = (
    ">-<",
    ">0-",
    "-0<",
    "0-0",
    ">-",
    "-<",
    "-0",
    "0-",
    "-",
)

DEFAULT_RELATION = ">-"

ID_SUFFIX = "_id"


def strip_id_suffix(name: str) -> str:
    """Return *name* without a trailing ``_id``.

    This is the implicit reference rule: a field ``author_id`` marked ``fk``
    references ``author.id``.
    """
    if name.endswith(ID_SUFFIX):
        return name[: -len(ID_SUFFIX)]
    return name


@dataclass(frozen=True)
class Reference:
    """Foreign key target of a field."""

    table: str
    field: str = "id"
    relation: str = DEFAULT_RELATION


@dataclass(frozen=True)
class Field:
    """A column declaration inside a table."""

    name: str
    type: str | None = None
    modifiers: frozenset[str] = frozenset()
    references: Reference | None = None
    default: str | None = None

    @property
    def is_primary_key(self) -> bool:
        return "pk" in self.modifiers

    @property
    def is_null(self) -> bool:
        return "null" in self.modifiers

    @property
    def is_foreign_key(self) -> bool:
        return "fk" in self.modifiers


@dataclass(frozen=True)
class Table:
    """A table with its fields in declaration order."""

    name: str
    field_list: tuple[Field, ...] = ()

    def get_field(self, name: str) -> Field | None:
        """Return the first field called *name*, or None."""
        for f in self.field_list:
            if f.name == name:
                return f
        return None

    def references(self) -> list[Field]:
        """Return the fields carrying a reference, in declaration order."""
        return [f for f in self.field_list if f.references is not None]


@dataclass(frozen=True)
class Position:
    """Viewport offset."""

    x: float
    y: float


@dataclass(frozen=True)
class TablePosition:
    """Diagram position of a table, with an optional color."""

    x: float
    y: float
    color: str | None = None


@dataclass(frozen=True)
class ParseResult:
    """Tables parsed from schema text, plus diagram presentation state.

    The table positions mapping must be treated as read-only.
    """

    table_list: tuple[Table, ...] = ()
    zoom: float | None = None
    view: Position | None = None
    text_bg_color: str | None = None
    text_color: str | None = None
    diagram_bg_color: str | None = None
    diagram_text_color: str | None = None
    table_bg_color: str | None = None
    table_text_color: str | None = None
    table_positions: dict[str, TablePosition] = field(default_factory=dict)

    def get_table(self, name: str) -> Table | None:
        """Return the first table called *name*, or None."""
        for table in self.table_list:
            if table.name == name:
                return table
        return None

    def table_names(self) -> list[str]:
        return [table.name for table in self.table_list]

    def duplicate_table_names(self) -> list[str]:
        """Return names declared more than once, in first-seen order."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for table in self.table_list:
            if table.name in seen and table.name not in duplicates:
                duplicates.append(table.name)
            seen.add(table.name)
        return duplicates


@dataclass(frozen=True)
class Column:
    """A selected ``table.field`` used by the query builder."""

    table: str
    field: str

    @classmethod
    def parse(cls, text: str) -> Column:
        """Parse ``table.field``.

        Raises:
            ValueError: If the text has no table or field part.
        """
        table, sep, field_name = text.strip().partition(".")
        if not sep or not table or not field_name:
            raise ValueError(f"Expected 'table.field', got {text!r}")
        return cls(table=table, field=field_name)

    def __str__(self) -> str:
        return f"{self.table}.{self.field}"


@dataclass(frozen=True)
class PathStep:
    """One table on a walk across foreign keys.

    ``ref_field`` names the field whose reference leads to the next step. For
    a forward hop it lives on this table; when ``reverse`` is set the hop
    follows a reference declared on the next table back to this one.
    """

    table_name: str
    ref_field: str | None = None
    ref_target: str = "id"
    reverse: bool = False


TablePath = tuple[PathStep, ...]
