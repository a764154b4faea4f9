"""Column selection state for building queries from a diagram."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from quick_erd.query import generate_query
from quick_erd.types import Column, Table


class ColumnListener(Protocol):
    """Receives selection changes, e.g. a text box listing the columns."""

    def add_column(self, table: str, field: str) -> None: ...

    def remove_column(self, table: str, field: str) -> None: ...


def find_column_index(columns: Sequence[Column], table: str, field: str) -> int:
    """Return the index of ``table.field`` in *columns*, or -1."""
    for i, column in enumerate(columns):
        if column.table == table and column.field == field:
            return i
    return -1


class QueryBuilder:
    """Ordered set of selected columns that renders to a select statement."""

    def __init__(
        self,
        table_list: Sequence[Table] = (),
        columns: Iterable[Column] = (),
        listener: ColumnListener | None = None,
    ) -> None:
        """Initialize a query builder.

        Args:
            table_list: Tables the columns refer to.
            columns: Initial selection, in order.
            listener: Optional mirror notified of every add and remove.
        """
        self.table_list = tuple(table_list)
        self._columns: list[Column] = list(columns)
        self.listener = listener

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(self._columns)

    def set_table_list(self, table_list: Sequence[Table]) -> None:
        self.table_list = tuple(table_list)

    def add_column(self, table: str, field: str) -> None:
        self._columns.append(Column(table=table, field=field))
        if self.listener is not None:
            self.listener.add_column(table, field)

    def remove_column(self, table: str, field: str) -> None:
        idx = find_column_index(self._columns, table, field)
        if idx == -1:
            return
        del self._columns[idx]
        if self.listener is not None:
            self.listener.remove_column(table, field)

    def has_column(self, table: str, field: str) -> bool:
        return find_column_index(self._columns, table, field) != -1

    def toggle_column(self, table: str, field: str) -> bool:
        """Add or remove ``table.field``; return whether it is now selected."""
        if self.has_column(table, field):
            self.remove_column(table, field)
            return False
        self.add_column(table, field)
        return True

    def generate_query(self) -> str:
        return generate_query(self._columns, self.table_list)

    def to_text(self) -> str:
        """Return the selection as one ``table.field`` per line."""
        return "".join(f"{column}\n" for column in self._columns)

    @classmethod
    def from_text(
        cls,
        text: str,
        table_list: Sequence[Table] = (),
        listener: ColumnListener | None = None,
    ) -> QueryBuilder:
        """Create a builder from ``table.field`` lines.

        Blank lines are skipped.

        Raises:
            ValueError: If a line is not of the form ``table.field``.
        """
        columns = [Column.parse(line) for line in text.splitlines() if line.strip()]
        return cls(table_list=table_list, columns=columns, listener=listener)
