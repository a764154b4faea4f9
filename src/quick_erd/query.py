"""Join path search and SQL generation for selected columns.

Given the columns a user picked on the diagram, the first column's table is
the base of the query. Every other column is reached by walking foreign keys
from the base table, and each hop becomes an ``inner join``::

    select
      post.title
    , author.username
    from post
    inner join user as author on author.id = post.author_id
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from logging import getLogger

from quick_erd.types import Column, Field, PathStep, Table, TablePath, strip_id_suffix

logger = getLogger(__name__)


@dataclass
class ReferenceGraph:
    """Foreign key adjacency of a table list.

    Built once per query and only read during path search.

    Attributes:
        tables: Table by name; the first declaration wins on duplicates.
        edges: For each table, the fields referencing each other table,
            grouped by target table in field declaration order.
        referenced_by: For each table, the names of the tables referencing it.
    """

    tables: dict[str, Table] = field(default_factory=dict)
    edges: dict[str, dict[str, list[Field]]] = field(default_factory=dict)
    referenced_by: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, table_list: Sequence[Table]) -> ReferenceGraph:
        graph = cls()
        for table in table_list:
            if table.name in graph.tables:
                continue
            graph.tables[table.name] = table
            targets = graph.edges.setdefault(table.name, {})
            for ref_field in table.references():
                ref_table = ref_field.references.table  # type: ignore[union-attr]
                targets.setdefault(ref_table, []).append(ref_field)
                sources = graph.referenced_by.setdefault(ref_table, [])
                if table.name not in sources:
                    sources.append(table.name)
        return graph

    def outgoing(self, table_name: str) -> dict[str, list[Field]]:
        return self.edges.get(table_name, {})

    def incoming(self, table_name: str) -> Iterator[tuple[str, list[Field]]]:
        """Yield ``(source table, fields)`` for tables referencing *table_name*."""
        for source in self.referenced_by.get(table_name, []):
            yield source, self.edges[source][table_name]


def choose_ref_field(
    graph: ReferenceGraph,
    ref_table: str,
    ref_fields: Sequence[Field],
    columns: Sequence[Column],
) -> Field:
    """Pick which of several reference fields to follow into *ref_table*.

    A reference field whose name is also the field of a selected column, on a
    table that itself references *ref_table*, is preferred; this reuses the
    naming already implied by the selection. Otherwise the first reference
    field in declaration order is used.
    """
    sources = graph.referenced_by.get(ref_table, [])
    for ref_field in ref_fields:
        for column in columns:
            if column.field == ref_field.name and column.table in sources:
                return ref_field
    return ref_fields[0]


def _step(table_name: str, ref_field: Field, reverse: bool = False) -> PathStep:
    ref = ref_field.references
    return PathStep(
        table_name=table_name,
        ref_field=ref_field.name,
        ref_target=ref.field if ref is not None else "id",
        reverse=reverse,
    )


def _forward_path(
    graph: ReferenceGraph, base: str, target: Column, columns: Sequence[Column]
) -> TablePath:
    """Depth first search following references in declaration order."""
    visited = {base}
    stack = [(base, (), iter(graph.outgoing(base).items()))]
    while stack:
        name, path, candidates = stack[-1]
        for ref_table, ref_fields in candidates:
            if ref_table in visited or ref_table not in graph.tables:
                continue
            ref_field = choose_ref_field(graph, ref_table, ref_fields, columns)
            next_path = path + (_step(name, ref_field),)
            if ref_table == target.table:
                return next_path + (PathStep(table_name=ref_table),)
            visited.add(ref_table)
            stack.append((ref_table, next_path, iter(graph.outgoing(ref_table).items())))
            break
        else:
            stack.pop()
    return ()


def _undirected_path(
    graph: ReferenceGraph, base: str, target: Column, columns: Sequence[Column]
) -> TablePath:
    """Breadth first search that may also walk references backwards."""
    parents: dict[str, tuple[str, PathStep] | None] = {base: None}
    queue = deque([base])
    while queue:
        name = queue.popleft()
        if name == target.table:
            steps = [PathStep(table_name=name)]
            while parents[name] is not None:
                name, step = parents[name]  # type: ignore[misc]
                steps.append(step)
            return tuple(reversed(steps))

        neighbours = [
            (ref_table, _step(name, choose_ref_field(graph, ref_table, ref_fields, columns)))
            for ref_table, ref_fields in graph.outgoing(name).items()
        ]
        neighbours.extend(
            (source, _step(name, choose_ref_field(graph, name, ref_fields, columns), reverse=True))
            for source, ref_fields in graph.incoming(name)
        )
        for next_table, step in neighbours:
            if next_table in parents or next_table not in graph.tables:
                continue
            parents[next_table] = (name, step)
            queue.append(next_table)
    return ()


def find_path(
    base: Table,
    target: Column,
    columns: Sequence[Column],
    table_list: Sequence[Table],
    graph: ReferenceGraph | None = None,
) -> TablePath:
    """Find the foreign key path from *base* to the table of *target*.

    References are followed forwards first, depth first in field declaration
    order, and the first path found is returned. If the target cannot be
    reached that way, the shortest path that may also follow references
    backwards is returned instead. Returns an empty tuple when the tables are
    not connected.
    """
    if base.name == target.table:
        return (PathStep(table_name=target.table),)
    if graph is None:
        graph = ReferenceGraph.build(table_list)
    return _forward_path(graph, base.name, target, columns) or _undirected_path(
        graph, base.name, target, columns
    )


def path_alias(path: TablePath, index: int) -> str:
    """Return the name the table at *index* of *path* is known by in the query.

    A table reached through a reference field is aliased by that field name
    without its ``_id`` suffix, so ``author_id`` joins ``user`` as ``author``.
    """
    if index > 0:
        previous = path[index - 1]
        if previous.ref_field and not previous.reverse:
            alias = strip_id_suffix(previous.ref_field)
            if alias:
                return alias
    return path[index].table_name


def _join_line(path: TablePath, index: int) -> str:
    node = path[index]
    previous = path[index - 1]
    alias = path_alias(path, index)
    previous_alias = path_alias(path, index - 1)

    line = f"inner join {node.table_name}"
    if alias != node.table_name:
        line += f" as {alias}"
    if previous.reverse:
        return line + f" on {alias}.{previous.ref_field} = {previous_alias}.{previous.ref_target}"
    return line + f" on {alias}.{previous.ref_target} = {previous_alias}.{previous.ref_field}"


def generate_query(columns: Sequence[Column], table_list: Sequence[Table]) -> str:
    """Generate a select statement joining the tables of *columns*.

    Returns an empty string when there are no columns or when the table of
    the first column is unknown. Columns whose table cannot be reached from
    the first column's table are left out.
    """
    if not columns:
        return ""
    if len(columns) == 1:
        column = columns[0]
        return f"select {column.field} from {column.table}"

    graph = ReferenceGraph.build(table_list)
    base = graph.tables.get(columns[0].table)
    if base is None:
        return ""

    routes = [
        (column, find_path(base, column, columns, table_list, graph)) for column in columns
    ]
    routes.sort(key=lambda route: len(route[1]))

    joined = {base.name}
    select_lines: list[str] = []
    from_lines = [f"from {base.name}"]
    for column, path in routes:
        if not path:
            logger.debug("No join path from %s to %s", base.name, column)
            continue

        prefix = "  " if not select_lines else ", "
        select_lines.append(f"{prefix}{path_alias(path, len(path) - 1)}.{column.field}")

        for index in range(1, len(path)):
            alias = path_alias(path, index)
            if alias in joined:
                continue
            joined.add(alias)
            from_lines.append(_join_line(path, index))

    return "\n".join(["select", *select_lines, *from_lines])
