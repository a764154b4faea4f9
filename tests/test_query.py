"""Tests for join path search and SQL generation."""

from quick_erd.parsing import parse
from quick_erd.query import (
    ReferenceGraph,
    choose_ref_field,
    find_path,
    generate_query,
    path_alias,
)
from quick_erd.types import Column, PathStep

BLOG = parse("""
user
----
id pk
username varchar(64)

post
----
id pk
author_id fk >- user.id
content text

reply
-----
id pk
post_id fk
user_id fk
reply_id null fk
content text
""")

TABLES = BLOG.table_list


def _table(name):
    return BLOG.get_table(name)


class TestReferenceGraph:
    """Tests for the precomputed adjacency."""

    def test_edges_in_declaration_order(self):
        """Test that edges keep field order."""
        graph = ReferenceGraph.build(TABLES)
        assert list(graph.outgoing("reply")) == ["post", "user", "reply"]
        assert [f.name for f in graph.outgoing("post")["user"]] == ["author_id"]

    def test_reverse_index(self):
        """Test the index of references into a table."""
        graph = ReferenceGraph.build(TABLES)
        assert graph.referenced_by["user"] == ["post", "reply"]
        assert graph.referenced_by["reply"] == ["reply"]

    def test_unknown_table(self):
        """Test edges of an unknown table."""
        graph = ReferenceGraph.build(TABLES)
        assert graph.outgoing("nope") == {}
        assert list(graph.incoming("nope")) == []


class TestFindPath:
    """Tests for the path resolver."""

    def test_same_table(self):
        """Test a path to the base table itself."""
        path = find_path(_table("user"), Column("user", "username"), [], TABLES)
        assert path == (PathStep(table_name="user"),)

    def test_forward_single_hop(self):
        """Test one forward hop."""
        path = find_path(_table("post"), Column("user", "username"), [], TABLES)
        assert path == (
            PathStep(table_name="post", ref_field="author_id"),
            PathStep(table_name="user"),
        )

    def test_forward_first_reference_wins(self):
        """Test that the first reference is followed."""
        # reply references post first, and post leads to user
        path = find_path(_table("reply"), Column("user", "username"), [], TABLES)
        assert [step.table_name for step in path] == ["reply", "post", "user"]
        assert path[0].ref_field == "post_id"

    def test_reverse_fallback(self):
        """Test following a reference backwards."""
        path = find_path(_table("user"), Column("post", "content"), [], TABLES)
        assert path == (
            PathStep(table_name="user", ref_field="author_id", reverse=True),
            PathStep(table_name="post"),
        )

    def test_unreachable(self):
        """Test a table with no path."""
        tables = parse("a\n-\nid\n\nb\n-\nid\n").table_list
        assert find_path(tables[0], Column("b", "id"), [], tables) == ()

    def test_self_reference_terminates(self):
        """Test that a self reference does not loop."""
        tables = parse("""
reply
-----
id pk
reply_id fk >- reply.id

island
------
id pk
""").table_list
        assert find_path(tables[0], Column("island", "id"), [], tables) == ()

    def test_cycle_terminates(self):
        """Test that a cycle does not loop."""
        tables = parse("""
a
-
b_id fk

b
-
a_id fk

c
-
id
""").table_list
        assert find_path(tables[0], Column("c", "id"), [], tables) == ()

    def test_reference_to_missing_table_skipped(self):
        """Test that references to missing tables are skipped."""
        tables = parse("a\n-\nghost_id fk\nb_id fk\n\nb\n-\nid\n").table_list
        path = find_path(tables[0], Column("b", "id"), [], tables)
        assert [step.table_name for step in path] == ["a", "b"]

    def test_ref_target_field(self):
        """Test that the step keeps the target field."""
        tables = parse("a\n-\nb_code fk >- b.code\n\nb\n-\ncode\n").table_list
        path = find_path(tables[0], Column("b", "code"), [], tables)
        assert path[0].ref_target == "code"


class TestChooseRefField:
    """Tie-break between parallel references to the same table."""

    SCHEMA = parse("""
user
----
id pk
name text

message
-------
id pk
sender_id fk >- user.id
receiver_id fk >- user.id

notice
------
id pk
receiver_id fk >- user.id
""")

    def test_first_reference_by_default(self):
        """Test that the first reference wins by default."""
        graph = ReferenceGraph.build(self.SCHEMA.table_list)
        fields = graph.outgoing("message")["user"]
        assert choose_ref_field(graph, "user", fields, []).name == "sender_id"

    def test_prefers_selected_field_of_referencing_table(self):
        """Test preferring a selected field of a referencing table."""
        graph = ReferenceGraph.build(self.SCHEMA.table_list)
        fields = graph.outgoing("message")["user"]
        columns = [Column("notice", "receiver_id")]
        assert choose_ref_field(graph, "user", fields, columns).name == "receiver_id"

    def test_ignores_selected_field_of_unrelated_table(self):
        """Test that other tables' selections are ignored."""
        graph = ReferenceGraph.build(self.SCHEMA.table_list)
        fields = graph.outgoing("message")["user"]
        columns = [Column("user", "receiver_id")]
        assert choose_ref_field(graph, "user", fields, columns).name == "sender_id"

    def test_query_uses_preferred_alias(self):
        """Test that the query uses the preferred alias."""
        columns = [
            Column("message", "id"),
            Column("user", "name"),
            Column("message", "receiver_id"),
        ]
        assert generate_query(columns, self.SCHEMA.table_list) == """select
  message.id
, message.receiver_id
, receiver.name
from message
inner join user as receiver on receiver.id = message.receiver_id"""


class TestPathAlias:
    """Tests for join aliases."""

    def test_alias_from_reference_field(self):
        """Test an alias from the reference field name."""
        path = (PathStep("post", ref_field="author_id"), PathStep("user"))
        assert path_alias(path, 0) == "post"
        assert path_alias(path, 1) == "author"

    def test_alias_same_as_table(self):
        """Test an alias equal to the table name."""
        path = (PathStep("reply", ref_field="user_id"), PathStep("user"))
        assert path_alias(path, 1) == "user"

    def test_reverse_hop_uses_table_name(self):
        """Test that reverse hops use the table name."""
        path = (PathStep("user", ref_field="author_id", reverse=True), PathStep("post"))
        assert path_alias(path, 1) == "post"

    def test_bare_id_field_falls_back_to_table(self):
        """Test a reference field named only _id."""
        path = (PathStep("a", ref_field="_id"), PathStep("b"))
        assert path_alias(path, 1) == "b"


class TestGenerateQuery:
    """Tests for SQL generation."""

    def test_no_columns(self):
        """Test that no columns give no query."""
        assert generate_query([], TABLES) == ""

    def test_single_column(self):
        """Test a query over one column."""
        assert generate_query([Column("user", "id")], TABLES) == "select id from user"

    def test_unknown_base_table(self):
        """Test a base table missing from the schema."""
        columns = [Column("nope", "id"), Column("user", "id")]
        assert generate_query(columns, TABLES) == ""

    def test_two_tables_forward(self):
        """Test joining along a forward reference."""
        columns = [Column("post", "content"), Column("user", "username")]
        assert generate_query(columns, TABLES) == """select
  post.content
, author.username
from post
inner join user as author on author.id = post.author_id"""

    def test_two_tables_reference_declared_on_other_table(self):
        """Test joining when the reference is on the other table."""
        columns = [Column("user", "username"), Column("post", "content")]
        query = generate_query(columns, TABLES)
        assert query == """select
  user.username
, post.content
from user
inner join post on post.author_id = user.id"""
        assert query.count("inner join") == 1

    def test_closer_tables_listed_first(self):
        """Test that nearer tables are joined first."""
        columns = [
            Column("reply", "content"),
            Column("user", "username"),
            Column("post", "content"),
            Column("reply", "id"),
        ]
        assert generate_query(columns, TABLES) == """select
  reply.content
, reply.id
, post.content
, author.username
from reply
inner join post on post.id = reply.post_id
inner join user as author on author.id = post.author_id"""

    def test_unreachable_column_skipped(self):
        """Test that unreachable columns are left out."""
        tables = parse("a\n-\nid\nx text\n\nb\n-\nid\n").table_list
        columns = [Column("a", "x"), Column("b", "id")]
        assert generate_query(columns, tables) == "select\n  a.x\nfrom a"

    def test_table_joined_once(self):
        """Test that each alias is joined once."""
        columns = [
            Column("post", "id"),
            Column("user", "username"),
            Column("user", "id"),
        ]
        query = generate_query(columns, TABLES)
        assert query.count("inner join") == 1
        assert query.endswith(", author.username\n, author.id\nfrom post\ninner join user as author on author.id = post.author_id")

    def test_self_reference_with_unreachable_target(self):
        """Test a self reference next to an unreachable table."""
        tables = parse("reply\n-----\nid pk\nreply_id fk >- reply.id\n\nother\n-----\nid\n").table_list
        columns = [Column("reply", "id"), Column("other", "id")]
        assert generate_query(columns, tables) == "select\n  reply.id\nfrom reply"
