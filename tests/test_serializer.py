"""Tests for canonical schema text output."""

import pytest

from quick_erd.parsing import parse
from quick_erd.serializer import field_to_text, format_text, serialize, table_to_text
from quick_erd.types import Field, ParseResult, Position, Reference, Table, TablePosition

MESSY = """
# the blog schema
user
------
id   pk
username  varchar(64)   UNIQUE
nickname null text

post
--
id pk
author_id fk >- user.id # who wrote it
content text
status enum('active', 'pending') default 'active'
reply_id null fk

reply
-----
id PK
post_id FK
# zoom: 1.5
# user (10, 20)
# view: (3, 4)
# diagram-bg: #fafafa
# post (-5, 7, #ff0000)
"""


class TestFieldToText:
    """Tests for the canonical field line."""

    def test_name_only(self):
        """Test a field with only a name."""
        assert field_to_text(Field(name="id")) == "id"

    def test_modifier_order(self):
        """Test that modifiers are written in canonical order."""
        field = Field(
            name="qty",
            type="int",
            modifiers=frozenset({"pk", "unique", "null", "unsigned"}),
            default="0",
        )
        assert field_to_text(field) == "qty int unsigned null unique default 0 pk"

    def test_reference_written_explicitly(self):
        """Test that an implicit reference is written out in full."""
        field = Field(
            name="user_id",
            modifiers=frozenset({"fk"}),
            references=Reference(table="user"),
        )
        assert field_to_text(field) == "user_id fk >- user.id"

    def test_relation_kept(self):
        """Test that the written relation and target field are kept."""
        field = Field(
            name="tag",
            type="int",
            modifiers=frozenset({"fk", "null"}),
            references=Reference(table="tag", field="code", relation=">-<"),
        )
        assert field_to_text(field) == "tag int null fk >-< tag.code"


class TestTableToText:
    """Tests for the canonical table block."""

    def test_dash_length_matches_name(self):
        """Test that the underline is as long as the name."""
        table = Table(name="order_item", field_list=(Field(name="id", modifiers=frozenset({"pk"})),))
        assert table_to_text(table) == "order_item\n----------\nid pk"


class TestSerialize:
    """Tests for whole-document formatting."""

    def test_empty(self):
        """Test that an empty schema is empty text."""
        assert serialize(ParseResult()) == ""

    def test_canonical_output(self):
        """Test formatting a messy schema."""
        assert format_text(MESSY) == """user
----
id pk
username varchar(64) unique
nickname text null

post
----
id pk
author_id fk >- user.id
content text
status enum('active', 'pending') default 'active'
reply_id null fk >- reply.id

reply
-----
id pk
post_id fk >- post.id

# view: (3, 4)
# zoom: 1.500
# diagram-bg: #fafafa
# user (10, 20)
# post (-5, 7, #ff0000)
"""

    def test_without_meta(self):
        """Test formatting without directives."""
        text = format_text(MESSY, include_meta=False)
        assert "#" not in text
        assert text.endswith("reply\n-----\nid pk\npost_id fk >- post.id\n")

    def test_meta_only(self):
        """Test a result with directives and no tables."""
        result = ParseResult(zoom=2.0, view=Position(x=0, y=0))
        assert serialize(result) == "# view: (0, 0)\n# zoom: 2.000\n"

    def test_positions_follow_table_order(self):
        """Test that positions follow table order, unknown tables last."""
        result = ParseResult(
            table_list=(Table(name="a"), Table(name="b")),
            table_positions={
                "ghost": TablePosition(x=9, y=9),
                "b": TablePosition(x=2, y=2),
                "a": TablePosition(x=1, y=1),
            },
        )
        assert serialize(result).splitlines()[-3:] == [
            "# a (1, 1)",
            "# b (2, 2)",
            "# ghost (9, 9)",
        ]

    def test_unreadable_position_skipped(self):
        """Test that a position for a table name with a space is not written."""
        result = ParseResult(
            table_list=(Table(name="user profile"), Table(name="a")),
            table_positions={
                "user profile": TablePosition(x=1, y=2),
                "a": TablePosition(x=3, y=4, color="#ABC"),
            },
        )
        assert serialize(result) == "user profile\n------------\n\na\n-\n"

    def test_deterministic(self):
        """Test that serializing twice gives the same text."""
        result = parse(MESSY)
        assert serialize(result) == serialize(result)


class TestFormattingLaws:
    """Formatting changes layout but never meaning."""

    SAMPLES = [
        MESSY,
        "",
        "stray line\n",
        "t\n-\nx fk >-\n",
        "a\n-\nid\n\na\n-\nx\n",
        "user\n----\nid\npost\n----\nid\nuser_id fk\n",
        "t\n-\nname text not null default 'x y' # comment\n",
        "t\n-\nv int default -1 unsigned\nw -< t.v\n# zoom: 0.33333\n# view: (1.5, 2.5)\n",
        "t\n-\nstatus enum('a)', 'b') null\n",
        "t\n-\nflag fk default\n",
        "t\n-\nflag not\nother not int\n",
        "t\n-\nprice numeric default -0.5\nts timestamp-tz\n",
        "t\n-\nnote null default null\nd default default\n",
        "t\n-\nx schema.kind fk\ny fk integer\n",
        "user profile\n------------\nid\n# user profile (1, 2)\n",
    ]

    @pytest.mark.parametrize("text", SAMPLES)
    def test_reparse_unchanged(self, text):
        """Test that parsing the formatted text gives the same result."""
        result = parse(text)
        assert parse(serialize(result)) == result

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        """Test that formatting twice changes nothing."""
        once = format_text(text)
        assert format_text(once) == once

    def test_canonical_text_is_fixed_point(self):
        """Test that canonical text formats to itself."""
        canonical = format_text(MESSY)
        assert serialize(parse(canonical)) == canonical
