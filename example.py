"""Example usage of the quick_erd library."""

from quick_erd import Column, QueryBuilder, format_text, parse
from quick_erd.meta import TABLE_POSITION, ZOOM, set_line
from quick_erd.types import TablePosition

# Describe the schema using the DSL
schema = """
user
----
id pk
username varchar(64)

post
----
id   PK
author_id fk >- user.id
content text
status enum('active','pending')

reply
-----
id pk
post_id fk
user_id fk
reply_id null fk
content text
"""

# Diagram state is stored in the same text as comment lines
schema = set_line(schema, ZOOM, 1.25)
schema = set_line(schema, TABLE_POSITION, ("post", TablePosition(x=320, y=40, color="#c0ffee")))

print("Formatted schema:")
print(format_text(schema))

result = parse(schema)
print("Tables:", ", ".join(result.table_names()))
print("Zoom:", result.zoom)

# Pick columns like a user clicking fields on the diagram
builder = QueryBuilder(result.table_list)
builder.add_column("reply", "content")
builder.add_column("post", "content")
builder.add_column("user", "username")

print("\nGenerated query:")
print(builder.generate_query())

print("\nSingle column:")
print(QueryBuilder(result.table_list, [Column("user", "username")]).generate_query())
