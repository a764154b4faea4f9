"""Command line tool for formatting schema text and generating joins."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from quick_erd.normalize import normalize
from quick_erd.parsing import parse
from quick_erd.query import generate_query
from quick_erd.serializer import serialize
from quick_erd.types import Column

EXAMPLE = """\
user
----
id pk
username varchar(64)

post
----
id pk
author_id fk >- user.id
content text
status enum('active','pending')

reply
-----
id pk
# a column "{table}_id" marked "fk" references "{table}.id"
post_id fk
user_id fk
reply_id null fk
content text
"""


def _read(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text()


def _write(text: str, path: str | None, in_place: bool) -> None:
    if in_place and path not in (None, "-"):
        Path(path).write_text(text)  # type: ignore[arg-type]
    else:
        sys.stdout.write(text)


def _check_file(path: str | None) -> bool:
    if path is None or path == "-" or Path(path).exists():
        return True
    print(f"Error: File not found: {path}", file=sys.stderr)
    return False


def run_format(args: argparse.Namespace) -> int:
    if not _check_file(args.file):
        return 1
    result = parse(_read(args.file))
    _write(serialize(result, include_meta=not args.no_meta), args.file, args.in_place)
    return 0


def run_query(args: argparse.Namespace) -> int:
    if not _check_file(args.file):
        return 1
    try:
        columns = [Column.parse(text) for text in args.columns]
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    result = parse(_read(args.file))
    query = generate_query(columns, result.table_list)
    if not query:
        print(f"Error: Unknown table: {columns[0].table}", file=sys.stderr)
        return 1
    print(query)
    return 0


def run_normalize(args: argparse.Namespace) -> int:
    if not _check_file(args.file):
        return 1
    result = normalize(parse(_read(args.file)), args.field, args.table)
    _write(serialize(result), args.file, args.in_place)
    return 0


def run_example(args: argparse.Namespace) -> int:
    sys.stdout.write(EXAMPLE)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        prog="quick-erd",
        description="Format plain-text ER diagrams and generate SQL joins",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log dropped lines and unreachable columns",
    )
    subparsers = arg_parser.add_subparsers(dest="command", required=True)

    format_parser = subparsers.add_parser("format", help="Print the schema in canonical form")
    format_parser.add_argument("file", nargs="?", default=None, help="Schema file (default: stdin)")
    format_parser.add_argument(
        "--no-meta",
        action="store_true",
        help="Leave out zoom, view, color and position lines",
    )
    format_parser.add_argument(
        "-i", "--in-place",
        action="store_true",
        help="Rewrite the file instead of printing",
    )
    format_parser.set_defaults(func=run_format)

    query_parser = subparsers.add_parser("query", help="Generate a select statement")
    query_parser.add_argument("file", help="Schema file, or - for stdin")
    query_parser.add_argument("columns", nargs="+", help="Columns as table.field")
    query_parser.set_defaults(func=run_query)

    normalize_parser = subparsers.add_parser(
        "normalize", help="Move a field into a lookup table"
    )
    normalize_parser.add_argument("file", help="Schema file, or - for stdin")
    normalize_parser.add_argument("--field", required=True, help="Field to move")
    normalize_parser.add_argument(
        "--table",
        default=None,
        help="Lookup table name (default: the field name)",
    )
    normalize_parser.add_argument(
        "-i", "--in-place",
        action="store_true",
        help="Rewrite the file instead of printing",
    )
    normalize_parser.set_defaults(func=run_normalize)

    example_parser = subparsers.add_parser("example", help="Print an example schema")
    example_parser.set_defaults(func=run_example)

    args = arg_parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
