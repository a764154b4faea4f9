"""Schema text language server: diagnostics, completion, hover via pygls."""

from __future__ import annotations

import re
from collections.abc import Iterator

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from quick_erd.parsing import LineKind, LineToken, SchemaParser, classify_lines
from quick_erd.serializer import field_to_text
from quick_erd.types import Field, ParseResult

SERVER_NAME = "quick-erd-language-server"
SERVER_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "pk": "Primary key",
    "fk": "Foreign key; without a target, `x_id` references `x.id`",
    "null": "Nullable column",
    "unique": "Unique column",
    "unsigned": "Unsigned numeric column",
    "default": "Default value, e.g. `default 0`",
}

_RELATION = r"(?:>-<|>0-|-0<|0-0|>-|-<|-0|0-|-)"

# Relation followed by a table name and a dot: complete field names
_FIELD_CONTEXT_RE = re.compile(rf"{_RELATION}\s+(\w+)\.\w*$")

# Relation followed by a partial table name: complete table names
_TABLE_CONTEXT_RE = re.compile(rf"{_RELATION}\s+\w*$")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------

_parser = SchemaParser()


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    ch = line_text[character]
    if not (ch.isalnum() or ch == "_"):
        return ""
    # Scan left
    left = character
    while left > 0 and (line_text[left - 1].isalnum() or line_text[left - 1] == "_"):
        left -= 1
    # Scan right
    right = character
    while right < len(line_text) and (line_text[right].isalnum() or line_text[right] == "_"):
        right += 1
    return line_text[left:right]


def _line_range(source_lines: list[str], lineno: int) -> types.Range:
    """Return the range of the non-blank content of a line."""
    text = source_lines[lineno] if lineno < len(source_lines) else ""
    start = len(text) - len(text.lstrip())
    end = max(len(text.rstrip()), start)
    return types.Range(
        start=types.Position(line=lineno, character=start),
        end=types.Position(line=lineno, character=end),
    )


def _field_lines(source: str) -> Iterator[tuple[str, LineToken, Field]]:
    """Yield ``(table name, line, field)`` for each field declaration."""
    table: str | None = None
    for line in classify_lines(source):
        if line.kind is LineKind.HEADER:
            table = line.text
        elif line.kind is LineKind.BLANK:
            table = None
        elif line.kind is LineKind.TEXT and table is not None:
            parsed = _parser.parse_field(line)
            if parsed is not None:
                yield table, line, parsed


def collect_diagnostics(source: str) -> list[types.Diagnostic]:
    """Report unknown references and duplicate table names in *source*."""
    result = _parser.parse(source)
    source_lines = source.splitlines()
    diagnostics: list[types.Diagnostic] = []

    for table_name, line, f in _field_lines(source):
        ref = f.references
        if ref is None:
            continue
        target = result.get_table(ref.table)
        if target is None:
            diagnostics.append(
                types.Diagnostic(
                    range=_line_range(source_lines, line.lineno),
                    severity=types.DiagnosticSeverity.Error,
                    source="quick-erd",
                    message=f"{table_name}.{f.name} references unknown table '{ref.table}'",
                )
            )
        elif target.get_field(ref.field) is None:
            diagnostics.append(
                types.Diagnostic(
                    range=_line_range(source_lines, line.lineno),
                    severity=types.DiagnosticSeverity.Warning,
                    source="quick-erd",
                    message=f"{table_name}.{f.name} references unknown field '{ref.table}.{ref.field}'",
                )
            )

    duplicates = set(result.duplicate_table_names())
    seen: set[str] = set()
    for line in classify_lines(source):
        if line.kind is not LineKind.HEADER or line.text not in duplicates:
            continue
        if line.text in seen:
            diagnostics.append(
                types.Diagnostic(
                    range=_line_range(source_lines, line.lineno),
                    severity=types.DiagnosticSeverity.Warning,
                    source="quick-erd",
                    message=f"Table '{line.text}' is declared more than once",
                )
            )
        seen.add(line.text)

    return diagnostics


def completion_items(source: str, line: int, character: int) -> list[types.CompletionItem]:
    """Return completion candidates for the cursor position."""
    lines = source.splitlines()
    line_text = lines[line] if line < len(lines) else ""
    prefix = line_text[:character]
    result = _parser.parse(source)

    m = _FIELD_CONTEXT_RE.search(prefix)
    if m:
        table = result.get_table(m.group(1))
        if table is None:
            return []
        return [
            types.CompletionItem(
                label=f.name,
                kind=types.CompletionItemKind.Field,
                detail=field_to_text(f),
            )
            for f in table.field_list
        ]

    if _TABLE_CONTEXT_RE.search(prefix):
        return [
            types.CompletionItem(
                label=name,
                kind=types.CompletionItemKind.Class,
                detail="Table",
            )
            for name in dict.fromkeys(result.table_names())
        ]

    # Past the field name: offer modifiers
    if prefix.strip() and " " in prefix.lstrip():
        return [
            types.CompletionItem(
                label=name,
                kind=types.CompletionItemKind.Keyword,
                detail=desc,
            )
            for name, desc in KEYWORDS.items()
        ]

    return []


def _table_markdown(result: ParseResult, name: str) -> str | None:
    table = result.get_table(name)
    if table is None:
        return None
    body = "\n".join(field_to_text(f) for f in table.field_list)
    return f"**{table.name}**\n\n```\n{body}\n```"


def hover_text(source: str, line: int, character: int) -> str | None:
    """Return Markdown describing the table or keyword under the cursor."""
    lines = source.splitlines()
    if line >= len(lines):
        return None
    word = _word_at_position(lines[line], character)
    if not word:
        return None

    content = _table_markdown(_parser.parse(source), word)
    if content is None and word.lower() in KEYWORDS:
        content = f"**{word.lower()}**: {KEYWORDS[word.lower()]}"
    return content


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer(SERVER_NAME, SERVER_VERSION)


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=collect_diagnostics(doc.source))
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[".", " "]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    items = completion_items(doc.source, params.position.line, params.position.character)
    return types.CompletionList(is_incomplete=False, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    content = hover_text(doc.source, params.position.line, params.position.character)
    if content is None:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=content,
        )
    )


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
