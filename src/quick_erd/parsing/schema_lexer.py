"""Lexer for the schema text DSL.

Lexing happens in two levels. ``classify_lines`` turns the text into one
``LineToken`` per physical line, and ``FieldLexer`` tokenizes the body of a
field declaration such as ``author_id integer null fk >- user.id``.
Keywords get their own token types, and ``table.field`` is one ``TARGET``
token.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from logging import getLogger

import ply.lex as lex

from quick_erd.meta import is_directive_line

logger = getLogger(__name__)

_DASHES_RE = re.compile(r"-+")


class LineKind(Enum):
    """Kinds of physical lines in schema text."""

    BLANK = "blank"
    DIRECTIVE = "directive"
    COMMENT = "comment"
    DASHES = "dashes"
    HEADER = "header"
    TEXT = "text"


@dataclass(frozen=True)
class LineToken:
    """A classified line with its 0-based line number."""

    kind: LineKind
    text: str
    lineno: int


def _is_dashes(line: str) -> bool:
    return bool(_DASHES_RE.fullmatch(line.strip()))


def _base_kind(line: str) -> LineKind:
    stripped = line.strip()
    if not stripped:
        return LineKind.BLANK
    if stripped.startswith("#"):
        if is_directive_line(stripped):
            return LineKind.DIRECTIVE
        return LineKind.COMMENT
    if _is_dashes(stripped):
        return LineKind.DASHES
    return LineKind.TEXT


def classify_lines(text: str) -> list[LineToken]:
    """Classify every line of *text*.

    A text line directly followed by a dash-only line is a table header; the
    dash line itself is kept as ``DASHES`` so callers can skip it.
    """
    lines = text.splitlines()
    kinds = [_base_kind(line) for line in lines]
    tokens = []
    for i, (line, kind) in enumerate(zip(lines, kinds)):
        if kind is LineKind.TEXT and i + 1 < len(lines) and kinds[i + 1] is LineKind.DASHES:
            kind = LineKind.HEADER
        tokens.append(LineToken(kind=kind, text=line.strip(), lineno=i))
    return tokens


_NAME = r"[A-Za-z_][A-Za-z0-9_$]*(?:-[A-Za-z0-9_$]+)*"


class FieldLexer:
    """Lexer for tokenizing a single field declaration."""

    # Keywords, matched case-insensitively
    reserved = {
        "pk": "MODIFIER",
        "unique": "MODIFIER",
        "unsigned": "MODIFIER",
        "null": "NULL",
        "fk": "FK",
        "not": "NOT",
        "default": "DEFAULT",
    }

    tokens = [
        "WORD",
        "TARGET",
        "NUMBER",
        "STRING",
        "ARGS",
        "DOT",
        "RELATION",
    ] + list(dict.fromkeys(reserved.values()))

    t_DOT = r"\."
    t_ARGS = r"\([^)]*\)"

    # Ignored characters (spaces and tabs)
    t_ignore = " \t"

    # Trailing free-text comment
    t_ignore_COMMENT = r"\#.*"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    # A relation stands alone, so "-0.5" and "timestamp-tz" are not relations
    def t_RELATION(self, t: lex.LexToken) -> lex.LexToken:
        r"(?<![\w.$-])(?:>-<|>0-|-0<|0-0|>-|-<|-0|0-|-)(?=[\s\#]|$)"
        return t

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?[0-9]+(?:\.[0-9]+)?"
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'[^']*'|\"[^\"]*\""
        return t

    @lex.TOKEN(_NAME + r"\." + _NAME)
    def t_TARGET(self, t: lex.LexToken) -> lex.LexToken:
        return t

    @lex.TOKEN(_NAME)
    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        t.type = self.reserved.get(t.value.lower(), "WORD")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        logger.debug("Skipping illegal character %r at column %d", t.value[0], t.lexpos)
        t.lexer.skip(1)

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        if self.lexer is None:
            self.build()
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
