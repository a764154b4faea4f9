"""Codec for the presentation directives stored as comment lines.

Diagram state (zoom, viewport, table positions and colors) lives in the same
text as the schema, one directive per line::

    # zoom: 1.250
    # view: (-120, 40)
    # post (300, 80, #c0ffee)
    # diagram-bg: #1e1e1e

Each directive pairs a line pattern with a writer, and parsing a written line
gives back the original value.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import Any

from quick_erd.types import Position, TablePosition

logger = getLogger(__name__)


def _format_int(value: float) -> str:
    return f"{value:.0f}"


def _round_int(text: str) -> int:
    return int(round(float(text)))


@dataclass(frozen=True)
class Directive:
    """One reserved comment-line format.

    Attributes:
        name: Directive name, also the ParseResult attribute it fills.
        pattern: Regex matching a whole directive line.
        encode: Turns a value into the line text.
        decode: Turns a successful match into a value.
    """

    name: str
    pattern: re.Pattern[str]
    encode: Callable[[Any], str]
    decode: Callable[[re.Match[str]], Any]

    def to_line(self, value: Any) -> str:
        return self.encode(value)

    def readable_line(self, value: Any) -> str | None:
        """Return the line for *value*, or None when the line would not parse back.

        Table names outside ``\\w+`` and colors that are not lowercase hex
        cannot be read again, so no line is written for them.
        """
        line = self.encode(value)
        if self.pattern.fullmatch(line) is None:
            logger.warning("Not writing %s line %r: it would be read back as a comment", self.name, line)
            return None
        return line

    def parse_line(self, line: str) -> Any:
        """Return the value of *line*, or None when it is not this directive."""
        m = self.pattern.fullmatch(line.strip())
        return self.decode(m) if m else None

    def search(self, text: str) -> Any:
        """Return the value of the first matching line in *text*."""
        for line in text.splitlines():
            value = self.parse_line(line)
            if value is not None:
                return value
        return None

    def find_all(self, text: str) -> list[Any]:
        """Return the values of every matching line in *text*, in order."""
        values = []
        for line in text.splitlines():
            value = self.parse_line(line)
            if value is not None:
                values.append(value)
        return values


ZOOM = Directive(
    name="zoom",
    pattern=re.compile(r"# zoom: ([0-9]+(?:\.[0-9]+)?)"),
    encode=lambda zoom: f"# zoom: {zoom:.3f}",
    decode=lambda m: round(float(m.group(1)), 3),
)

VIEW = Directive(
    name="view",
    pattern=re.compile(r"# view: \((-?[0-9]+(?:\.[0-9]+)?), (-?[0-9]+(?:\.[0-9]+)?)\)"),
    encode=lambda view: f"# view: ({_format_int(view.x)}, {_format_int(view.y)})",
    decode=lambda m: Position(x=_round_int(m.group(1)), y=_round_int(m.group(2))),
)


def _table_position_line(item: tuple[str, TablePosition]) -> str:
    name, position = item
    x = _format_int(position.x)
    y = _format_int(position.y)
    if position.color:
        return f"# {name} ({x}, {y}, {position.color})"
    return f"# {name} ({x}, {y})"


TABLE_POSITION = Directive(
    name="table_position",
    pattern=re.compile(r"# (\w+) \((-?[0-9]+), (-?[0-9]+)(?:, (#[0-9a-f]+))?\)"),
    encode=_table_position_line,
    decode=lambda m: (
        m.group(1),
        TablePosition(x=int(m.group(2)), y=int(m.group(3)), color=m.group(4)),
    ),
)


def _color_directive(name: str, label: str) -> Directive:
    return Directive(
        name=name,
        pattern=re.compile(rf"# {re.escape(label)}: (#\w+)"),
        encode=lambda color: f"# {label}: {color}",
        decode=lambda m: m.group(1),
    )


TEXT_BG_COLOR = _color_directive("text_bg_color", "text-bg")
TEXT_COLOR = _color_directive("text_color", "text-color")
DIAGRAM_BG_COLOR = _color_directive("diagram_bg_color", "diagram-bg")
DIAGRAM_TEXT_COLOR = _color_directive("diagram_text_color", "diagram-text")
TABLE_BG_COLOR = _color_directive("table_bg_color", "table-bg")
TABLE_TEXT_COLOR = _color_directive("table_text_color", "table-text")

COLOR_DIRECTIVES: tuple[Directive, ...] = (
    TEXT_BG_COLOR,
    TEXT_COLOR,
    DIAGRAM_BG_COLOR,
    DIAGRAM_TEXT_COLOR,
    TABLE_BG_COLOR,
    TABLE_TEXT_COLOR,
)

# Single-valued directives, in the order they are written back
SCALAR_DIRECTIVES: tuple[Directive, ...] = (VIEW, ZOOM) + COLOR_DIRECTIVES

DIRECTIVES: tuple[Directive, ...] = SCALAR_DIRECTIVES + (TABLE_POSITION,)


def is_directive_line(line: str) -> bool:
    """Return whether *line* is any reserved directive."""
    stripped = line.strip()
    return any(d.pattern.fullmatch(stripped) for d in DIRECTIVES)


def table_position_pattern(name: str) -> re.Pattern[str]:
    """Return a pattern matching the position line of table *name* only."""
    return re.compile(rf"# {re.escape(name)} \(-?[0-9]+, -?[0-9]+(?:, #[0-9a-f]+)?\)")


def decode_meta(text: str) -> dict[str, Any]:
    """Read every directive in *text*.

    Returns a mapping of ParseResult attribute names to values. Single-valued
    directives keep their first occurrence; a table position repeated for the
    same table keeps the last one.
    """
    values: dict[str, Any] = {}
    positions: dict[str, TablePosition] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith("# "):
            continue
        for directive in SCALAR_DIRECTIVES:
            if directive.name in values:
                continue
            value = directive.parse_line(stripped)
            if value is not None:
                values[directive.name] = value
                break
        else:
            item = TABLE_POSITION.parse_line(stripped)
            if item is not None:
                name, position = item
                positions[name] = position
    values["table_positions"] = positions
    return values


def set_line(text: str, directive: Directive, value: Any) -> str:
    """Write *value* into *text*, replacing the line it supersedes.

    For ``TABLE_POSITION`` the value is a ``(name, TablePosition)`` pair and
    only that table's line is replaced. When no line matches, the new line is
    appended at the end of the text.

    Values whose line could not be read back leave *text* unchanged.
    """
    if directive is TABLE_POSITION:
        pattern = table_position_pattern(value[0])
    else:
        pattern = directive.pattern
    new_line = directive.readable_line(value)
    if new_line is None:
        return text

    lines = text.splitlines()
    for i, line in enumerate(lines):
        if pattern.fullmatch(line.strip()):
            lines[i] = new_line
            return "\n".join(lines) + ("\n" if text.endswith("\n") else "")

    if not text:
        return new_line + "\n"
    if not text.endswith("\n"):
        text += "\n"
    return text + new_line + "\n"
