"""Layout engine: width-aware wrapping, list hanging indents, boxes, tables.

All measurements are in visible columns (see :func:`visible_width`), so
escape sequences are free and double-width characters count twice.
"""

from __future__ import annotations

import os
import sys
from typing import Iterator

from pi.mdterm.theme import StyleFn, identity
from pi.mdterm.utils import (
    AnsiCodeTracker,
    iter_graphemes,
    pad_to_width,
    slice_columns,
    split_ansi,
    take_columns,
    visible_width,
)

MIN_BOX_WIDTH = 40


def terminal_columns(default: int = 80) -> int:
    """Current terminal width, or *default* when stdout is not a terminal."""
    try:
        return os.get_terminal_size(sys.stdout.fileno()).columns
    except (AttributeError, ValueError, OSError):
        return default


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------

_SPACE = "space"
_WORD = "word"
_CODES = "codes"


def _tokens(line: str) -> Iterator[tuple[str, list[str], int]]:
    """Yield ``(kind, pieces, width)`` runs of a single physical line.

    Escape codes stick to the word that follows them (or to the word they
    end), so a break never separates a word from its styling.
    """
    pieces: list[str] = []
    width = 0
    has_text = False

    for is_escape, chunk in split_ansi(line):
        if is_escape:
            pieces.append(chunk)
            continue
        for g, g_width in iter_graphemes(chunk):
            if g == " ":
                if has_text:
                    yield (_WORD, pieces, width)
                    pieces, width, has_text = [], 0, False
                yield (_SPACE, [g], 1)
                continue
            pieces.append(g)
            width += g_width
            has_text = True

    if pieces:
        yield (_WORD if has_text else _CODES, pieces, width)


def _append(row: list[str], pieces: list[str], tracker: AnsiCodeTracker) -> None:
    for piece in pieces:
        if piece.startswith("\x1b"):
            tracker.process(piece)
        row.append(piece)


def _wrap_line(line: str, first_width: int, rest_width: int, tracker: AnsiCodeTracker) -> list[str]:
    if not line:
        return [""]

    rows: list[str] = []
    row: list[str] = [tracker.get_active_codes()]
    used = 0
    limit = first_width
    has_word = False
    pending: list[str] = []

    for kind, pieces, width in _tokens(line):
        if kind == _CODES:
            _append(row, pieces, tracker)
            continue

        if kind == _SPACE:
            if not has_word and not rows:
                # Leading indentation of the physical line is content.
                row.extend(pieces)
                used += width
            else:
                pending.extend(pieces)
            continue

        if has_word and used + len(pending) + width > limit:
            rows.append("".join(row) + tracker.get_line_end_reset())
            row = [tracker.get_active_codes()]
            used = 0
            limit = rest_width
        else:
            row.extend(pending)
            used += len(pending)
        pending = []

        _append(row, pieces, tracker)
        used += width
        has_word = True

    rows.append("".join(row) + tracker.get_line_end_reset())
    return rows


def wrap(text: str, width: int, indent: int = 0, hanging_indent: int | None = None) -> list[str]:
    """Word-wrap ANSI-styled *text* so each line fits in *width* columns.

    The first line is prefixed with *indent* spaces and every following
    line with *hanging_indent* spaces (defaulting to *indent*); the prefix
    counts against *width*. Embedded newlines start new lines. Styling that
    is open at a break is closed at the end of the line and reopened on the
    next, so every line stands on its own. A word wider than the available
    space is emitted whole on a line of its own rather than split.
    """
    if hanging_indent is None:
        hanging_indent = indent

    tracker = AnsiCodeTracker()
    lines: list[str] = []

    for physical in text.replace("\t", "   ").split("\n"):
        first_prefix = indent if not lines else hanging_indent
        rows = _wrap_line(
            physical,
            max(1, width - first_prefix),
            max(1, width - hanging_indent),
            tracker,
        )
        for row in rows:
            prefix = indent if not lines else hanging_indent
            lines.append(" " * prefix + row if row else row)

    return lines


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


def list_marker(ordered: bool, number: int, bullet: str = "•") -> str:
    """``"3."`` for ordered items, the bullet glyph otherwise."""
    return f"{number}." if ordered else bullet


def hang(marker: str, body: list[str]) -> list[str]:
    """Attach *marker* to the first line of *body* and indent the rest.

    Continuation lines are indented by the marker's visible width plus the
    separating space, so they line up under the item text.
    """
    pad = " " * (visible_width(marker) + 1)
    if not body:
        return [marker]
    lines = [f"{marker} {body[0]}" if body[0] else marker]
    lines.extend(pad + line if line else "" for line in body[1:])
    return lines


# ---------------------------------------------------------------------------
# Code boxes
# ---------------------------------------------------------------------------


def box_width_for(width: int, terminal_width: int | None = None, min_width: int = MIN_BOX_WIDTH) -> int:
    columns = terminal_width if terminal_width is not None else terminal_columns()
    return max(min_width, min(columns, width))


def _top_border(box_width: int, label: str) -> str:
    run = box_width - 2
    if not label:
        return f"┌{'─' * run}┐"
    text, text_width = take_columns(f" {label} ", run - 2)
    return f"┌─{text}{'─' * (run - 1 - text_width)}┐"


def box_code(
    highlighted: str,
    width: int,
    language: str = "",
    *,
    terminal_width: int | None = None,
    border: StyleFn | None = None,
    min_width: int = MIN_BOX_WIDTH,
) -> list[str]:
    """Frame highlighted code in a box exactly ``box_width`` columns wide.

    ``box_width = max(min_width, min(terminal columns, width))``. Each
    source line is wrapped to the inner width (``box_width - 4``); anything
    still too wide after wrapping is sliced into inner-width segments, and
    every content line is right-padded so the frame lines up.
    """
    border = border or identity
    box_width = box_width_for(width, terminal_width, min_width)
    inner = box_width - 4
    side = border("│")

    lines = [border(_top_border(box_width, language))]
    for source_line in highlighted.split("\n"):
        for row in wrap(source_line, inner):
            segments = slice_columns(row, inner) if visible_width(row) > inner else [row]
            for segment in segments:
                lines.append(f"{side} {pad_to_width(segment, inner)} {side}")
    lines.append(border(f"└{'─' * (box_width - 2)}┘"))
    return lines


def horizontal_rule(width: int, char: str = "─") -> str:
    return char * max(1, width)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

_MIN_COLUMN_WIDTH = 3


def column_widths(rows: list[list[str]], num_cols: int, available_width: int) -> list[int]:
    """Natural column widths, shrunk proportionally if the table won't fit."""
    natural = [_MIN_COLUMN_WIDTH] * num_cols
    for row in rows:
        for col, cell in enumerate(row[:num_cols]):
            natural[col] = max(natural[col], visible_width(cell))

    # "│ " + content + " " per column, plus the closing "│"
    overhead = 3 * num_cols + 1
    budget = max(num_cols * _MIN_COLUMN_WIDTH, available_width - overhead)
    total = sum(natural)
    if total <= budget:
        return natural

    widths = [max(_MIN_COLUMN_WIDTH, w * budget // total) for w in natural]
    remaining = budget - sum(widths)
    for col in range(num_cols):
        if remaining <= 0:
            break
        if widths[col] < natural[col]:
            widths[col] += 1
            remaining -= 1
    return widths


def _table_rule(widths: list[int], left: str, mid: str, right: str) -> str:
    return left + mid.join("─" * (w + 2) for w in widths) + right


def _table_row(cells: list[str], widths: list[int], side: str, style: StyleFn) -> list[str]:
    wrapped = []
    for col, w in enumerate(widths):
        cell = cells[col] if col < len(cells) else ""
        cell_lines: list[str] = []
        for line in wrap(style(cell), w):
            cell_lines.extend(slice_columns(line, w) if visible_width(line) > w else [line])
        wrapped.append(cell_lines or [""])

    height = max(len(cell_lines) for cell_lines in wrapped)
    rows = []
    for index in range(height):
        parts = [side]
        for col, w in enumerate(widths):
            line = wrapped[col][index] if index < len(wrapped[col]) else ""
            parts.append(f" {pad_to_width(line, w)} {side}")
        rows.append("".join(parts))
    return rows


def render_table(
    header: list[str],
    body: list[list[str]],
    width: int,
    *,
    border: StyleFn | None = None,
    header_style: StyleFn | None = None,
) -> list[str]:
    """Draw a table with box-drawing borders, fitting *width* where possible."""
    num_cols = max([len(header)] + [len(row) for row in body])
    if num_cols == 0:
        return []
    border = border or identity
    widths = column_widths([header, *body], num_cols, width)
    side = border("│")

    lines = [border(_table_rule(widths, "┌", "┬", "┐"))]
    if header:
        lines.extend(_table_row(header, widths, side, header_style or identity))
        lines.append(border(_table_rule(widths, "├", "┼", "┤")))
    for index, row in enumerate(body):
        lines.extend(_table_row(row, widths, side, identity))
        if index < len(body) - 1:
            lines.append(border(_table_rule(widths, "├", "┼", "┤")))
    lines.append(border(_table_rule(widths, "└", "┴", "┘")))
    return lines
