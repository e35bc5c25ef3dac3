"""Terminal text utilities: ANSI handling and visible width measurement.

Everything the layout engine needs to reason about what a terminal will
actually show: escape-sequence extraction, grapheme-aware column widths,
SGR / OSC 8 state tracking across line breaks, and column slicing.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

RESET = "\x1b[0m"
HYPERLINK_CLOSE = "\x1b]8;;\x07"

# CSI (ESC[ ... final), OSC (ESC] ... BEL|ST) and APC (ESC_ ... BEL|ST)
_ESCAPE_RE = re.compile(
    r"\x1b\[[0-9;:?]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"
)

_SGR_SEPARATOR_RE = re.compile(r"[;:]")

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def strip_ansi(text: str) -> str:
    """Remove every escape sequence from *text*."""
    return _ESCAPE_RE.sub("", text)


def split_ansi(text: str) -> Iterator[tuple[bool, str]]:
    """Yield ``(is_escape, chunk)`` pairs covering *text* in order."""
    pos = 0
    for match in _ESCAPE_RE.finditer(text):
        if match.start() > pos:
            yield (False, text[pos : match.start()])
        yield (True, match.group())
        pos = match.end()
    if pos < len(text):
        yield (False, text[pos:])


# ---------------------------------------------------------------------------
# Width measurement
# ---------------------------------------------------------------------------


def grapheme_width(g: str) -> int:
    """Return the number of terminal columns a grapheme cluster occupies.

    Control characters and lone combining marks take no space. Emoji
    sequences (VS16, ZWJ joins, skin tones, flags) take two. Anything else
    is measured by wcwidth on its base character.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    base = ord(g[0])
    if base >= 0x1F000 or 0x2600 <= base <= 0x27BF:
        return 2

    category = unicodedata.category(g[0])
    if category.startswith("M") or category == "Cf":
        return 0
    return max(_wcwidth.wcwidth(g[0]), 0)


def iter_graphemes(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(cluster, width)`` for each grapheme of plain *text*."""
    for g in grapheme.graphemes(text):
        yield (g, grapheme_width(g))


def visible_width(text: str) -> int:
    """Columns *text* occupies once escapes are stripped; tabs count as 3."""
    if not text:
        return 0

    stripped = strip_ansi(text).replace("\t", "   ")
    if not stripped:
        return 0

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(width for _g, width in iter_graphemes(stripped))
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[stripped] = total
    return total


# ---------------------------------------------------------------------------
# AnsiCodeTracker
# ---------------------------------------------------------------------------

_SGR_ON = {1: "bold", 2: "dim", 3: "italic", 4: "underline", 5: "blink", 7: "inverse", 8: "hidden", 9: "strikethrough"}
_SGR_OFF = {
    22: ("bold", "dim"),
    23: ("italic",),
    24: ("underline",),
    25: ("blink",),
    27: ("inverse",),
    28: ("hidden",),
    29: ("strikethrough",),
}
_ATTRIBUTE_ORDER = ("bold", "dim", "italic", "underline", "blink", "inverse", "hidden", "strikethrough")


class AnsiCodeTracker:
    """Track which SGR attributes and which OSC 8 link are currently open.

    Lets a line breaker close everything at the end of a line and re-open
    the same state at the start of the next one.
    """

    def __init__(self) -> None:
        self._attributes: dict[str, str] = {}
        self.fg_color: str | None = None
        self.bg_color: str | None = None
        self.hyperlink: str | None = None

    def process(self, code: str) -> None:
        if code.startswith("\x1b]8;"):
            self._process_hyperlink(code)
            return
        if not code.startswith("\x1b[") or not code.endswith("m"):
            return

        params = [int(p) if p.isdigit() else 0 for p in _SGR_SEPARATOR_RE.split(code[2:-1])]
        i = 0
        while i < len(params):
            val = params[i]
            if val == 0:
                self.clear()
            elif val in _SGR_ON:
                self._attributes[_SGR_ON[val]] = f"\x1b[{val}m"
            elif val in _SGR_OFF:
                for name in _SGR_OFF[val]:
                    self._attributes.pop(name, None)
            elif 30 <= val <= 37 or 90 <= val <= 97:
                self.fg_color = f"\x1b[{val}m"
            elif 40 <= val <= 47 or 100 <= val <= 107:
                self.bg_color = f"\x1b[{val}m"
            elif val == 39:
                self.fg_color = None
            elif val == 49:
                self.bg_color = None
            elif val in (38, 48):
                consumed, color = _extended_color(params, i)
                if color is not None:
                    if val == 38:
                        self.fg_color = color
                    else:
                        self.bg_color = color
                i += consumed
            i += 1

    def _process_hyperlink(self, code: str) -> None:
        body = code[4:]
        if body.endswith("\x07"):
            body = body[:-1]
        elif body.endswith("\x1b\\"):
            body = body[:-2]
        uri = body.split(";", 1)[-1]
        self.hyperlink = code if uri else None

    def clear(self) -> None:
        """Reset all SGR attributes; an open hyperlink is unaffected."""
        self._attributes.clear()
        self.fg_color = None
        self.bg_color = None

    def has_active_codes(self) -> bool:
        return bool(self._attributes) or self.fg_color is not None or self.bg_color is not None

    def get_active_codes(self) -> str:
        """Escape codes that re-establish the tracked state."""
        parts = [self._attributes[name] for name in _ATTRIBUTE_ORDER if name in self._attributes]
        if self.fg_color is not None:
            parts.append(self.fg_color)
        if self.bg_color is not None:
            parts.append(self.bg_color)
        if self.hyperlink is not None:
            parts.append(self.hyperlink)
        return "".join(parts)

    def get_line_end_reset(self) -> str:
        """Codes that close everything still open at the end of a line."""
        reset = RESET if self.has_active_codes() else ""
        if self.hyperlink is not None:
            reset += HYPERLINK_CLOSE
        return reset


def _extended_color(params: list[int], i: int) -> tuple[int, str | None]:
    """Decode ``38;5;N`` / ``38;2;R;G;B`` starting at ``params[i]``."""
    base = params[i]
    if i + 1 >= len(params):
        return (0, None)
    mode = params[i + 1]
    if mode == 5 and i + 2 < len(params):
        return (2, f"\x1b[{base};5;{params[i + 2]}m")
    if mode == 2 and i + 4 < len(params):
        r, g, b = params[i + 2 : i + 5]
        return (4, f"\x1b[{base};2;{r};{g};{b}m")
    return (1, None)


# ---------------------------------------------------------------------------
# Column slicing
# ---------------------------------------------------------------------------


def take_columns(text: str, max_cols: int) -> tuple[str, int]:
    """Return the longest prefix of *text* fitting in *max_cols* columns.

    Escape codes are kept; a wide grapheme that would straddle the limit is
    left out entirely. Returns the prefix and its visible width.
    """
    parts: list[str] = []
    cols = 0
    for is_escape, chunk in split_ansi(text):
        if is_escape:
            parts.append(chunk)
            continue
        for g, width in iter_graphemes(chunk):
            if cols + width > max_cols:
                return ("".join(parts), cols)
            parts.append(g)
            cols += width
    return ("".join(parts), cols)


def slice_columns(text: str, width: int) -> list[str]:
    """Cut *text* into consecutive segments no wider than *width* columns.

    Styling open at a cut is closed at the end of the segment and reopened
    at the start of the next. A wide grapheme never straddles a cut: it
    moves whole to the following segment, leaving the earlier one a column
    short.
    """
    tracker = AnsiCodeTracker()
    segments: list[str] = []
    current: list[str] = []
    used = 0

    for is_escape, chunk in split_ansi(text):
        if is_escape:
            tracker.process(chunk)
            current.append(chunk)
            continue
        for g, g_width in iter_graphemes(chunk):
            if used + g_width > width and used > 0:
                segments.append("".join(current) + tracker.get_line_end_reset())
                current = [tracker.get_active_codes()]
                used = 0
            current.append(g)
            used += g_width

    segments.append("".join(current) + tracker.get_line_end_reset())
    return segments


def pad_to_width(text: str, width: int) -> str:
    """Right-pad *text* with spaces up to *width* visible columns."""
    return text + " " * max(0, width - visible_width(text))
