"""Themes: named style functions applied while walking the document tree.

Every style function wraps text in an SGR "on" code and the matching "off"
code (bold 1/22, italic 3/23, foreground 3x/39 ...). If the wrapped text
already contains the "off" code, or a full reset, the "on" code is emitted
again right after it, so an inner style closing never switches off the
outer one and nothing leaks past the end of the wrapped span.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from pi.mdterm.utils import RESET

StyleFn = Callable[[str], str]


def identity(text: str) -> str:
    return text


def sgr(on: str, off: str) -> StyleFn:
    """Build a style function from SGR parameter strings, e.g. ``sgr("1", "22")``."""
    on_code = f"\x1b[{on}m"
    off_code = f"\x1b[{off}m"

    def style(text: str) -> str:
        if not text:
            return ""
        body = text.replace(off_code, off_code + on_code).replace(RESET, RESET + on_code)
        return f"{on_code}{body}{off_code}"

    return style


def compose(*styles: StyleFn) -> StyleFn:
    """``compose(a, b)(text) == a(b(text))``."""

    def style(text: str) -> str:
        for fn in reversed(styles):
            text = fn(text)
        return text

    return style


bold = sgr("1", "22")
dim = sgr("2", "22")
italic = sgr("3", "23")
underline = sgr("4", "24")
strikethrough = sgr("9", "29")


def fg(code: int) -> StyleFn:
    """Foreground colour from a basic/bright SGR code (30-37, 90-97)."""
    return sgr(str(code), "39")


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Theme:
    """Immutable set of style functions.

    ``name`` identifies the theme in render-cache keys, so two themes that
    style differently must not share a name. ``underline`` styles the rule
    drawn under level 1-2 headings; ``border`` styles code-box and table
    frames; ``code_block`` is used for code when no highlighting is
    available.
    """

    name: str
    bullet: str = "•"
    text: StyleFn = identity
    strong: StyleFn = identity
    emphasis: StyleFn = identity
    code: StyleFn = identity
    strikethrough: StyleFn = identity
    heading1: StyleFn = identity
    heading2: StyleFn = identity
    heading3: StyleFn = identity
    heading4: StyleFn = identity
    list_bullet: StyleFn = identity
    list_number: StyleFn = identity
    link: StyleFn = identity
    link_url: StyleFn = identity
    underline: StyleFn = identity
    blockquote: StyleFn = identity
    code_block: StyleFn = identity
    border: StyleFn = identity
    hr: StyleFn = identity


_magenta = fg(35)
_cyan = fg(36)

DEFAULT_THEME = Theme(
    name="default",
    strong=bold,
    emphasis=italic,
    code=fg(33),
    strikethrough=compose(dim, strikethrough),
    heading1=compose(_magenta, bold, underline),
    heading2=compose(_magenta, bold),
    heading3=bold,
    heading4=bold,
    list_bullet=_cyan,
    list_number=_cyan,
    link=compose(fg(34), underline),
    link_url=dim,
    underline=compose(_magenta, dim),
    blockquote=compose(fg(90), italic),
    border=dim,
    hr=dim,
)

# Attributes only, no colour. Used by the plain fallback pipeline.
BASIC_THEME = Theme(
    name="basic",
    strong=bold,
    emphasis=italic,
    strikethrough=strikethrough,
    heading1=compose(bold, underline),
    heading2=bold,
    heading3=bold,
    heading4=bold,
    link=underline,
)

PLAIN_THEME = Theme(name="plain", bullet="-")

THEMES: dict[str, Theme] = {theme.name: theme for theme in (DEFAULT_THEME, BASIC_THEME, PLAIN_THEME)}


def get_theme(theme: str | Theme) -> Theme:
    """Resolve a theme name (or pass a :class:`Theme` through)."""
    if isinstance(theme, Theme):
        return theme
    try:
        return THEMES[theme]
    except KeyError:
        raise ValueError(f"Unknown theme: {theme!r}") from None
