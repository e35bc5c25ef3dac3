"""Plain fallback pipeline.

Used when the full pipeline cannot run (resources failed to load, or a
render blew up). Walks markdown-it's flat token stream directly, applies
attribute-only styling, and never highlights or draws boxes: code is simply
indented. Deliberately small, so there is little left that can go wrong.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from markdown_it import MarkdownIt
from markdown_it.token import Token

from pi.mdterm.layout import wrap
from pi.mdterm.theme import BASIC_THEME, Theme

_TAG_RE = re.compile(r"<[^>]+>")
_CODE_INDENT = "    "

# commonmark + strikethrough: no optional plugins that could be missing.
_md_parser = MarkdownIt("commonmark").enable("strikethrough")


@dataclass
class _InlineStyle:
    """Tracks which inline spans are open while walking inline tokens."""

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    link_href: str | None = None


class _PlainWriter:
    """Accumulates output lines under a stack of prefixes (quotes, list items)."""

    def __init__(self, width: int) -> None:
        self.width = width
        self.lines: list[str] = []
        self.prefixes: list[str] = []
        self.marker: tuple[int, str] | None = None
        self.gap = False

    def prefix(self, first: bool) -> str:
        if first and self.marker is not None:
            index, marker = self.marker
            return "".join(marker if i == index else p for i, p in enumerate(self.prefixes))
        return "".join(self.prefixes)

    def _start_block(self) -> None:
        if self.gap and self.lines:
            self.lines.append(self.prefix(False).rstrip())
        self.gap = False

    def text(self, text: str) -> None:
        self._start_block()
        plain_prefix = self.prefix(False)
        rows = wrap(text, max(1, self.width - len(plain_prefix))) or [""]
        for i, row in enumerate(rows):
            self.lines.append(self.prefix(i == 0) + row)
            if i == 0:
                self.marker = None

    def raw(self, rows: list[str]) -> None:
        self._start_block()
        for i, row in enumerate(rows):
            self.lines.append(self.prefix(i == 0) + row)
            if i == 0:
                self.marker = None


def _render_inline(tok: Token, theme: Theme) -> str:
    parts: list[str] = []
    ctx = _InlineStyle()

    def styled(text: str) -> str:
        if ctx.bold:
            text = theme.strong(text)
        if ctx.italic:
            text = theme.emphasis(text)
        if ctx.strikethrough:
            text = theme.strikethrough(text)
        if ctx.link_href:
            text = theme.link(text)
        return text

    for child in tok.children or []:
        ct = child.type
        if ct == "text":
            parts.append(styled(child.content))
        elif ct == "softbreak":
            parts.append(" ")
        elif ct == "hardbreak":
            parts.append("\n")
        elif ct == "strong_open":
            ctx.bold = True
        elif ct == "strong_close":
            ctx.bold = False
        elif ct == "em_open":
            ctx.italic = True
        elif ct == "em_close":
            ctx.italic = False
        elif ct == "s_open":
            ctx.strikethrough = True
        elif ct == "s_close":
            ctx.strikethrough = False
        elif ct == "code_inline":
            parts.append(theme.code(child.content))
        elif ct == "link_open":
            href = child.attrs.get("href", "")
            ctx.link_href = str(href) if href else None
        elif ct == "link_close":
            if ctx.link_href:
                parts.append(f" ({ctx.link_href})")
            ctx.link_href = None
        elif ct == "image":
            src = child.attrs.get("src", "")
            parts.append(f"[{child.content or 'image'}]" + (f" ({src})" if src else ""))
        elif ct == "html_inline":
            parts.append(styled(_TAG_RE.sub("", child.content)))
        elif child.content:
            parts.append(styled(child.content))

    return "".join(parts)


def render_plain(markdown: str, width: int = 80, theme: Theme = BASIC_THEME) -> str:
    """Render *markdown* with the plain pipeline."""
    if not markdown or not markdown.strip():
        return ""

    writer = _PlainWriter(max(1, width))
    lists: list[list[int | None]] = []  # [next number] or [None] for bullets
    heading_level = 0

    for tok in _md_parser.parse(markdown):
        t = tok.type

        if t == "heading_open":
            heading_level = int(tok.tag[1:]) if tok.tag[1:].isdigit() else 1
        elif t == "heading_close":
            heading_level = 0
            writer.gap = True
        elif t == "inline":
            text = _render_inline(tok, theme)
            if heading_level:
                text = theme.strong(text if heading_level <= 2 else f"{'#' * heading_level} {text}")
            writer.text(text)
        elif t == "paragraph_close":
            if not tok.hidden:
                writer.gap = True
        elif t in ("fence", "code_block"):
            code = tok.content[:-1] if tok.content.endswith("\n") else tok.content
            writer.raw([_CODE_INDENT + line.expandtabs(4) if line else "" for line in code.split("\n")])
            writer.gap = True
        elif t == "hr":
            writer.raw([theme.hr("-" * max(3, min(writer.width - len(writer.prefix(False)), 40)))])
            writer.gap = True
        elif t == "html_block":
            writer.raw(tok.content.rstrip("\n").split("\n"))
            writer.gap = True
        elif t == "blockquote_open":
            writer.prefixes.append("> ")
        elif t == "blockquote_close" and writer.prefixes:
            writer.prefixes.pop()
            writer.gap = True
        elif t in ("bullet_list_open", "ordered_list_open"):
            start = tok.attrs.get("start", 1) if t == "ordered_list_open" else None
            lists.append([int(start) if start is not None else None])
        elif t in ("bullet_list_close", "ordered_list_close"):
            lists.pop()
            writer.gap = True
        elif t == "list_item_open" and lists:
            counter = lists[-1]
            if counter[0] is None:
                marker = "- "
            else:
                marker = f"{counter[0]}. "
                counter[0] += 1
            writer.prefixes.append(" " * len(marker))
            writer.marker = (len(writer.prefixes) - 1, marker)
        elif t == "list_item_close" and writer.prefixes:
            writer.prefixes.pop()
            writer.marker = None

    return "\n".join(writer.lines)
