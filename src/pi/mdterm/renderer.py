"""AST renderer -- walks a document tree and produces ANSI text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Callable

from pi.mdterm.errors import InitializationError
from pi.mdterm.highlight import Highlighter
from pi.mdterm.layout import (
    MIN_BOX_WIDTH,
    box_code,
    hang,
    horizontal_rule,
    list_marker,
    render_table,
    terminal_columns,
    wrap,
)
from pi.mdterm.nodes import Node
from pi.mdterm.theme import DEFAULT_THEME, Theme
from pi.mdterm.utils import HYPERLINK_CLOSE, strip_ansi, visible_width

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True)
class RenderContext:
    """Per-call render settings, copied (never mutated) on descent.

    ``indent_level`` counts the columns already taken by prefixes to the
    left (list markers, quote bars); blocks lay out in what remains.
    """

    width: int
    indent_level: int = 0
    theme: Theme = DEFAULT_THEME
    interactive: bool = False

    @property
    def available(self) -> int:
        return max(1, self.width - self.indent_level)

    def descend(self, **overrides: Any) -> RenderContext:
        return replace(self, **overrides)


BlockRenderer = Callable[[Node, RenderContext], list[str]]


class AstRenderer:
    """Recursive tree-to-ANSI walker.

    Node kinds it does not know are never an error: containers are rendered
    through their children and leaves render as nothing.
    """

    def __init__(
        self,
        highlighter: Highlighter | None = None,
        *,
        terminal_width: Callable[[], int] | None = None,
        heading_rules: bool = True,
        min_box_width: int = MIN_BOX_WIDTH,
    ) -> None:
        self._highlighter = highlighter
        self._terminal_width = terminal_width or terminal_columns
        self._heading_rules = heading_rules
        self._min_box_width = min_box_width
        self._blocks: dict[str, BlockRenderer] = {
            "document": self._render_children,
            "paragraph": self._render_paragraph,
            "heading": self._render_heading,
            "code": self._render_code,
            "blockquote": self._render_blockquote,
            "list": self._render_list,
            "thematic_break": self._render_rule,
            "table": self._render_table,
            "html": self._render_html,
        }

    def render(self, tree: Node, context: RenderContext) -> str:
        return "\n".join(self.render_lines(tree, context))

    # -- block level --------------------------------------------------------

    def render_lines(self, node: Node, ctx: RenderContext) -> list[str]:
        handler = self._blocks.get(node.type)
        if handler is not None:
            return handler(node, ctx)

        if node.is_inline or (node.children and all(child.is_inline for child in node.children)):
            return self._wrap_inline(self.render_inline(node, ctx), ctx)
        if node.children:
            return self._render_children(node, ctx)
        return []

    def _render_children(self, node: Node, ctx: RenderContext, separate: bool = True) -> list[str]:
        lines: list[str] = []
        for child in node.children:
            block = self.render_lines(child, ctx)
            if not block:
                continue
            if lines and separate:
                lines.append("")
            lines.extend(block)
        return lines

    def _wrap_inline(self, text: str, ctx: RenderContext) -> list[str]:
        if not text:
            return []
        return wrap(text, ctx.available)

    def _render_paragraph(self, node: Node, ctx: RenderContext) -> list[str]:
        return self._wrap_inline(self._inline_children(node, ctx), ctx)

    def _render_html(self, node: Node, ctx: RenderContext) -> list[str]:
        return self._wrap_inline(ctx.theme.text((node.value or "").rstrip("\n")), ctx)

    def _render_heading(self, node: Node, ctx: RenderContext) -> list[str]:
        theme = ctx.theme
        depth = max(1, int(node.attr("depth", 1)))
        content = self._inline_children(node, ctx)

        if depth <= 2:
            style = theme.heading1 if depth == 1 else theme.heading2
            lines = self._wrap_inline(style(content), ctx)
            if self._heading_rules and lines:
                rule_width = min(ctx.available, max(visible_width(line) for line in lines))
                if rule_width > 0:
                    lines.append(theme.underline(("═" if depth == 1 else "─") * rule_width))
            return lines

        style = theme.heading3 if depth == 3 else theme.heading4
        return self._wrap_inline(style(f"{'#' * depth} {content}"), ctx)

    def _render_code(self, node: Node, ctx: RenderContext) -> list[str]:
        theme = ctx.theme
        code = (node.value or "").expandtabs(4)
        language = str(node.attr("language", "") or "")

        try:
            if self._highlighter is None:
                raise InitializationError("No highlighter configured")
            highlighted = "\n".join(self._highlighter.highlight(code, language))
        except InitializationError:
            highlighted = "\n".join(theme.code_block(line) for line in code.split("\n"))
        except Exception:
            logger.warning("Highlighting a %r code block failed; rendering it plain", language, exc_info=True)
            highlighted = "\n".join(theme.code_block(line) for line in code.split("\n"))

        return box_code(
            highlighted,
            ctx.available,
            language,
            terminal_width=self._terminal_width(),
            border=theme.border,
            min_width=self._min_box_width,
        )

    def _render_blockquote(self, node: Node, ctx: RenderContext) -> list[str]:
        inner = self._render_children(node, ctx.descend(indent_level=ctx.indent_level + 2))
        if not inner:
            return []
        block = "\n".join(f"> {line}" for line in inner)
        return ctx.theme.blockquote(block).split("\n")

    def _render_list(self, node: Node, ctx: RenderContext) -> list[str]:
        theme = ctx.theme
        ordered = bool(node.attr("ordered", False))
        tight = bool(node.attr("tight", False))
        number = int(node.attr("start", 1))

        lines: list[str] = []
        for item in node.children:
            raw_marker = list_marker(ordered, number, theme.bullet)
            number += 1
            marker = theme.list_number(raw_marker) if ordered else theme.list_bullet(raw_marker)
            item_ctx = ctx.descend(indent_level=ctx.indent_level + visible_width(raw_marker) + 1)

            if item.type == "list_item":
                body = self._render_children(item, item_ctx, separate=not tight)
            else:
                body = self.render_lines(item, item_ctx)

            if lines and not tight:
                lines.append("")
            lines.extend(hang(marker, body))
        return lines

    def _render_rule(self, node: Node, ctx: RenderContext) -> list[str]:
        return [ctx.theme.hr(horizontal_rule(ctx.available))]

    def _render_table(self, node: Node, ctx: RenderContext) -> list[str]:
        header: list[str] = []
        body: list[list[str]] = []
        for row in _table_rows(node):
            cells = [self._inline_children(cell, ctx) for cell in row.children]
            if not header and not body and any(cell.attr("header", False) for cell in row.children):
                header = cells
            else:
                body.append(cells)
        if not header and not body:
            return []
        return render_table(header, body, ctx.available, border=ctx.theme.border, header_style=ctx.theme.strong)

    # -- inline level -------------------------------------------------------

    def _inline_children(self, node: Node, ctx: RenderContext) -> str:
        return "".join(self.render_inline(child, ctx) for child in node.children)

    def render_inline(self, node: Node, ctx: RenderContext) -> str:
        theme = ctx.theme
        t = node.type

        if t == "text":
            return theme.text(node.value or "")
        if t == "softbreak":
            return " "
        if t == "hardbreak":
            return "\n"
        if t == "inline_code":
            return theme.code(node.value or "")
        if t == "html_inline":
            return theme.text(_TAG_RE.sub("", node.value or ""))
        if t == "strong":
            return theme.strong(self._inline_children(node, ctx))
        if t == "emphasis":
            return theme.emphasis(self._inline_children(node, ctx))
        if t == "strikethrough":
            return theme.strikethrough(self._inline_children(node, ctx))
        if t == "link":
            return self._render_link(node, ctx)
        if t == "image":
            alt = node.value or "image"
            src = str(node.attr("src", "") or "")
            label = theme.link(f"[{alt}]")
            return f"{label} {theme.link_url(f'({src})')}" if src else label

        if node.children:
            return self._inline_children(node, ctx)
        return ""

    def _render_link(self, node: Node, ctx: RenderContext) -> str:
        theme = ctx.theme
        href = str(node.attr("href", "") or "")
        label = self._inline_children(node, ctx)
        styled = theme.link(label or href)
        if not href:
            return styled

        if ctx.interactive and not _CONTROL_RE.search(href):
            return f"\x1b]8;;{href}\x07{styled}{HYPERLINK_CLOSE}"

        plain_label = strip_ansi(label)
        if plain_label in (href, f"mailto:{href}") or href in (plain_label, f"mailto:{plain_label}"):
            return styled
        return f"{styled} {theme.link_url(f'({href})')}"


def _table_rows(node: Node) -> list[Node]:
    rows: list[Node] = []
    for child in node.children:
        if child.type == "table_row":
            rows.append(child)
        else:
            rows.extend(_table_rows(child))
    return rows
