"""Markdown parser adapter -- markdown-it-py tokens to a :class:`Node` tree.

markdown-it-py produces a flat token stream with an open/close tag model
(``heading_open`` / ``heading_close``), inline content in ``token.children``
of ``inline`` tokens, ``fence`` tokens carrying the info string in
``token.info``, and hidden ``paragraph`` tokens inside tight lists. This
module folds that stream into the nested, immutable tree the renderer
walks, so no other module needs to know about markdown-it's token shapes.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from pi.mdterm.nodes import Node, literal_document, make_node

logger = logging.getLogger(__name__)

# markdown-it container names (without ``_open``) -> node types
_CONTAINER_TYPES = {
    "paragraph": "paragraph",
    "heading": "heading",
    "blockquote": "blockquote",
    "bullet_list": "list",
    "ordered_list": "list",
    "list_item": "list_item",
    "table": "table",
    "thead": "table_head",
    "tbody": "table_body",
    "tr": "table_row",
    "th": "table_cell",
    "td": "table_cell",
    "strong": "strong",
    "em": "emphasis",
    "s": "strikethrough",
    "link": "link",
}

# markdown-it self-closing token types -> node types
_LEAF_TYPES = {
    "text": "text",
    "code_inline": "inline_code",
    "softbreak": "softbreak",
    "hardbreak": "hardbreak",
    "hr": "thematic_break",
    "html_block": "html",
    "html_inline": "html_inline",
    "fence": "code",
    "code_block": "code",
    "image": "image",
}


class MarkdownParser:
    """Parses markdown strings into document trees. Never raises."""

    def __init__(self, md: MarkdownIt | None = None) -> None:
        # "gfm-like" gives tables, strikethrough and linkify.
        self._md = md if md is not None else MarkdownIt("gfm-like")

    def parse(self, markdown: str) -> Node:
        try:
            tokens = self._md.parse(markdown)
            children = _build_nodes(tokens)
        except Exception:
            logger.warning("Markdown parsing failed; rendering input as literal text", exc_info=True)
            return literal_document(markdown)
        return make_node("document", *children)


def _build_nodes(tokens: Sequence[Token]) -> list[Node]:
    """Fold a flat open/close token sequence into sibling nodes."""
    root: list[Node] = []
    stack: list[tuple[Token, list[Node]]] = []

    def siblings() -> list[Node]:
        return stack[-1][1] if stack else root

    for tok in tokens:
        if tok.nesting == 1:
            stack.append((tok, []))
        elif tok.nesting == -1:
            if not stack:
                # Stray close without an open; nothing to attach it to.
                continue
            open_tok, children = stack.pop()
            siblings().append(_container(open_tok, children))
        elif tok.type == "inline":
            siblings().extend(_build_nodes(tok.children or []))
        elif tok.type == "text" and not tok.content:
            continue
        else:
            siblings().append(_leaf(tok))

    # Unclosed containers are closed at the end of input.
    while stack:
        open_tok, children = stack.pop()
        siblings().append(_container(open_tok, children))

    return root


def _container(tok: Token, children: list[Node]) -> Node:
    base = tok.type[: -len("_open")] if tok.type.endswith("_open") else tok.type
    node_type = _CONTAINER_TYPES.get(base, base)
    attrs: dict[str, Any] = {}

    if base == "heading":
        level = tok.tag[1:] if tok.tag.startswith("h") else ""
        attrs["depth"] = int(level) if level.isdigit() else 1
    elif base == "paragraph":
        attrs["hidden"] = bool(tok.hidden)
    elif base == "bullet_list":
        attrs["ordered"] = False
    elif base == "ordered_list":
        attrs["ordered"] = True
        attrs["start"] = _int_attr(tok.attrs.get("start"), 1)
    elif base == "link":
        attrs["href"] = str(tok.attrs.get("href") or "")
        if tok.attrs.get("title"):
            attrs["title"] = str(tok.attrs["title"])
    elif base in ("th", "td"):
        attrs["header"] = base == "th"
        style = str(tok.attrs.get("style") or "")
        if style.startswith("text-align:"):
            attrs["align"] = style.split(":", 1)[1].strip()

    if node_type == "list":
        attrs["tight"] = _is_tight(children)

    return make_node(node_type, *children, **attrs)


def _leaf(tok: Token) -> Node:
    node_type = _LEAF_TYPES.get(tok.type, tok.type)

    if node_type == "code":
        info = tok.info.strip() if tok.info else ""
        code = tok.content
        if code.endswith("\n"):
            code = code[:-1]
        return make_node("code", value=code, language=info.split()[0] if info else "")

    if node_type == "image":
        alt = tok.content or "".join(child.content for child in tok.children or [])
        return make_node("image", value=alt, src=str(tok.attrs.get("src") or ""))

    return make_node(node_type, value=tok.content)


def _is_tight(items: list[Node]) -> bool:
    """A list is tight when markdown-it hid all of its item paragraphs."""
    for item in items:
        for child in item.children:
            if child.type == "paragraph" and not child.attr("hidden", False):
                return False
    return True


def _int_attr(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


_default_parser: MarkdownParser | None = None


def parse(markdown: str) -> Node:
    """Parse with a shared default :class:`MarkdownParser`."""
    global _default_parser
    if _default_parser is None:
        _default_parser = MarkdownParser()
    return _default_parser.parse(markdown)
