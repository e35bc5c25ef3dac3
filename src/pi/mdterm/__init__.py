"""pi-mdterm: Markdown to ANSI terminal rendering."""

from pi.mdterm.cache import CacheStats, LruCache, RenderCache, content_key, width_bucket
from pi.mdterm.config import RendererConfig
from pi.mdterm.errors import HighlightError, InitializationError, MarkdownRenderError
from pi.mdterm.fallback import render_plain
from pi.mdterm.highlight import Highlighter, Token, normalize_token, style_token
from pi.mdterm.layout import box_code, render_table, terminal_columns, wrap
from pi.mdterm.nodes import Node, make_node
from pi.mdterm.parser import MarkdownParser, parse
from pi.mdterm.pipeline import MarkdownRenderer
from pi.mdterm.renderer import AstRenderer, RenderContext
from pi.mdterm.theme import BASIC_THEME, DEFAULT_THEME, PLAIN_THEME, THEMES, Theme, get_theme
from pi.mdterm.utils import strip_ansi, visible_width

__all__ = [
    "AstRenderer",
    "BASIC_THEME",
    "CacheStats",
    "DEFAULT_THEME",
    "HighlightError",
    "Highlighter",
    "InitializationError",
    "LruCache",
    "MarkdownParser",
    "MarkdownRenderError",
    "MarkdownRenderer",
    "Node",
    "PLAIN_THEME",
    "RenderCache",
    "RenderContext",
    "RendererConfig",
    "THEMES",
    "Theme",
    "Token",
    "box_code",
    "content_key",
    "get_theme",
    "make_node",
    "normalize_token",
    "parse",
    "render_plain",
    "render_table",
    "strip_ansi",
    "style_token",
    "terminal_columns",
    "visible_width",
    "width_bucket",
    "wrap",
]
