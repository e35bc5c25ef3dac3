"""Pipeline orchestrator -- the public entry point for rendering.

A :class:`MarkdownRenderer` is built once by the host and owns everything
that would otherwise be module state: the parser, the highlighter and its
one-time initialization, and the tree / render caches.
"""

from __future__ import annotations

import logging
from typing import Callable

from pi.mdterm.cache import RenderCache
from pi.mdterm.config import RendererConfig
from pi.mdterm.errors import InitializationError
from pi.mdterm.fallback import render_plain
from pi.mdterm.highlight import Highlighter
from pi.mdterm.nodes import Node
from pi.mdterm.parser import MarkdownParser
from pi.mdterm.renderer import AstRenderer, RenderContext
from pi.mdterm.theme import DEFAULT_THEME, Theme, get_theme

logger = logging.getLogger(__name__)


class MarkdownRenderer:
    """Renders markdown to ANSI text with caching and a plain fallback.

    The async :meth:`render_markdown_to_ansi` never raises for string input:
    if resources cannot be loaded or rendering fails, the plain fallback
    pipeline produces the output instead, and the next call tries the full
    pipeline again.
    """

    def __init__(
        self,
        config: RendererConfig | None = None,
        *,
        highlighter: Highlighter | None = None,
        parser: MarkdownParser | None = None,
        terminal_width: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or RendererConfig()
        self._highlighter = highlighter or Highlighter(
            self.config.code_theme, preload=self.config.preload_languages
        )
        self._parser = parser
        self._walker = AstRenderer(
            self._highlighter,
            terminal_width=terminal_width,
            heading_rules=self.config.heading_rules,
            min_box_width=self.config.min_box_width,
        )
        self._cache = RenderCache(
            self._parse,
            self._render_tree,
            tree_size=self.config.tree_cache_size,
            render_size=self.config.render_cache_size,
        )

    @property
    def cache(self) -> RenderCache:
        return self._cache

    @property
    def ready(self) -> bool:
        return self._parser is not None and self._highlighter.ready

    async def initialize(self) -> None:
        """Create the parser and load highlighting resources (once).

        Raises :class:`InitializationError` on failure; a later call retries.
        """
        if self.ready:
            return
        if self._parser is None:
            try:
                self._parser = MarkdownParser()
            except Exception as exc:
                raise InitializationError("Markdown parser is unavailable") from exc
        await self._highlighter.initialize()

    async def render_markdown_to_ansi(
        self,
        markdown: str,
        width: int | None = None,
        *,
        theme: str | Theme | None = None,
    ) -> str:
        """Render *markdown* for a terminal *width* columns wide."""
        if not markdown:
            return ""
        columns = self._normalize_width(width)
        selected = self._select_theme(theme)

        try:
            await self.initialize()
        except InitializationError:
            logger.warning("Markdown renderer initialization failed; using plain fallback", exc_info=True)
            return self._fallback(markdown, columns)

        return self._render_ready(markdown, columns, selected)

    def render(self, markdown: str, width: int | None = None, *, theme: str | Theme | None = None) -> str:
        """Synchronous variant for callers without an event loop.

        Uses the full pipeline once :meth:`initialize` has completed and the
        plain fallback before that.
        """
        if not markdown:
            return ""
        columns = self._normalize_width(width)
        if not self.ready:
            return self._fallback(markdown, columns)
        return self._render_ready(markdown, columns, self._select_theme(theme))

    def invalidate_for_width(self, width: int) -> int:
        """Forget renders in *width*'s bucket, e.g. after a terminal resize."""
        dropped = self._cache.invalidate_for_width(width)
        logger.debug("Dropped %d cached renders for width %d", dropped, width)
        return dropped

    # -- internals ----------------------------------------------------------

    def _render_ready(self, markdown: str, width: int, theme: Theme) -> str:
        try:
            return self._cache.get(markdown, width, theme)
        except Exception:
            logger.warning("Markdown rendering failed; using plain fallback", exc_info=True)
            return self._fallback(markdown, width)

    def _fallback(self, markdown: str, width: int) -> str:
        try:
            return render_plain(markdown, width)
        except Exception:
            logger.error("Plain markdown fallback failed; returning source text", exc_info=True)
            return markdown

    def _parse(self, markdown: str) -> Node:
        if self._parser is None:
            raise InitializationError("Markdown parser used before initialize()")
        return self._parser.parse(markdown)

    def _render_tree(self, tree: Node, width: int, theme: Theme) -> str:
        context = RenderContext(width=width, theme=theme, interactive=self.config.hyperlinks)
        return self._walker.render(tree, context)

    def _normalize_width(self, width: int | None) -> int:
        if width is None or width <= 0:
            width = self.config.default_width
        return max(1, int(width))

    def _select_theme(self, theme: str | Theme | None) -> Theme:
        try:
            return get_theme(theme if theme is not None else self.config.theme)
        except ValueError:
            logger.warning("Unknown theme %r; using the default theme", theme or self.config.theme)
            return DEFAULT_THEME
