"""Exceptions raised inside the rendering pipeline.

None of these escape :meth:`MarkdownRenderer.render_markdown_to_ansi`; they
mark the seams where a component degrades instead of failing the render.
"""

from __future__ import annotations


class MarkdownRenderError(Exception):
    """Base class for rendering pipeline failures."""


class InitializationError(MarkdownRenderError):
    """Parser or highlighter resources could not be acquired."""


class HighlightError(MarkdownRenderError):
    """A code fence could not be highlighted (unknown language, lexer error)."""

    def __init__(self, language: str, message: str | None = None) -> None:
        self.language = language
        super().__init__(message or f"No highlighter available for language: {language!r}")
