"""Syntax highlighting for code fences, backed by Pygments.

Two halves:

* Token normalization -- :func:`normalize_token` is the single place that
  understands the different shapes a highlighting engine may hand back
  (a direct ``color``, a nested ``style`` object, or an inline CSS string)
  and turns them into a plain :class:`Token`. :func:`style_token` turns a
  :class:`Token` into ANSI.
* :class:`Highlighter` -- owns the Pygments style and lexer cache. Loading
  them is a one-time async step (:meth:`Highlighter.initialize`) that every
  concurrent caller shares.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.style import StyleMeta
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from pi.mdterm.errors import HighlightError, InitializationError

logger = logging.getLogger(__name__)

FONT_ITALIC = 1
FONT_BOLD = 2
FONT_UNDERLINE = 4

_HEX_RE = re.compile(r"#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")
_CSS_COLOR_RE = re.compile(r"(?:^|;)\s*color\s*:\s*([^;]+)", re.IGNORECASE)


@dataclass(frozen=True)
class Token:
    """One highlighted run of text on a single line."""

    content: str
    color: str | None = None  # "#rrggbb"
    font_style: int = 0


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _field(raw: Any, *names: str) -> Any:
    for name in names:
        value = raw.get(name) if isinstance(raw, Mapping) else getattr(raw, name, None)
        if value is not None:
            return value
    return None


def parse_hex_color(value: Any) -> tuple[int, int, int] | None:
    """Parse ``#rgb``, ``#rrggbb``, ``#rrggbbaa`` (``#`` optional)."""
    if not isinstance(value, str):
        return None
    match = _HEX_RE.fullmatch(value.strip())
    if match is None:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def _canonical(value: Any) -> str | None:
    rgb = parse_hex_color(value)
    if rgb is None:
        return None
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def resolve_color(raw: Any) -> str | None:
    """Pick a token colour: direct field, then nested style, then inline CSS."""
    color = _canonical(_field(raw, "color"))
    if color is not None:
        return color

    style = _field(raw, "style")
    if style is not None and not isinstance(style, str):
        color = _canonical(_field(style, "color"))
        if color is not None:
            return color

    css = _field(raw, "html_style", "htmlStyle")
    if css is None and isinstance(style, str):
        css = style
    if isinstance(css, str):
        match = _CSS_COLOR_RE.search(css)
        if match is not None:
            return _canonical(match.group(1))
    return None


def normalize_token(raw: Any) -> Token:
    """Coerce a token-like mapping or object into a :class:`Token`."""
    if isinstance(raw, Token):
        return raw
    content = _field(raw, "content", "text")
    font_style = _field(raw, "font_style", "fontStyle")
    try:
        mask = int(font_style) & (FONT_ITALIC | FONT_BOLD | FONT_UNDERLINE) if font_style is not None else 0
    except (TypeError, ValueError):
        mask = 0
    return Token(content="" if content is None else str(content), color=resolve_color(raw), font_style=mask)


def style_token(token: Token) -> str:
    """Wrap a token's content in the SGR codes for its colour and font style."""
    if not token.content:
        return ""
    on: list[str] = []
    off: list[str] = []
    rgb = parse_hex_color(token.color)
    if rgb is not None:
        on.append("38;2;{};{};{}".format(*rgb))
        off.append("39")
    if token.font_style & FONT_ITALIC:
        on.append("3")
        off.append("23")
    if token.font_style & FONT_BOLD:
        on.append("1")
        off.append("22")
    if token.font_style & FONT_UNDERLINE:
        on.append("4")
        off.append("24")
    if not on:
        return token.content
    # one off code per attribute
    closing = "".join(f"\x1b[{code}m" for code in reversed(off))
    return f"\x1b[{';'.join(on)}m{token.content}{closing}"


# ---------------------------------------------------------------------------
# Highlighter
# ---------------------------------------------------------------------------


def _make_lexer(language: str) -> Lexer:
    # Keep the source exactly as given so line counts line up.
    return get_lexer_by_name(language, stripnl=False, ensurenl=False)


class Highlighter:
    """Pygments-backed highlighter with one-time async resource loading."""

    def __init__(self, style: str = "monokai", *, preload: Iterable[str] = ()) -> None:
        self._style_name = style
        self._preload = tuple(preload)
        self._style: StyleMeta | None = None
        self._lexers: dict[str, Lexer] = {}
        self._init_task: asyncio.Task[None] | None = None

    @property
    def ready(self) -> bool:
        return self._style is not None

    async def initialize(self) -> None:
        """Load the style and preload lexers. Safe to call repeatedly.

        Callers arriving while a load is in flight await the same task. If
        the load fails, :class:`InitializationError` is raised to every
        waiter and the next call starts a fresh attempt.
        """
        if self._style is not None:
            return

        task = self._init_task
        if task is None:
            task = asyncio.ensure_future(self._load())
            self._init_task = task

        try:
            # shield: a cancelled waiter must not cancel the shared load
            await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._init_task is task:
                self._init_task = None
            raise InitializationError(f"Could not load highlighting resources for style {self._style_name!r}") from exc

    async def _load(self) -> None:
        style, lexers = await asyncio.to_thread(self._load_resources)
        self._lexers.update(lexers)
        self._style = style
        logger.debug("Highlighter ready: style=%s, %d lexers preloaded", self._style_name, len(lexers))

    def _load_resources(self) -> tuple[StyleMeta, dict[str, Lexer]]:
        style = get_style_by_name(self._style_name)
        lexers: dict[str, Lexer] = {}
        for language in self._preload:
            try:
                lexers[language.lower()] = _make_lexer(language)
            except ClassNotFound:
                logger.debug("No lexer to preload for %r", language)
        return style, lexers

    def _lexer_for(self, language: str) -> Lexer:
        key = language.strip().lower()
        lexer = self._lexers.get(key)
        if lexer is None:
            try:
                lexer = _make_lexer(key)
            except ClassNotFound:
                raise HighlightError(language) from None
            self._lexers[key] = lexer
        return lexer

    def tokenize(self, code: str, language: str) -> list[list[Token]]:
        """Split *code* into per-line token lists.

        Raises :class:`InitializationError` before :meth:`initialize` has
        completed and :class:`HighlightError` for unknown languages.
        """
        style = self._style
        if style is None:
            raise InitializationError("Highlighter used before initialize() completed")
        lexer = self._lexer_for(language)

        lines: list[list[Token]] = [[]]
        for ttype, value in lexer.get_tokens(code):
            token_style = style.style_for_token(ttype)
            mask = (
                (FONT_ITALIC if token_style.get("italic") else 0)
                | (FONT_BOLD if token_style.get("bold") else 0)
                | (FONT_UNDERLINE if token_style.get("underline") else 0)
            )
            for index, part in enumerate(value.split("\n")):
                if index:
                    lines.append([])
                if part:
                    lines[-1].append(
                        normalize_token({"content": part, "color": token_style.get("color"), "font_style": mask})
                    )

        expected = code.count("\n") + 1
        del lines[expected:]
        while len(lines) < expected:
            lines.append([])
        return lines

    def highlight(self, code: str, language: str) -> list[str]:
        """Return *code* as styled lines.

        Unknown or empty languages give back the source lines unstyled.
        """
        if not language:
            return code.split("\n")
        try:
            token_lines = self.tokenize(code, language)
        except HighlightError:
            logger.debug("No lexer for %r; leaving code block unhighlighted", language)
            return code.split("\n")
        return ["".join(style_token(token) for token in line) for line in token_lines]
