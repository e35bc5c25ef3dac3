"""Configuration for the markdown renderer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

ENV_PREFIX = "PI_MARKDOWN_"

DEFAULT_PRELOAD_LANGUAGES: tuple[str, ...] = (
    "python",
    "javascript",
    "typescript",
    "bash",
    "json",
    "yaml",
    "diff",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class RendererConfig:
    """Renderer settings.

    ``default_width`` is used when the host passes no usable width;
    ``theme`` and ``code_theme`` name a :mod:`pi.mdterm.theme` theme and a
    Pygments style respectively; ``hyperlinks`` turns on OSC 8 links.
    """

    default_width: int = 80
    theme: str = "default"
    code_theme: str = "monokai"
    hyperlinks: bool = False
    heading_rules: bool = True
    min_box_width: int = 40
    tree_cache_size: int = 64
    render_cache_size: int = 128
    preload_languages: tuple[str, ...] = DEFAULT_PRELOAD_LANGUAGES

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RendererConfig:
        """Build a config from ``PI_MARKDOWN_*`` variables.

        Unset or unparseable variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        config = cls()

        width = _parse_int(env.get(f"{ENV_PREFIX}WIDTH"))
        if width is not None and width > 0:
            config.default_width = width

        theme = env.get(f"{ENV_PREFIX}THEME")
        if theme:
            config.theme = theme.strip()

        code_theme = env.get(f"{ENV_PREFIX}CODE_THEME")
        if code_theme:
            config.code_theme = code_theme.strip()

        hyperlinks = _parse_bool(env.get(f"{ENV_PREFIX}HYPERLINKS"))
        if hyperlinks is not None:
            config.hyperlinks = hyperlinks

        heading_rules = _parse_bool(env.get(f"{ENV_PREFIX}HEADING_RULES"))
        if heading_rules is not None:
            config.heading_rules = heading_rules

        return config


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None
