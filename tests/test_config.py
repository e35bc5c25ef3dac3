"""Tests for RendererConfig."""

from __future__ import annotations

from pi.mdterm.config import DEFAULT_PRELOAD_LANGUAGES, RendererConfig


class TestRendererConfig:
    def test_defaults(self) -> None:
        config = RendererConfig()
        assert config.default_width == 80
        assert config.theme == "default"
        assert config.code_theme == "monokai"
        assert config.hyperlinks is False
        assert config.heading_rules is True
        assert config.min_box_width == 40
        assert config.preload_languages == DEFAULT_PRELOAD_LANGUAGES

    def test_from_empty_env(self) -> None:
        assert RendererConfig.from_env({}) == RendererConfig()

    def test_from_env(self) -> None:
        config = RendererConfig.from_env(
            {
                "PI_MARKDOWN_WIDTH": "120",
                "PI_MARKDOWN_THEME": " plain ",
                "PI_MARKDOWN_CODE_THEME": "github-dark",
                "PI_MARKDOWN_HYPERLINKS": "yes",
                "PI_MARKDOWN_HEADING_RULES": "off",
            }
        )
        assert config.default_width == 120
        assert config.theme == "plain"
        assert config.code_theme == "github-dark"
        assert config.hyperlinks is True
        assert config.heading_rules is False

    def test_invalid_values_keep_defaults(self) -> None:
        config = RendererConfig.from_env(
            {
                "PI_MARKDOWN_WIDTH": "wide",
                "PI_MARKDOWN_HYPERLINKS": "maybe",
                "PI_MARKDOWN_THEME": "",
            }
        )
        assert config == RendererConfig()

    def test_non_positive_width_is_ignored(self) -> None:
        assert RendererConfig.from_env({"PI_MARKDOWN_WIDTH": "-5"}).default_width == 80

    def test_reads_process_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("PI_MARKDOWN_WIDTH", "64")
        assert RendererConfig.from_env().default_width == 64
