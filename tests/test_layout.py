"""Tests for the layout engine: wrapping, hanging indents, code boxes, tables."""

from __future__ import annotations

from pi.mdterm.layout import box_code, box_width_for, hang, list_marker, render_table, wrap
from pi.mdterm.theme import bold, dim
from pi.mdterm.utils import RESET, strip_ansi, visible_width


def _plain(lines: list[str]) -> list[str]:
    return [strip_ansi(line) for line in lines]


# ---------------------------------------------------------------------------
# wrap
# ---------------------------------------------------------------------------


class TestWrap:
    def test_short_text_is_one_line(self) -> None:
        assert wrap("hello world", 80) == ["hello world"]

    def test_breaks_at_spaces(self) -> None:
        assert wrap("hello world foo", 11) == ["hello world", "foo"]

    def test_every_line_fits(self) -> None:
        text = "the quick brown fox jumps over the lazy dog " * 10
        for line in wrap(text, 23):
            assert visible_width(line) <= 23

    def test_overlong_word_gets_its_own_line(self) -> None:
        assert wrap("a supercalifragilistic b", 5) == ["a", "supercalifragilistic", "b"]

    def test_indent_and_hanging_indent(self) -> None:
        assert wrap("aaa bbb", 5, indent=2) == ["  aaa", "  bbb"]
        assert wrap("aaa bbb ccc", 9, hanging_indent=2) == ["aaa bbb", "  ccc"]

    def test_embedded_newlines_and_blank_lines(self) -> None:
        assert wrap("a\n\nb", 10) == ["a", "", "b"]

    def test_leading_indentation_is_kept(self) -> None:
        assert wrap("  indented", 20) == ["  indented"]

    def test_styling_survives_a_break(self) -> None:
        lines = wrap(bold("aaa bbb"), 3)
        assert _plain(lines) == ["aaa", "bbb"]
        assert lines[0].endswith(RESET)
        assert lines[1].startswith("\x1b[1m")

    def test_wide_characters_measured_in_columns(self) -> None:
        lines = wrap("世界 世界 世界", 9)
        assert _plain(lines) == ["世界 世界", "世界"]


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


class TestHangingIndent:
    def test_markers(self) -> None:
        assert list_marker(True, 3) == "3."
        assert list_marker(False, 3) == "•"
        assert list_marker(False, 1, "-") == "-"

    def test_continuation_lines_align_with_text(self) -> None:
        assert hang("1.", ["first", "second"]) == ["1. first", "   second"]

    def test_styled_marker_measured_by_visible_width(self) -> None:
        lines = hang("\x1b[36m10.\x1b[39m", ["a", "b"])
        assert lines[1] == "    b"

    def test_blank_body_lines_stay_blank(self) -> None:
        assert hang("•", ["a", "", "b"]) == ["• a", "", "  b"]

    def test_empty_body(self) -> None:
        assert hang("•", []) == ["•"]


# ---------------------------------------------------------------------------
# Code boxes
# ---------------------------------------------------------------------------


class TestBoxWidth:
    def test_uses_requested_width(self) -> None:
        assert box_width_for(60, terminal_width=200) == 60

    def test_never_below_minimum(self) -> None:
        assert box_width_for(10, terminal_width=200) == 40

    def test_limited_by_terminal(self) -> None:
        assert box_width_for(100, terminal_width=50) == 50


class TestBoxCode:
    def test_geometry(self) -> None:
        lines = _plain(box_code("print(1)", 60, "python", terminal_width=200))
        assert len(lines) == 3
        assert lines[0].startswith("┌") and lines[0].endswith("┐")
        assert "python" in lines[0]
        assert lines[1].startswith("│ print(1)") and lines[1].endswith(" │")
        assert lines[2] == "└" + "─" * 58 + "┘"
        assert all(visible_width(line) == 60 for line in lines)

    def test_top_border_without_label(self) -> None:
        lines = box_code("x", 40, terminal_width=200)
        assert lines[0] == "┌" + "─" * 38 + "┐"

    def test_long_label_is_cut_to_fit(self) -> None:
        lines = box_code("x", 40, "a" * 100, terminal_width=200)
        assert visible_width(lines[0]) == 40
        assert lines[0].endswith("┐")

    def test_long_line_is_split_into_inner_width_segments(self) -> None:
        lines = _plain(box_code("a" * 100, 44, terminal_width=200))
        assert len(lines) == 5
        assert all(visible_width(line) == 44 for line in lines)
        assert "".join(line[2:-2] for line in lines[1:-1]).strip() == "a" * 100

    def test_wide_characters_keep_frame_aligned(self) -> None:
        code = "世" * 25
        lines = _plain(box_code(code, 45, terminal_width=200))
        assert all(visible_width(line) == 45 for line in lines)
        content = "".join(line[2:-2] for line in lines[1:-1]).replace(" ", "")
        assert content == code

    def test_blank_lines_are_kept(self) -> None:
        lines = _plain(box_code("a\n\nb", 40, terminal_width=200))
        assert len(lines) == 5
        assert lines[2] == "│" + " " * 38 + "│"

    def test_styled_code_is_padded_by_visible_width(self) -> None:
        lines = box_code(bold("x"), 40, terminal_width=200, border=dim)
        assert all(visible_width(line) == 40 for line in lines)
        assert "\x1b[1mx\x1b[22m" in lines[1]


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class TestRenderTable:
    def test_borders_line_up(self) -> None:
        lines = render_table(["a", "b"], [["1", "2"]], 80)
        assert lines[0] == "┌─────┬─────┐"
        assert lines[1] == "│ a   │ b   │"
        assert lines[2] == "├─────┼─────┤"
        assert lines[-1] == "└─────┴─────┘"
        assert len({visible_width(line) for line in lines}) == 1

    def test_narrow_width_shrinks_columns(self) -> None:
        header = ["name", "description"]
        body = [["alpha", "a rather long description of the first entry"]]
        lines = render_table(header, body, 30)
        assert all(visible_width(line) <= 30 for line in lines)

    def test_empty_table(self) -> None:
        assert render_table([], [], 80) == []
