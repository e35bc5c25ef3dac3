"""Tests for the LRU maps and the render cache."""

from __future__ import annotations

import pytest

from pi.mdterm.cache import LruCache, RenderCache, content_key, width_bucket
from pi.mdterm.nodes import Node, make_node
from pi.mdterm.theme import BASIC_THEME, DEFAULT_THEME, Theme


class _Recorder:
    """Fake parse/render pair that records every call."""

    def __init__(self) -> None:
        self.parsed: list[str] = []
        self.rendered: list[tuple[str, int, str]] = []

    def parse(self, markdown: str) -> Node:
        self.parsed.append(markdown)
        return make_node("document", value=markdown)

    def render(self, tree: Node, width: int, theme: Theme) -> str:
        self.rendered.append((tree.value or "", width, theme.name))
        return f"{tree.value}@{width}/{theme.name}"


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def cache(recorder: _Recorder) -> RenderCache:
    return RenderCache(recorder.parse, recorder.render, tree_size=4, render_size=4)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestKeys:
    @pytest.mark.parametrize(
        "width, bucket",
        [(80, 80), (84, 80), (85, 90), (89, 90), (120, 120), (4, 0), (5, 10)],
    )
    def test_width_bucket_rounds_half_up(self, width: int, bucket: int) -> None:
        assert width_bucket(width) == bucket

    def test_content_key_is_stable(self) -> None:
        assert content_key("# a") == content_key("# a")
        assert content_key("# a") != content_key("# b")
        assert len(content_key("")) == 64


# ---------------------------------------------------------------------------
# LruCache
# ---------------------------------------------------------------------------


class TestLruCache:
    def test_evicts_least_recently_used(self) -> None:
        lru: LruCache[str, int] = LruCache(2)
        lru.put("a", 1)
        lru.put("b", 2)
        lru.put("c", 3)
        assert "a" not in lru
        assert lru.keys() == ["b", "c"]

    def test_get_promotes(self) -> None:
        lru: LruCache[str, int] = LruCache(2)
        lru.put("a", 1)
        lru.put("b", 2)
        assert lru.get("a") == 1
        lru.put("c", 3)
        assert lru.keys() == ["a", "c"]

    def test_put_existing_key_promotes(self) -> None:
        lru: LruCache[str, int] = LruCache(2)
        lru.put("a", 1)
        lru.put("b", 2)
        lru.put("a", 10)
        lru.put("c", 3)
        assert lru.get("a") == 10
        assert "b" not in lru

    def test_missing_key(self) -> None:
        assert LruCache(1).get("nope") is None

    def test_discard_where(self) -> None:
        lru: LruCache[int, str] = LruCache(5)
        for i in range(5):
            lru.put(i, str(i))
        assert lru.discard_where(lambda key: key % 2 == 0) == 3
        assert lru.keys() == [1, 3]

    def test_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            LruCache(0)


# ---------------------------------------------------------------------------
# RenderCache
# ---------------------------------------------------------------------------


class TestRenderCache:
    def test_second_call_is_served_from_cache(self, cache: RenderCache, recorder: _Recorder) -> None:
        first = cache.get("hello", 80, DEFAULT_THEME)
        second = cache.get("hello", 80, DEFAULT_THEME)
        assert first == second
        assert len(recorder.rendered) == 1
        assert cache.stats.render_hits == 1
        assert cache.is_cached("hello", 80, DEFAULT_THEME)

    def test_tree_is_shared_across_widths(self, cache: RenderCache, recorder: _Recorder) -> None:
        cache.get("hello", 40, DEFAULT_THEME)
        cache.get("hello", 120, DEFAULT_THEME)
        assert recorder.parsed == ["hello"]
        assert len(recorder.rendered) == 2
        assert cache.stats.tree_hits == 1

    def test_wider_request_in_bucket_reuses_entry(self, cache: RenderCache, recorder: _Recorder) -> None:
        cache.get("hello", 80, DEFAULT_THEME)
        assert cache.get("hello", 83, DEFAULT_THEME) == "hello@80/default"
        assert len(recorder.rendered) == 1

    def test_narrower_request_in_bucket_rerenders(self, cache: RenderCache, recorder: _Recorder) -> None:
        cache.get("hello", 83, DEFAULT_THEME)
        assert cache.get("hello", 78, DEFAULT_THEME) == "hello@78/default"
        assert len(recorder.rendered) == 2
        assert cache.render_count == 1

    def test_themes_are_cached_separately(self, cache: RenderCache, recorder: _Recorder) -> None:
        cache.get("hello", 80, DEFAULT_THEME)
        assert cache.get("hello", 80, BASIC_THEME) == "hello@80/basic"
        assert cache.render_count == 2

    def test_invalidate_for_width_drops_only_that_bucket(self, cache: RenderCache) -> None:
        cache.get("hello", 80, DEFAULT_THEME)
        cache.get("hello", 120, DEFAULT_THEME)
        assert cache.invalidate_for_width(82) == 1
        assert not cache.is_cached("hello", 80, DEFAULT_THEME)
        assert cache.is_cached("hello", 120, DEFAULT_THEME)
        assert cache.tree_count == 1

    def test_render_map_is_bounded(self, cache: RenderCache) -> None:
        for i in range(10):
            cache.get(f"doc {i}", 80, DEFAULT_THEME)
        assert cache.render_count == 4
        assert cache.tree_count == 4
        assert cache.is_cached("doc 9", 80, DEFAULT_THEME)
        assert not cache.is_cached("doc 0", 80, DEFAULT_THEME)

    def test_clear(self, cache: RenderCache) -> None:
        cache.get("hello", 80, DEFAULT_THEME)
        cache.clear()
        assert cache.render_count == 0
        assert cache.tree_count == 0

    def test_parse_errors_are_not_cached(self, recorder: _Recorder) -> None:
        calls = []

        def failing_parse(markdown: str) -> Node:
            calls.append(markdown)
            raise RuntimeError("boom")

        cache = RenderCache(failing_parse, recorder.render)
        for _ in range(2):
            with pytest.raises(RuntimeError):
                cache.get("hello", 80, DEFAULT_THEME)
        assert len(calls) == 2
        assert cache.render_count == 0
