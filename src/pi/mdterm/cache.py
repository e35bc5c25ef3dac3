"""Bounded caches for parsed trees and rendered output.

Parsing does not depend on width or theme, so parsed trees are keyed by
content alone. Rendered strings are keyed by content, width bucket and
theme name. Both maps are LRU: every read promotes the entry and overflow
evicts the least recently used one.
"""

from __future__ import annotations

import hashlib
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

from pi.mdterm.nodes import Node
from pi.mdterm.theme import Theme

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

WIDTH_BUCKET_SIZE = 10


def width_bucket(width: int) -> int:
    """Round *width* half-up to the nearest multiple of ten (84 -> 80, 85 -> 90)."""
    return int(math.floor(width / WIDTH_BUCKET_SIZE + 0.5)) * WIDTH_BUCKET_SIZE


def content_key(markdown: str) -> str:
    """Collision-resistant digest of the markdown source."""
    return hashlib.sha256(markdown.encode("utf-8", "surrogatepass")).hexdigest()


class LruCache(Generic[K, V]):
    """Size-bounded mapping with least-recently-used eviction.

    A lock guards every operation; promotion on read mutates the order, so
    even lookups are writes.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        with self._lock:
            try:
                value = self._data[key]
            except KeyError:
                return None
            self._data.move_to_end(key)
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self._max_size:
                self._data.popitem(last=False)

    def discard_where(self, predicate: Callable[[K], bool]) -> int:
        """Drop every entry whose key satisfies *predicate*; return the count."""
        with self._lock:
            doomed = [key for key in self._data if predicate(key)]
            for key in doomed:
                del self._data[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> list[K]:
        """Keys from least to most recently used (does not promote)."""
        with self._lock:
            return list(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


@dataclass
class CacheStats:
    tree_hits: int = 0
    tree_misses: int = 0
    render_hits: int = 0
    render_misses: int = 0


@dataclass(frozen=True)
class _RenderEntry:
    width: int
    output: str


RenderKey = tuple[str, int, str]


class RenderCache:
    """Memoizes ``parse`` and ``render`` around a pair of LRU maps.

    A cached render is only reused for requests at least as wide as the
    width it was produced for, so a hit never returns lines longer than the
    caller asked for; a narrower request within the same bucket re-renders
    and replaces the entry.
    """

    def __init__(
        self,
        parse: Callable[[str], Node],
        render: Callable[[Node, int, Theme], str],
        *,
        tree_size: int = 64,
        render_size: int = 128,
    ) -> None:
        self._parse = parse
        self._render = render
        self._trees: LruCache[str, Node] = LruCache(tree_size)
        self._renders: LruCache[RenderKey, _RenderEntry] = LruCache(render_size)
        self.stats = CacheStats()

    def tree(self, markdown: str, digest: str | None = None) -> Node:
        digest = digest or content_key(markdown)
        tree = self._trees.get(digest)
        if tree is not None:
            self.stats.tree_hits += 1
            return tree
        self.stats.tree_misses += 1
        tree = self._parse(markdown)
        self._trees.put(digest, tree)
        return tree

    def get(self, markdown: str, width: int, theme: Theme) -> str:
        digest = content_key(markdown)
        key: RenderKey = (digest, width_bucket(width), theme.name)

        entry = self._renders.get(key)
        if entry is not None and entry.width <= width:
            self.stats.render_hits += 1
            return entry.output

        self.stats.render_misses += 1
        output = self._render(self.tree(markdown, digest), width, theme)
        self._renders.put(key, _RenderEntry(width, output))
        return output

    def is_cached(self, markdown: str, width: int, theme: Theme) -> bool:
        """Whether ``get(markdown, width, theme)`` would be served from cache."""
        key: RenderKey = (content_key(markdown), width_bucket(width), theme.name)
        entry = self._renders.get(key)
        return entry is not None and entry.width <= width

    def invalidate_for_width(self, width: int) -> int:
        """Drop rendered entries in *width*'s bucket; other buckets stay warm."""
        bucket = width_bucket(width)
        return self._renders.discard_where(lambda key: key[1] == bucket)

    def clear(self) -> None:
        self._trees.clear()
        self._renders.clear()

    @property
    def tree_count(self) -> int:
        return len(self._trees)

    @property
    def render_count(self) -> int:
        return len(self._renders)
