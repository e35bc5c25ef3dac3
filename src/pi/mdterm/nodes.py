"""Document tree produced by the parser adapter and consumed by the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

_NO_ATTRS: Mapping[str, Any] = MappingProxyType({})

INLINE_TYPES = frozenset(
    {
        "text",
        "strong",
        "emphasis",
        "strikethrough",
        "inline_code",
        "link",
        "image",
        "softbreak",
        "hardbreak",
        "html_inline",
    }
)


@dataclass(frozen=True)
class Node:
    """One node of the document tree.

    Containers carry ``children``; leaves carry a literal ``value``.
    Type-specific data (heading ``depth``, code ``language``, list
    ``ordered``/``start``/``tight``, link ``href`` ...) lives in ``attrs``.
    """

    type: str
    children: tuple[Node, ...] = ()
    value: str | None = None
    attrs: Mapping[str, Any] = field(default_factory=lambda: _NO_ATTRS)

    def attr(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    @property
    def is_inline(self) -> bool:
        return self.type in INLINE_TYPES

    def walk(self) -> Iterator[Node]:
        """Depth-first, pre-order traversal including this node."""
        yield self
        for child in self.children:
            yield from child.walk()

    def text_content(self) -> str:
        """Concatenated literal text of all leaves below this node."""
        return "".join(n.value for n in self.walk() if n.value is not None and not n.children)


def make_node(type: str, *children: Node, value: str | None = None, **attrs: Any) -> Node:
    """Convenience constructor: ``make_node("heading", text_node, depth=2)``."""
    return Node(
        type=type,
        children=tuple(children),
        value=value,
        attrs=MappingProxyType(dict(attrs)) if attrs else _NO_ATTRS,
    )


def text(value: str) -> Node:
    return make_node("text", value=value)


def literal_document(markdown: str) -> Node:
    """A document holding *markdown* verbatim as a single paragraph."""
    if not markdown:
        return make_node("document")
    return make_node("document", make_node("paragraph", text(markdown)))
