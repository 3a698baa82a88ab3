"""Read-only, queryable view over a parsed HTML document.

Markup is parsed with BeautifulSoup on the html5lib tree builder, so the
tree matches what a browser builds: implied end tags, misnested headings
and stray end tags are all resolved the HTML5 way. Selector matching is
delegated to soupsieve. The checks only ever read from this view.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping

import soupsieve as sv
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import PreformattedString
from bs4.formatter import HTMLFormatter

from .errors import SelectorError

PARSER = "html5lib"
_RAW_TEXT_TAGS = frozenset({"script", "style", "template"})

# Serialize void elements as <img>, not <img/>.
_SNIPPET_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def _compile(selector: str) -> sv.SoupSieve:
    try:
        return sv.compile(selector)
    except sv.SelectorSyntaxError as exc:
        raise SelectorError(f"invalid selector {selector!r}: {exc}") from exc


def _attr_text(value: object) -> str:
    if isinstance(value, str):
        return value
    return " ".join(str(v) for v in value)  # type: ignore[union-attr]


@dataclass(frozen=True, eq=False)
class Node:
    """One element of the parsed tree.

    Two Node views compare equal when they wrap the same element.
    """

    element: Tag = field(repr=False)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Node) and other.element is self.element

    def __hash__(self) -> int:
        return id(self.element)

    def __repr__(self) -> str:
        return f"Node({self.tag!r})"

    @property
    def tag(self) -> str:
        return self.element.name

    @property
    def attrs(self) -> Mapping[str, str]:
        return MappingProxyType({k: _attr_text(v) for k, v in self.element.attrs.items()})

    def get(self, name: str) -> str | None:
        """Attribute value, or None when the attribute is absent."""
        value = self.element.attrs.get(name.lower())
        return None if value is None else _attr_text(value)

    def has(self, name: str) -> bool:
        return name.lower() in self.element.attrs

    @property
    def parent(self) -> "Node | None":
        parent = self.element.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return Node(parent)

    @property
    def element_children(self) -> tuple["Node", ...]:
        return tuple(Node(c) for c in self.element.children if isinstance(c, Tag))

    def descendants(self) -> Iterator["Node"]:
        for item in self.element.descendants:
            if isinstance(item, Tag):
                yield Node(item)

    def ancestors(self) -> Iterator["Node"]:
        for item in self.element.parents:
            if isinstance(item, BeautifulSoup):
                return
            yield Node(item)

    def text(self) -> str:
        """Descendant text in document order, script and style excluded."""
        parts: list[str] = []
        for item in self.element.descendants:
            if not isinstance(item, NavigableString) or isinstance(item, PreformattedString):
                continue
            if item.parent is not None and item.parent.name in _RAW_TEXT_TAGS:
                continue
            parts.append(str(item))
        return "".join(parts)

    def select(self, selector: str) -> list["Node"]:
        return [Node(el) for el in _compile(selector).select(self.element)]

    def select_one(self, selector: str) -> "Node | None":
        el = _compile(selector).select_one(self.element)
        return Node(el) if el is not None else None

    def closest(self, selector: str) -> "Node | None":
        el = _compile(selector).closest(self.element)
        return Node(el) if el is not None else None

    def outer_html(self) -> str:
        return self.element.decode(formatter=_SNIPPET_FORMATTER)

    def snippet(self, max_length: int = 200) -> str:
        return self.outer_html()[: max(0, int(max_length))]

    def locator(self) -> str:
        """CSS path from the outermost element using :nth-of-type steps."""
        steps: list[str] = []
        el: Tag = self.element
        while not isinstance(el, BeautifulSoup):
            parent = el.parent
            if parent is None:
                steps.append(el.name)
                break
            same = [c for c in parent.children if isinstance(c, Tag) and c.name == el.name]
            if len(same) == 1:
                steps.append(el.name)
            else:
                index = next(i for i, c in enumerate(same) if c is el)
                steps.append(f"{el.name}:nth-of-type({index + 1})")
            el = parent
        return " > ".join(reversed(steps))


@dataclass(frozen=True, eq=False)
class Document:
    root: Node

    @property
    def html(self) -> Node | None:
        return self.root.select_one("html")

    @property
    def title(self) -> str:
        # Text of every <title>, the SVG ones included, joined in document order.
        return "".join(t.text() for t in self.select("title")).strip()

    @property
    def lang(self) -> str | None:
        el = self.html
        return el.get("lang") if el is not None else None

    def select(self, selector: str) -> list[Node]:
        return self.root.select(selector)

    def select_one(self, selector: str) -> Node | None:
        return self.root.select_one(selector)


def parse_document(markup: str | None) -> Document:
    soup = BeautifulSoup(str(markup or ""), PARSER, multi_valued_attributes=None)
    return Document(root=Node(soup))
