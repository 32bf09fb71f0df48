"""Immutable book markup tree and sidecar metadata value.

The book HTML is parsed leniently (BeautifulSoup over lxml) and copied into a
small tree of frozen ``Node`` values.  Every component queries that tree with
plain predicates; there is no path-query engine.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Union

from bs4 import BeautifulSoup, CData, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from harvester.analysis.errors import ParseError

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)
_VERSION_RE = re.compile(r"\d+(?:\.\d+)+")

LEGACY_GENERATOR_VERSION: tuple[int, ...] = (0, 0)


@dataclass(frozen=True, slots=True, eq=False)
class Node:
    """Element with a tag name, ordered attributes and ordered children."""

    tag: str
    attrs: tuple[tuple[str, str], ...]
    children: tuple[Union["Node", str], ...]

    def get(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    def has_attr(self, name: str) -> bool:
        return any(key == name for key, _value in self.attrs)

    @property
    def attributes(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self.attrs))

    @property
    def classes(self) -> tuple[str, ...]:
        return tuple((self.get("class") or "").split())

    def has_class(self, token: str) -> bool:
        return token in self.classes

    @property
    def elements(self) -> tuple["Node", ...]:
        """Element children, skipping text."""

        return tuple(child for child in self.children if isinstance(child, Node))

    @property
    def text(self) -> str:
        """Concatenated text of every descendant text node."""

        parts: list[str] = []
        stack: list[Node | str] = [self]
        while stack:
            current = stack.pop()
            if isinstance(current, str):
                parts.append(current)
            else:
                stack.extend(reversed(current.children))
        return "".join(parts)

    @property
    def own_text(self) -> str:
        """Concatenated text of direct text children only."""

        return "".join(child for child in self.children if isinstance(child, str))

    def iter_descendants(self) -> Iterator["Node"]:
        """Yield descendant elements in document order, excluding self."""

        stack = list(reversed(self.elements))
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.elements))

    def select_all(self, predicate: Callable[["Node"], bool]) -> list["Node"]:
        return [node for node in self.iter_descendants() if predicate(node)]

    def select_first(self, predicate: Callable[["Node"], bool]) -> "Node | None":
        return next((node for node in self.iter_descendants() if predicate(node)), None)


NodePredicate = Callable[[Node], bool]


def element(
    tag: str | None = None,
    *,
    classes: tuple[str, ...] = (),
    without_classes: tuple[str, ...] = (),
    attrs: Mapping[str, str | None] | None = None,
) -> NodePredicate:
    """Build a predicate matching tag, class tokens and attribute values.

    An attribute mapped to ``None`` only has to be present.
    """

    required_attrs = dict(attrs or {})

    def _matches(node: Node) -> bool:
        if tag is not None and node.tag != tag:
            return False
        node_classes = node.classes
        if any(token not in node_classes for token in classes):
            return False
        if any(token in node_classes for token in without_classes):
            return False
        for name, expected in required_attrs.items():
            actual = node.get(name)
            if actual is None:
                return False
            if expected is not None and actual != expected:
                return False
        return True

    return _matches


class Document:
    """Parsed book markup with parent and sibling lookups."""

    def __init__(self, root: Node) -> None:
        self._root = root
        self._parents: dict[int, Node] = {}
        for node in (root, *root.iter_descendants()):
            for child in node.elements:
                self._parents[id(child)] = node

        body = root if root.tag == "body" else root.select_first(element("body"))
        if body is None:
            raise ParseError("markup", "Book markup has no body element")
        self._body = body
        self._head = root.select_first(element("head"))

    @property
    def root(self) -> Node:
        return self._root

    @property
    def body(self) -> Node:
        return self._body

    @property
    def head(self) -> Node | None:
        return self._head

    def select_all(self, predicate: NodePredicate) -> list[Node]:
        return [node for node in (self._root, *self._root.iter_descendants()) if predicate(node)]

    def select_first(self, predicate: NodePredicate) -> Node | None:
        return next(
            (node for node in (self._root, *self._root.iter_descendants()) if predicate(node)),
            None,
        )

    def parent_of(self, node: Node) -> Node | None:
        return self._parents.get(id(node))

    def following_siblings(self, node: Node) -> tuple[Node, ...]:
        parent = self.parent_of(node)
        if parent is None:
            return ()
        siblings = parent.elements
        for index, sibling in enumerate(siblings):
            if sibling is node:
                return siblings[index + 1 :]
        return ()

    @property
    def generator_version(self) -> tuple[int, ...]:
        """Version of the authoring tool recorded in ``<meta name="Generator">``.

        Books without the meta element predate version stamping, so they get
        ``LEGACY_GENERATOR_VERSION``.
        """

        if self._head is None:
            return LEGACY_GENERATOR_VERSION
        for meta in self._head.select_all(element("meta")):
            if (meta.get("name") or "").lower() != "generator":
                continue
            match = _VERSION_RE.search(meta.get("content") or "")
            if match:
                return tuple(int(part) for part in match.group(0).split("."))
        return LEGACY_GENERATOR_VERSION


def _convert(tag: Tag) -> Node:
    children: list[Node | str] = []
    for child in tag.children:
        if isinstance(child, Tag):
            children.append(_convert(child))
        elif isinstance(child, _SKIPPED_STRINGS):
            continue
        elif isinstance(child, (CData, NavigableString)):
            children.append(str(child))
    attrs = tuple((str(key), str(value)) for key, value in tag.attrs.items())
    return Node(tag=tag.name.lower(), attrs=attrs, children=tuple(children))


def load_document(markup: str | bytes) -> Document:
    """Parse raw book markup into an immutable ``Document``."""

    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="replace")
    if not markup or not markup.strip():
        raise ParseError("markup", "Book markup is empty")

    try:
        soup = BeautifulSoup(markup, "lxml", multi_valued_attributes=None)
    except Exception as exc:
        raise ParseError("markup", f"Book markup could not be parsed: {exc}") from exc

    top = soup.find(True)
    if top is None:
        raise ParseError("markup", "Book markup contains no elements")
    return Document(_convert(top))


class Metadata:
    """Read-only view of the book's ``meta.json`` sidecar.

    A key is *defined* only when present with a non-null value; callers check
    ``is_defined`` before reading rather than treating absence as empty.
    """

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = dict(data)

    def is_defined(self, key: str) -> bool:
        return self._data.get(key) is not None

    def __getitem__(self, key: str) -> Any:
        value = self._data[key]
        if value is None:
            raise KeyError(key)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(key)
        return default if value is None else value

    def child(self, key: str) -> "Metadata | None":
        value = self._data.get(key)
        if isinstance(value, dict):
            return Metadata(value)
        return None

    def string_list(self, key: str) -> tuple[str, ...]:
        value = self._data.get(key)
        if not isinstance(value, list):
            return ()
        return tuple(item for item in value if isinstance(item, str))

    def keys(self) -> tuple[str, ...]:
        return tuple(self._data)


def load_metadata(sidecar: str | bytes) -> Metadata:
    """Parse sidecar JSON text into a ``Metadata`` value."""

    try:
        data = json.loads(sidecar)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError("meta.json", f"Sidecar is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("meta.json", "Sidecar must contain a JSON object")
    return Metadata(data)
