# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Markup reader

Turns a markup string into a small, library independent node tree
(Element / MarkupText / MarkupComment). The tokenizer is a capability injected
into the DocumentBuilder once; the default is BeautifulSoup with the
standard library `html.parser` backend, which keeps unknown tags as elements,
lowercases tag and attribute names and never raises on malformed input.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Union

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

logger = logging.getLogger(__name__)


@dataclass
class MarkupText:
    value: str


@dataclass
class MarkupComment:
    value: str


@dataclass
class Element:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["MarkupNode"] = field(default_factory=list)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def has(self, name: str) -> bool:
        return name in self.attributes

    @property
    def classes(self) -> List[str]:
        return (self.attributes.get("class") or "").split()

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def element_children(self) -> List["Element"]:
        return [child for child in self.children if isinstance(child, Element)]

    def append(self, node: "MarkupNode") -> "MarkupNode":
        self.children.append(node)
        return node


MarkupNode = Union[Element, MarkupText, MarkupComment]


def is_blank(node: MarkupNode) -> bool:
    """True for text nodes holding only markup whitespace, and for comments"""
    if isinstance(node, MarkupComment):
        return True
    return isinstance(node, MarkupText) and not node.value.strip(" \t\n\r\f")


class MarkupReader(Protocol):
    def parse(self, markup: str) -> List[MarkupNode]: ...


class SoupMarkupReader:
    """MarkupReader backed by BeautifulSoup"""

    def __init__(self, features: str = "html.parser"):
        self.features = features

    def parse(self, markup: str) -> List[MarkupNode]:
        """
        Parse markup into top level nodes

        Args:
            markup: Markup string, possibly malformed

        Returns:
            The top level nodes in document order
        """
        soup = BeautifulSoup(markup, self.features, multi_valued_attributes=None)
        nodes = self._convert_children(soup)
        logger.debug(f"Parsed {len(markup)} characters into {len(nodes)} top level nodes")
        return nodes

    def _convert_children(self, tag: Tag) -> List[MarkupNode]:
        nodes = []
        for child in tag.children:
            node = self._convert(child)
            if node is not None:
                nodes.append(node)
        return nodes

    def _convert(self, node) -> Optional[MarkupNode]:
        if isinstance(node, Comment):
            return MarkupComment(str(node))
        if isinstance(node, (Doctype, Declaration, ProcessingInstruction)):
            return None
        if isinstance(node, NavigableString):
            return MarkupText(str(node))
        if isinstance(node, Tag):
            attributes = {}
            for name, value in node.attrs.items():
                if isinstance(value, list):
                    value = " ".join(value)
                attributes[name.lower()] = "" if value is None else str(value)
            return Element(node.name.lower(), attributes, self._convert_children(node))
        return None
