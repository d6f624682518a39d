# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Text walker and markup serialization

`flatten_text` is the one recursion used wherever plain text is recovered from
marked-up content: block class names, metadata labels and values. It accepts
both markup nodes and structured document nodes, so the name cell of a table
and the label div of a metadata entry strip their marks the same way.

The rest of the module is the write side: escaping and turning Element trees
back into markup strings.
"""

import re
from typing import Iterable

from ..model.nodes import CodeBlock, LineBreak, Node, Text
from .reader import Element, MarkupComment, MarkupNode, MarkupText

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
}

_CHARACTER_REFERENCE = re.compile(r"&(?=[a-zA-Z][a-zA-Z0-9]*;|#[0-9]+;|#[xX][0-9a-fA-F]+;)")


def flatten_text(node) -> str:
    """
    Recover the plain text of a markup or document subtree, dropping all marks

    Args:
        node: A MarkupNode, a document Node, or a list of either

    Returns:
        The concatenated text
    """
    if isinstance(node, list):
        return "".join(flatten_text(child) for child in node)
    if isinstance(node, MarkupText):
        return node.value
    if isinstance(node, MarkupComment):
        return ""
    if isinstance(node, Element):
        if node.tag == "br":
            return "\n"
        return "".join(flatten_text(child) for child in node.children)
    if isinstance(node, Text):
        return node.text
    if isinstance(node, LineBreak):
        return "\n"
    if isinstance(node, CodeBlock):
        return node.text
    if isinstance(node, Node):
        return "".join(flatten_text(child) for child in getattr(node, "children", []))
    return ""


def escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attribute(value: str) -> str:
    # A bare "&" that cannot start a character reference is left alone
    return _CHARACTER_REFERENCE.sub("&amp;", value).replace('"', "&quot;")


def pseudo_markup(element: Element) -> str:
    """Render an unrecognized start tag as literal text"""
    parts = [element.tag.lower()]
    for name, value in element.attributes.items():
        parts.append(f'{name.lower()}="{value}"')
    return f"<{' '.join(parts)}>"


def to_markup(nodes: Iterable[MarkupNode]) -> str:
    """Serialize markup nodes, escaping text and attribute values"""
    return "".join(_serialize(node) for node in nodes)


def _serialize(node: MarkupNode) -> str:
    if isinstance(node, MarkupText):
        return escape_text(node.value)
    if isinstance(node, MarkupComment):
        return ""
    attributes = "".join(
        f' {name}="{escape_attribute(value)}"' for name, value in node.attributes.items()
    )
    if node.tag in VOID_ELEMENTS:
        return f"<{node.tag}{attributes}>"
    return f"<{node.tag}{attributes}>{to_markup(node.children)}</{node.tag}>"


def class_name(text: str) -> str:
    """Whitespace separated class tokens, rejoined with single spaces"""
    return " ".join(text.split())
