# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Regional edit (diff) markers and block groups

ARCHITECTURE:
=============

Read side:
1. canonicalize()          rewrites legacy da-loc-* tags and attributes to the
                           current da-diff-* spelling, once, before anything
                           else looks at the tree
2. unwrap_diff_wrappers()  replaces <da-diff-added>/<da-diff-deleted> wrappers
                           by their children, each paired with the inherited
                           marker
3. collect_block_groups()  folds runs delimited by block-group-start /
                           block-group-end into BlockGroup items

Write side:
- emit_with_markers()      appends rendered siblings to a parent, putting runs
                           of deleted siblings into a single deletion wrapper
                           and tagging added ones with da-diff-added=""

collect_block_groups() works on any sibling list: the caller supplies how to
read the classes and the marker of an item, so it serves markup elements on
build and table nodes on write.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from ..constants import (
    BLOCK_GROUP_END,
    BLOCK_GROUP_START,
    DIFF_ADDED_TAG,
    DIFF_DELETED_TAG,
    LEGACY_TAG_NAMES,
    MDAST_ATTRIBUTE,
    MDAST_IGNORE,
)
from ..model.nodes import DiffMarker
from .reader import Element, MarkupNode

logger = logging.getLogger(__name__)

MARKER_NAMES = {
    DIFF_ADDED_TAG: DiffMarker.ADDED,
    DIFF_DELETED_TAG: DiffMarker.DELETED,
}


def canonicalize(nodes: List[MarkupNode]) -> List[MarkupNode]:
    """Rewrite legacy diff tag and attribute names to the canonical spelling"""
    result = []
    for node in nodes:
        if isinstance(node, Element):
            attributes = {LEGACY_TAG_NAMES.get(name, name): value for name, value in node.attributes.items()}
            node = Element(LEGACY_TAG_NAMES.get(node.tag, node.tag), attributes, canonicalize(node.children))
        result.append(node)
    return result


def wrapper_marker(node: MarkupNode) -> Optional[DiffMarker]:
    """Marker of a diff wrapper element, None for anything else"""
    if isinstance(node, Element):
        return MARKER_NAMES.get(node.tag)
    return None


def attribute_marker(node: MarkupNode) -> Optional[DiffMarker]:
    """Marker carried as an attribute on an ordinary element"""
    if not isinstance(node, Element):
        return None
    if node.has(DIFF_DELETED_TAG):
        return DiffMarker.DELETED
    if node.has(DIFF_ADDED_TAG):
        return DiffMarker.ADDED
    return None


def unwrap_diff_wrappers(
    nodes: List[MarkupNode], inherited: Optional[DiffMarker] = None
) -> List[Tuple[MarkupNode, Optional[DiffMarker]]]:
    """
    Flatten diff wrappers into their children

    Args:
        nodes: Sibling markup nodes
        inherited: Marker of an enclosing wrapper, if any

    Returns:
        (node, marker) pairs where marker is the closest enclosing wrapper's
    """
    pairs = []
    for node in nodes:
        marker = wrapper_marker(node)
        if marker is not None:
            pairs.extend(unwrap_diff_wrappers(node.children, marker))
        else:
            pairs.append((node, inherited))
    return pairs


@dataclass
class BlockGroup:
    members: List[Any] = field(default_factory=list)
    marker: Optional[DiffMarker] = None
    closed: bool = True


def collect_block_groups(
    siblings: List[Any],
    classes_of: Callable[[Any], List[str]],
    marker_of: Callable[[Any], Optional[DiffMarker]],
) -> List[Any]:
    """
    Fold block group runs of a sibling list into BlockGroup items

    A run starts at an item whose classes include block-group-start and ends
    at the matching block-group-end, nested groups included. Without an end
    marker the group runs to the end of the list.

    Args:
        siblings: Items of one container
        classes_of: Returns the class tokens of an item
        marker_of: Returns the diff marker of an item

    Returns:
        The siblings, with every group run replaced by one BlockGroup
    """
    result: List[Any] = []
    index = 0
    while index < len(siblings):
        item = siblings[index]
        if BLOCK_GROUP_START not in classes_of(item):
            result.append(item)
            index += 1
            continue
        depth = 0
        end = None
        for position in range(index, len(siblings)):
            classes = classes_of(siblings[position])
            if BLOCK_GROUP_START in classes:
                depth += 1
            if BLOCK_GROUP_END in classes:
                depth -= 1
                if depth == 0:
                    end = position
                    break
        if end is None:
            logger.debug(f"Block group starting at sibling {index} has no end marker")
            stop = len(siblings)
        else:
            stop = end + 1
        result.append(BlockGroup(siblings[index:stop], marker_of(item), end is not None))
        index = stop
    return result


def deletion_wrapper() -> Element:
    return Element(DIFF_DELETED_TAG, {MDAST_ATTRIBUTE: MDAST_IGNORE})


def emit_with_markers(
    destination: Element,
    entries: List[Tuple[Any, Optional[DiffMarker]]],
    render: Callable[[Any, Element], Optional[Element]],
) -> None:
    """
    Render siblings into destination, honoring their diff markers

    Args:
        destination: Parent element to append to
        entries: (item, marker) pairs in document order
        render: Appends the markup of one item to the given parent and returns
            its outermost element, or None when it produced no element
    """
    wrapper: Optional[Element] = None
    for item, marker in entries:
        if marker is DiffMarker.DELETED:
            if wrapper is None:
                wrapper = destination.append(deletion_wrapper())
            render(item, wrapper)
            continue
        wrapper = None
        if marker is DiffMarker.ADDED:
            position = len(destination.children)
            element = render(item, destination)
            if element is not None:
                element.attributes[DIFF_ADDED_TAG] = ""
            else:
                added = Element(DIFF_ADDED_TAG, {}, destination.children[position:])
                del destination.children[position:]
                destination.append(added)
        else:
            render(item, destination)
