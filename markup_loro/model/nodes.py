# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Structured document nodes

The live document is a closed set of node kinds. Each kind is a dataclass that
knows how to turn itself into the JSON-like value stored in the CRDT and back.

STORED SHAPE:
=============

{
  "type": "paragraph",
  "dataId": "p-1",            # optional, opaque
  "diff": "added",            # optional, "added" | "deleted"
  "children": [
    {"type": "text", "text": "Hello ", "marks": []},
    {"type": "text", "text": "World", "marks": [{"type": "strong"}]}
  ]
}

Node kinds:
- Inline: text, lineBreak, image (image may also stand alone at section level)
- Text blocks: paragraph, heading
- Containers: blockquote, listItem, tableCell (mixed inline and block content)
- Structure: orderedList, unorderedList, table, tableRow, codeBlock, sectionBreak

`node_from_dict` is the single entry point for reading stored values. It never
raises: values it cannot interpret are skipped and logged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Type

logger = logging.getLogger(__name__)


class DiffMarker(Enum):
    """Regional edit marker carried by a node"""
    ADDED = "added"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: Any) -> Optional["DiffMarker"]:
        try:
            return cls(value) if value is not None else None
        except ValueError:
            return None


class MarkType(Enum):
    """Inline marks, declared in nesting order (outermost first)"""
    LINK = "link"
    EMPHASIS = "em"
    STRONG = "strong"
    STRIKE = "s"
    UNDERLINE = "u"
    SUPERSCRIPT = "sup"
    SUBSCRIPT = "sub"
    CODE = "code"
    TRANSIENT_HIGHLIGHT = "transientHighlight"


MARK_RANK = {mark_type: rank for rank, mark_type in enumerate(MarkType)}


@dataclass(frozen=True)
class Mark:
    type: MarkType
    href: Optional[str] = None
    title: Optional[str] = None

    @property
    def rank(self) -> int:
        return MARK_RANK[self.type]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.href is not None:
            data["href"] = self.href
        if self.title is not None:
            data["title"] = self.title
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Mark"]:
        if not isinstance(data, dict):
            return None
        try:
            mark_type = MarkType(data.get("type"))
        except ValueError:
            logger.debug(f"Skipping unknown mark: {data.get('type')!r}")
            return None
        return cls(mark_type, _opt_str(data.get("href")), _opt_str(data.get("title")))


def sort_marks(marks: Iterable[Mark]) -> List[Mark]:
    """Order marks by nesting rank, keeping only the last mark of each type"""
    by_type: Dict[MarkType, Mark] = {}
    for mark in marks:
        by_type[mark.type] = mark
    return sorted(by_type.values(), key=lambda mark: mark.rank)


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _opt_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _marks_from(data: Dict[str, Any]) -> List[Mark]:
    marks = data.get("marks")
    if not isinstance(marks, list):
        return []
    return [mark for mark in (Mark.from_dict(item) for item in marks) if mark is not None]


# ============================================================================
# Node kinds
# ============================================================================

@dataclass
class Node:
    """Base class for every stored node kind"""
    kind: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind}
        data.update(self._fields_to_dict())
        return data

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls()


@dataclass
class Text(Node):
    kind: ClassVar[str] = "text"
    text: str = ""
    marks: List[Mark] = field(default_factory=list)

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "marks": [mark.to_dict() for mark in self.marks]}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Text":
        return cls(text=str(data.get("text") or ""), marks=_marks_from(data))


@dataclass
class LineBreak(Node):
    kind: ClassVar[str] = "lineBreak"
    marks: List[Mark] = field(default_factory=list)

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"marks": [mark.to_dict() for mark in self.marks]}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "LineBreak":
        return cls(marks=_marks_from(data))


@dataclass
class BlockNode(Node):
    """Node that may carry an opaque data-id and a regional edit marker"""
    data_id: Optional[str] = None
    diff: Optional[DiffMarker] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.data_id is not None:
            data["dataId"] = self.data_id
        if self.diff is not None:
            data["diff"] = self.diff.value
        return data

    @classmethod
    def _common(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "data_id": _opt_str(data.get("dataId")),
            "diff": DiffMarker.parse(data.get("diff")),
        }


@dataclass
class Image(BlockNode):
    kind: ClassVar[str] = "image"
    src: str = ""
    alt: Optional[str] = None
    title: Optional[str] = None
    href: Optional[str] = None
    loading: Optional[str] = None

    def _fields_to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"src": self.src}
        for key in ("alt", "title", "href", "loading"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Image":
        return cls(
            src=str(data.get("src") or ""),
            alt=_opt_str(data.get("alt")),
            title=_opt_str(data.get("title")),
            href=_opt_str(data.get("href")),
            loading=_opt_str(data.get("loading")),
            **cls._common(data),
        )


@dataclass
class _ContainerNode(BlockNode):
    children: List[Node] = field(default_factory=list)

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"children": [child.to_dict() for child in self.children]}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "_ContainerNode":
        return cls(children=nodes_from_dicts(data.get("children")), **cls._common(data))


@dataclass
class Paragraph(_ContainerNode):
    kind: ClassVar[str] = "paragraph"


@dataclass
class Heading(_ContainerNode):
    kind: ClassVar[str] = "heading"
    level: int = 1

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, **super()._fields_to_dict()}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Heading":
        level = _opt_int(data.get("level")) or 1
        return cls(
            level=min(max(level, 1), 6),
            children=nodes_from_dicts(data.get("children")),
            **cls._common(data),
        )


@dataclass
class Blockquote(_ContainerNode):
    kind: ClassVar[str] = "blockquote"


@dataclass
class ListItem(_ContainerNode):
    kind: ClassVar[str] = "listItem"


@dataclass
class CodeBlock(BlockNode):
    kind: ClassVar[str] = "codeBlock"
    text: str = ""

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"text": self.text}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "CodeBlock":
        return cls(text=str(data.get("text") or ""), **cls._common(data))


@dataclass
class _ListNode(BlockNode):
    items: List[ListItem] = field(default_factory=list)

    @property
    def children(self) -> List[ListItem]:
        return self.items

    def _fields_to_dict(self) -> Dict[str, Any]:
        return {"children": [item.to_dict() for item in self.items]}

    @classmethod
    def _items(cls, data: Dict[str, Any]) -> List[ListItem]:
        items = []
        for child in nodes_from_dicts(data.get("children")):
            items.append(child if isinstance(child, ListItem) else ListItem(children=[child]))
        return items

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "_ListNode":
        return cls(items=cls._items(data), **cls._common(data))


@dataclass
class UnorderedList(_ListNode):
    kind: ClassVar[str] = "unorderedList"


@dataclass
class OrderedList(_ListNode):
    kind: ClassVar[str] = "orderedList"
    start: Optional[int] = None

    def _fields_to_dict(self) -> Dict[str, Any]:
        data = super()._fields_to_dict()
        if self.start is not None:
            data["start"] = self.start
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "OrderedList":
        return cls(items=cls._items(data), start=_opt_int(data.get("start")), **cls._common(data))


@dataclass
class TableCell(_ContainerNode):
    kind: ClassVar[str] = "tableCell"
    header: bool = False
    colspan: Optional[int] = None
    rowspan: Optional[int] = None

    def _fields_to_dict(self) -> Dict[str, Any]:
        data = super()._fields_to_dict()
        if self.header:
            data["header"] = True
        if self.colspan is not None:
            data["colspan"] = self.colspan
        if self.rowspan is not None:
            data["rowspan"] = self.rowspan
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "TableCell":
        return cls(
            children=nodes_from_dicts(data.get("children")),
            header=bool(data.get("header")),
            colspan=_opt_int(data.get("colspan")),
            rowspan=_opt_int(data.get("rowspan")),
            **cls._common(data),
        )


@dataclass
class TableRow(BlockNode):
    kind: ClassVar[str] = "tableRow"
    cells: List[TableCell] = field(default_factory=list)
    section: Optional[str] = None

    @property
    def children(self) -> List[TableCell]:
        return self.cells

    def _fields_to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"children": [cell.to_dict() for cell in self.cells]}
        if self.section is not None:
            data["section"] = self.section
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "TableRow":
        cells = [child for child in nodes_from_dicts(data.get("children")) if isinstance(child, TableCell)]
        section = data.get("section")
        return cls(
            cells=cells,
            section=section if section in ("thead", "tbody", "tfoot") else None,
            **cls._common(data),
        )


@dataclass
class Table(BlockNode):
    """
    A table. Tables are blocks by default: the first row's first cell names the
    block. `html_table` marks a native markup table nested inside block content.
    """
    kind: ClassVar[str] = "table"
    rows: List[TableRow] = field(default_factory=list)
    html_table: bool = False

    @property
    def children(self) -> List[TableRow]:
        return self.rows

    def _fields_to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"children": [row.to_dict() for row in self.rows]}
        if self.html_table:
            data["htmlTable"] = True
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Table":
        rows = [child for child in nodes_from_dicts(data.get("children")) if isinstance(child, TableRow)]
        return cls(rows=rows, html_table=bool(data.get("htmlTable")), **cls._common(data))


@dataclass
class SectionBreak(BlockNode):
    kind: ClassVar[str] = "sectionBreak"

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "SectionBreak":
        return cls(**cls._common(data))


NODE_TYPES: Dict[str, Type[Node]] = {
    node_type.kind: node_type
    for node_type in (
        Text, LineBreak, Image, Paragraph, Heading, Blockquote, ListItem, CodeBlock,
        UnorderedList, OrderedList, TableCell, TableRow, Table, SectionBreak,
    )
}

INLINE_TYPES = (Text, LineBreak, Image)


def is_inline(node: Node) -> bool:
    return isinstance(node, INLINE_TYPES)


def node_from_dict(data: Any) -> Optional[Node]:
    """
    Rebuild a node from its stored value

    Args:
        data: Value read from the CRDT

    Returns:
        The node, or None when the value is not a recognizable node
    """
    if not isinstance(data, dict):
        logger.warning(f"Ignoring stored value that is not a node: {type(data).__name__}")
        return None
    node_type = NODE_TYPES.get(data.get("type"))
    if node_type is None:
        logger.warning(f"Ignoring stored node of unknown type {data.get('type')!r}")
        return None
    return node_type._from_dict(data)


def nodes_from_dicts(values: Any) -> List[Node]:
    if not isinstance(values, list):
        return []
    return [node for node in (node_from_dict(value) for value in values) if node is not None]
