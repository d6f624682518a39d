# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Markup writer: structured document in the CRDT -> markup

ARCHITECTURE:
=============

write(document)
├── read content sequence        stored dicts -> nodes (unknown ones skipped)
├── split at sectionBreak        one <div> per section inside <main>
├── render_flow()                nodes -> Element tree
│   ├── collect_block_groups()   grouped blocks share one marker
│   ├── emit_with_markers()      deletion wrappers / da-diff-added attributes
│   ├── _render_inline()         marks -> nested inline elements
│   └── table_to_block()         block tables -> div blocks
├── _metadata_element()          sidecar -> div.da-metadata
└── to_markup()                  Element tree -> escaped string

Writing never fails on odd content: missing fields fall back to defaults and a
table with no rows becomes an empty block div.

INLINE MARKS:
=============

Marks are opened in a fixed rank order (link outermost, code innermost).
Consecutive runs keep the marks they share open, so

    [("Hello ", em), ("World", em+strong)]  ->  <em>Hello <strong>World</strong></em>
    [("Hello ", strong), ("World", em+strong)]  ->  <strong>Hello </strong><em><strong>World</strong></em>

transientHighlight is editor session state and is dropped before rendering.
"""

import logging
from typing import Any, List, Optional, Tuple

from ..constants import (
    CONTENT_KEY,
    DATA_ID_ATTRIBUTE,
    METADATA_CLASS,
    METADATA_KEY,
    METADATA_LABELS,
    PICTURE_MEDIA,
)
from ..model.document_store import as_document_store
from ..model.nodes import (
    Blockquote,
    CodeBlock,
    DiffMarker,
    Heading,
    Image,
    LineBreak,
    ListItem,
    Mark,
    MarkType,
    Node,
    OrderedList,
    Paragraph,
    SectionBreak,
    Table,
    TableCell,
    TableRow,
    Text,
    UnorderedList,
    is_inline,
    nodes_from_dicts,
    sort_marks,
)
from .block_table import block_class, table_to_block
from .diff_normalizer import BlockGroup, collect_block_groups, emit_with_markers
from .reader import Element, MarkupNode, MarkupText
from .text_walker import to_markup

logger = logging.getLogger(__name__)

MARK_TAGS = {
    MarkType.EMPHASIS: "em",
    MarkType.STRONG: "strong",
    MarkType.STRIKE: "s",
    MarkType.UNDERLINE: "u",
    MarkType.SUPERSCRIPT: "sup",
    MarkType.SUBSCRIPT: "sub",
    MarkType.CODE: "code",
}

SESSION_MARKS = {MarkType.TRANSIENT_HIGHLIGHT}


def _with_id(node: Any, attributes: Optional[dict] = None) -> dict:
    attributes = dict(attributes or {})
    data_id = getattr(node, "data_id", None)
    if data_id is not None:
        attributes[DATA_ID_ATTRIBUTE] = data_id
    return attributes


def _mark_element(mark: Mark) -> Element:
    if mark.type is MarkType.LINK:
        attributes = {}
        if mark.href is not None:
            attributes["href"] = mark.href
        if mark.title is not None:
            attributes["title"] = mark.title
        return Element("a", attributes)
    return Element(MARK_TAGS[mark.type])


def _group_classes(node: Any) -> List[str]:
    if isinstance(node, Table) and not node.html_table:
        return block_class(node).split()
    return []


class MarkupWriter:
    """
    Serializes the structured document of a CRDT into wire-format markup

    Args:
        content_key: Root key of the content sequence
        metadata_key: Root key of the metadata sidecar
    """

    def __init__(self, content_key: str = CONTENT_KEY, metadata_key: str = METADATA_KEY):
        self.content_key = content_key
        self.metadata_key = metadata_key

    def write(self, document: Any) -> str:
        """
        Render the document as markup

        Args:
            document: A loro.LoroDoc or DocumentStore

        Returns:
            The markup, always wrapped in body/header/main/footer
        """
        store = as_document_store(document)
        nodes = nodes_from_dicts(store.get_sequence(self.content_key).items())
        metadata = [
            (str(key), "" if value is None else str(value))
            for key, value in store.get_mapping(self.metadata_key).items()
        ]
        markup = self.render(nodes, metadata)
        logger.info(f"Wrote {len(nodes)} top level nodes and {len(metadata)} metadata entries")
        return markup

    def render(self, nodes: List[Node], metadata: List[Tuple[str, str]]) -> str:
        main = Element("main")
        for section in self._sections(nodes):
            self.render_flow(section, main.append(Element("div")))

        markup = (
            "\n<body>\n"
            "  <header></header>\n"
            f"  {to_markup([main])}\n"
            "  <footer></footer>\n"
        )
        entries = [(key, value) for key, value in metadata if value]
        if entries:
            markup += f"  {to_markup([self._metadata_element(entries)])}\n"
        return markup + "</body>\n"

    def _sections(self, nodes: List[Node]) -> List[List[Node]]:
        sections: List[List[Node]] = [[]]
        for node in nodes:
            if isinstance(node, SectionBreak):
                sections.append([])
            else:
                sections[-1].append(node)
        return sections

    def _metadata_element(self, entries: List[Tuple[str, str]]) -> Element:
        container = Element("div", {"class": METADATA_CLASS})
        for key, value in entries:
            label = METADATA_LABELS.get(key, key)
            container.append(Element("div", {}, [
                Element("div", {}, [MarkupText(label)]),
                Element("div", {}, [MarkupText(value)]),
            ]))
        return container

    # ------------------------------------------------------------------
    # Flow content
    # ------------------------------------------------------------------

    def render_flow(self, nodes: List[Node], parent: Element) -> Element:
        """
        Append the markup of a sibling list to parent

        Inline siblings are rendered together so shared marks stay open.
        """
        entries: List[Tuple[Any, Optional[DiffMarker]]] = []
        for item in collect_block_groups(nodes, _group_classes, lambda node: getattr(node, "diff", None)):
            if isinstance(item, BlockGroup):
                entries.extend(self._group_entries(item))
            elif is_inline(item) and not (isinstance(item, Image) and item.diff is not None):
                if entries and isinstance(entries[-1][0], list):
                    entries[-1][0].append(item)
                else:
                    entries.append(([item], None))
            else:
                entries.append((item, getattr(item, "diff", None)))
        emit_with_markers(parent, entries, self._render_entry)
        return parent

    def _group_entries(self, group: BlockGroup) -> List[Tuple[Any, Optional[DiffMarker]]]:
        last = len(group.members) - 1
        if group.marker is DiffMarker.ADDED:
            return [
                (member, DiffMarker.ADDED if index in (0, last) else None)
                for index, member in enumerate(group.members)
            ]
        if group.marker is DiffMarker.DELETED:
            return [(member, DiffMarker.DELETED) for member in group.members]
        return [(member, member.diff) for member in group.members]

    def _render_entry(self, item: Any, parent: Element) -> Optional[Element]:
        if isinstance(item, list):
            self._render_inline(item, parent)
            return None
        return self.render_node(item, parent)

    def render_node(self, node: Node, parent: Element) -> Optional[Element]:
        """Append the markup of one node to parent and return its outermost element"""
        if isinstance(node, Paragraph):
            return self._container("p", node, parent)
        if isinstance(node, Heading):
            return self._container(f"h{min(max(node.level, 1), 6)}", node, parent)
        if isinstance(node, Blockquote):
            return self._container("blockquote", node, parent)
        if isinstance(node, CodeBlock):
            pre = parent.append(Element("pre", _with_id(node)))
            pre.append(Element("code", {}, [MarkupText(node.text)]))
            return pre
        if isinstance(node, (OrderedList, UnorderedList)):
            return self._list(node, parent)
        if isinstance(node, Table):
            if node.html_table:
                return self._native_table(node, parent)
            return table_to_block(node, parent, self.render_cell)
        if isinstance(node, Image):
            return self._image(node, parent)
        if isinstance(node, SectionBreak):
            return parent.append(Element("hr", _with_id(node)))
        if isinstance(node, (ListItem, TableRow, TableCell)):
            # Out of place structural nodes keep their content
            self.render_flow(list(node.children), parent)
            return None
        if isinstance(node, (Text, LineBreak)):
            self._render_inline([node], parent)
            return None
        logger.debug(f"Skipping node of type {type(node).__name__}")
        return None

    def render_cell(self, cell: TableCell) -> List[MarkupNode]:
        """Markup of a cell's content, without the cell element itself"""
        return self.render_flow(cell.children, Element("div")).children

    def _container(self, tag: str, node: Node, parent: Element) -> Element:
        element = parent.append(Element(tag, _with_id(node)))
        self.render_flow(node.children, element)
        return element

    def _list(self, node, parent: Element) -> Element:
        attributes = {}
        if isinstance(node, OrderedList) and node.start is not None:
            attributes["start"] = str(node.start)
        element = parent.append(Element("ol" if isinstance(node, OrderedList) else "ul", _with_id(node, attributes)))

        def render_item(item: ListItem, destination: Element) -> Element:
            return self._container("li", item, destination)

        emit_with_markers(element, [(item, item.diff) for item in node.items], render_item)
        return element

    def _native_table(self, table: Table, parent: Element) -> Element:
        element = parent.append(Element("table", _with_id(table)))
        index = 0
        while index < len(table.rows):
            section = table.rows[index].section
            stop = index
            while stop < len(table.rows) and table.rows[stop].section == section:
                stop += 1
            container = element if section is None else element.append(Element(section))
            emit_with_markers(
                container,
                [(row, row.diff) for row in table.rows[index:stop]],
                self._table_row,
            )
            index = stop
        return element

    def _table_row(self, row: TableRow, parent: Element) -> Element:
        element = parent.append(Element("tr", _with_id(row)))
        for cell in row.cells:
            attributes = {}
            if cell.colspan is not None:
                attributes["colspan"] = str(cell.colspan)
            if cell.rowspan is not None:
                attributes["rowspan"] = str(cell.rowspan)
            cell_element = element.append(Element("th" if cell.header else "td", _with_id(cell, attributes)))
            self.render_flow(cell.children, cell_element)
        return element

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _render_inline(self, items: List[Node], parent: Element) -> None:
        stack: List[Tuple[Mark, Element]] = []

        for item in items:
            marks = [mark for mark in sort_marks(getattr(item, "marks", [])) if mark.type not in SESSION_MARKS]
            if isinstance(item, Image):
                marks = []
            common = 0
            while common < len(stack) and common < len(marks) and stack[common][0] == marks[common]:
                common += 1
            del stack[common:]
            for mark in marks[common:]:
                holder = stack[-1][1] if stack else parent
                stack.append((mark, holder.append(_mark_element(mark))))
            target = stack[-1][1] if stack else parent

            if isinstance(item, Text):
                target.append(MarkupText(item.text))
            elif isinstance(item, LineBreak):
                target.append(Element("br"))
            elif isinstance(item, Image):
                self._image(item, target)

    def _image(self, image: Image, parent: Element) -> Element:
        img_attributes = {"src": image.src}
        if image.alt is not None:
            img_attributes["alt"] = image.alt
        if image.loading is not None:
            img_attributes["loading"] = image.loading
        picture = Element("picture", {}, [
            Element("source", {"srcset": image.src}),
            Element("source", {"srcset": image.src, "media": PICTURE_MEDIA}),
            Element("img", _with_id(image, img_attributes)),
        ])
        if image.href is None and image.title is None:
            return parent.append(picture)
        link_attributes = {}
        if image.href is not None:
            link_attributes["href"] = image.href
        if image.title is not None:
            link_attributes["title"] = image.title
        return parent.append(Element("a", link_attributes, [picture]))


def write(document: Any) -> str:
    return MarkupWriter().write(document)
