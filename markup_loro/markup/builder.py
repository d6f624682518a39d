# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Document builder: markup -> structured document in the CRDT

ARCHITECTURE:
=============

build(markup, document)
├── reader.parse()              markup string -> Element tree (never raises)
├── canonicalize()              legacy diff spelling -> current spelling
├── _regions()                  <main> children + da-metadata divs
├── _sections()                 one section per plain <div> child of <main>
├── _convert_flow()             sibling list -> document nodes
│   ├── unwrap_diff_wrappers()  wrapper markers pushed down to children
│   ├── collect_block_groups()  shared marker for grouped blocks
│   └── _fill_node()            element -> node mapping table
├── _metadata()                 [label, value] div pairs -> sidecar entries
└── store.transaction()         clear + insert content, set/delete sidecar keys

The whole markup is analysed into plain Python values before the CRDT is
touched, so a document only ever sees complete, committed builds.

FLOW CONTENT:
=============

Inline content (text, marks, line breaks, images) accumulates in a run. At
section level a run becomes a paragraph; inside list items, table cells and
blockquotes it is kept inline next to any block content, as authored. A run
that came out of a diff wrapper is always wrapped in a paragraph so the marker
has a node to live on.
"""

import logging
import re
from typing import Any, List, Optional, Tuple

from ..constants import (
    CONTENT_KEY,
    DATA_ID_ATTRIBUTE,
    EMPTY_DOC,
    METADATA_CLASS,
    METADATA_KEY,
    METADATA_LABELS,
    SECTION_BREAK_TEXT,
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
    sort_marks,
)
from .block_table import block_to_table, is_block, read_block
from .diff_normalizer import BlockGroup, attribute_marker, canonicalize, collect_block_groups, unwrap_diff_wrappers
from .reader import Element, MarkupComment, MarkupNode, MarkupReader, MarkupText, SoupMarkupReader, is_blank
from .text_walker import flatten_text, pseudo_markup

logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r"[ \t\n\r\f]+")

HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}

MARK_TAGS = {
    "strong": MarkType.STRONG,
    "b": MarkType.STRONG,
    "em": MarkType.EMPHASIS,
    "i": MarkType.EMPHASIS,
    "s": MarkType.STRIKE,
    "u": MarkType.UNDERLINE,
    "sup": MarkType.SUPERSCRIPT,
    "sub": MarkType.SUBSCRIPT,
    "code": MarkType.CODE,
}

# Wrappers whose children join the surrounding flow
TRANSPARENT_TAGS = {
    "div", "header", "footer", "main", "body", "html", "li",
    "thead", "tbody", "tfoot", "tr", "td", "th",
}

# Structural tags whose text is kept when they turn up inside inline content
BLOCK_TAGS = TRANSPARENT_TAGS | set(HEADING_TAGS) | {
    "p", "ul", "ol", "blockquote", "pre", "table", "hr",
}

IMAGE_TAGS = {"img", "picture"}

OUTER_TAGS = {"html", "body", "header", "footer"}

METADATA_KEYS = {label: key for key, label in METADATA_LABELS.items()}


def normalize_inline(items: List[Node]) -> List[Node]:
    """
    Collapse whitespace in an inline run

    Runs of markup whitespace become one space; a space is dropped at the
    start of the run, after a space and after a line break, and trailing
    whitespace is removed. Adjacent texts with identical marks are merged.
    """
    result: List[Node] = []
    after_space = True
    for item in items:
        if isinstance(item, Text):
            text = WHITESPACE.sub(" ", item.text)
            if after_space:
                text = text.lstrip(" ")
            if not text:
                continue
            after_space = text.endswith(" ")
            previous = result[-1] if result else None
            if isinstance(previous, Text) and previous.marks == item.marks:
                result[-1] = Text(text=previous.text + text, marks=previous.marks)
            else:
                result.append(Text(text=text, marks=list(item.marks)))
        else:
            result.append(item)
            after_space = isinstance(item, LineBreak)
    while result and isinstance(result[-1], Text):
        text = result[-1].text.rstrip(" ")
        if text:
            result[-1] = Text(text=text, marks=result[-1].marks)
            break
        result.pop()
    return result


def _span(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip().isdigit():
        return None
    return int(value.strip())


def _first(element: Element, tag: str) -> Optional[Element]:
    for child in element.element_children():
        if child.tag == tag:
            return child
        found = _first(child, tag)
        if found is not None:
            return found
    return None


class _Flow:
    """Block output of one container plus its pending inline run"""

    def __init__(self, section_level: bool):
        self.section_level = section_level
        self.out: List[Node] = []
        self.run: List[Node] = []
        self.run_marker: Optional[DiffMarker] = None

    def add_inline(self, nodes: List[Node], marker: Optional[DiffMarker]) -> None:
        if marker != self.run_marker:
            self.flush()
            self.run_marker = marker
        self.run.extend(nodes)

    def add_block(self, node: Node) -> None:
        self.flush()
        self.out.append(node)

    def flush(self) -> None:
        inline = normalize_inline(self.run)
        marker = self.run_marker
        self.run = []
        self.run_marker = None
        if not inline:
            return
        if self.section_level or marker is not None:
            self.out.append(Paragraph(children=inline, diff=marker))
        else:
            self.out.extend(inline)


class DocumentBuilder:
    """
    Converts wire-format markup into the structured document of a CRDT

    Args:
        reader: Markup tokenizer, resolved once; BeautifulSoup by default
        content_key: Root key of the content sequence
        metadata_key: Root key of the metadata sidecar
    """

    def __init__(
        self,
        reader: Optional[MarkupReader] = None,
        content_key: str = CONTENT_KEY,
        metadata_key: str = METADATA_KEY,
    ):
        self.reader = reader or SoupMarkupReader()
        self.content_key = content_key
        self.metadata_key = metadata_key

    def build(self, markup: Optional[str], document: Any) -> None:
        """
        Replace the document content with the content of markup

        Args:
            markup: Wire-format markup; None or "" means the empty document
            document: A loro.LoroDoc or DocumentStore

        Raises:
            TypeError: If markup is neither a string nor None, or the
                document is not a supported store
        """
        content, metadata = self.convert(markup)
        values = [node.to_dict() for node in content]

        store = as_document_store(document)
        sequence = store.get_sequence(self.content_key)
        mapping = store.get_mapping(self.metadata_key)
        with store.transaction():
            sequence.clear()
            for index, value in enumerate(values):
                sequence.insert(index, value)
            for key, value in metadata:
                if value:
                    mapping.set(key, value)
                else:
                    mapping.delete(key)

        logger.info(f"Built {len(values)} top level nodes and {len(metadata)} metadata entries")

    def convert(self, markup: Optional[str]) -> Tuple[List[Node], List[Tuple[str, str]]]:
        """
        Analyse markup without touching any document

        Returns:
            The top level nodes and the (key, value) metadata entries found,
            where an empty value marks a key to remove
        """
        if markup is not None and not isinstance(markup, str):
            raise TypeError(f"Markup must be a string or None, got {type(markup).__name__}")
        if not markup:
            markup = EMPTY_DOC

        nodes = canonicalize(self.reader.parse(markup))
        content_nodes, metadata_divs = self._regions(nodes)

        tree: List[Node] = []
        for index, section in enumerate(self._sections(content_nodes)):
            if index:
                tree.append(SectionBreak())
            tree.extend(self._convert_flow(section, section_level=True))
        return tree, self._metadata(metadata_divs)

    # ------------------------------------------------------------------
    # Regions and sections
    # ------------------------------------------------------------------

    def _regions(self, nodes: List[MarkupNode]) -> Tuple[List[MarkupNode], List[Element]]:
        content: List[MarkupNode] = []
        metadata: List[Element] = []
        mains: List[Element] = []
        self._scan(nodes, content, metadata, mains)
        if mains:
            if any(not is_blank(node) for node in content):
                logger.debug("Ignoring content outside <main>")
            return mains[0].children, metadata
        return content, metadata

    def _scan(self, nodes, content, metadata, mains) -> None:
        for node in nodes:
            if isinstance(node, Element):
                if node.tag == "head":
                    continue
                if node.tag == "main":
                    mains.append(node)
                    continue
                if node.tag == "div" and node.has_class(METADATA_CLASS):
                    metadata.append(node)
                    continue
                if node.tag in OUTER_TAGS:
                    self._scan(node.children, content, metadata, mains)
                    continue
            content.append(node)

    def _sections(self, nodes: List[MarkupNode]) -> List[List[MarkupNode]]:
        sections: List[List[MarkupNode]] = []
        current: Optional[List[MarkupNode]] = None
        for node in nodes:
            if isinstance(node, Element) and node.tag == "div" and not node.has("class"):
                current = list(node.children)
                sections.append(current)
            elif is_blank(node):
                continue
            else:
                if current is None:
                    current = []
                    sections.append(current)
                current.append(node)
        return sections or [[]]

    # ------------------------------------------------------------------
    # Flow content
    # ------------------------------------------------------------------

    def _convert_flow(
        self, nodes: List[MarkupNode], section_level: bool = False, inherited: Optional[DiffMarker] = None
    ) -> List[Node]:
        flow = _Flow(section_level)
        self._fill(flow, nodes, inherited)
        flow.flush()
        return flow.out

    def _convert_cell(self, nodes: List[MarkupNode]) -> List[Node]:
        return self._convert_flow(nodes)

    def _fill(self, flow: _Flow, nodes: List[MarkupNode], inherited: Optional[DiffMarker]) -> None:
        pairs = unwrap_diff_wrappers(nodes, inherited)
        items = collect_block_groups(
            pairs,
            classes_of=lambda pair: pair[0].classes if is_block(pair[0]) else [],
            marker_of=lambda pair: attribute_marker(pair[0]) or pair[1],
        )
        for item in items:
            if isinstance(item, BlockGroup):
                for node, marker in item.members:
                    if item.marker is not None:
                        self._fill_node(flow, node, item.marker, forced=True)
                    else:
                        self._fill_node(flow, node, marker)
            else:
                self._fill_node(flow, *item)

    def _fill_node(
        self, flow: _Flow, node: MarkupNode, inherited: Optional[DiffMarker], forced: bool = False
    ) -> None:
        if isinstance(node, MarkupComment):
            return
        if isinstance(node, MarkupText):
            flow.add_inline([Text(text=node.value)], inherited)
            return

        marker = inherited if forced else (attribute_marker(node) or inherited)
        tag = node.tag
        data_id = node.get(DATA_ID_ATTRIBUTE)

        if tag == "p":
            if flow.section_level and self._is_section_break(node):
                flow.add_block(SectionBreak(data_id=data_id))
            else:
                flow.add_block(Paragraph(children=self._inline_content(node.children), data_id=data_id, diff=marker))
        elif tag in HEADING_TAGS:
            flow.add_block(Heading(
                level=HEADING_TAGS[tag],
                children=self._inline_content(node.children),
                data_id=data_id,
                diff=marker,
            ))
        elif tag in ("ul", "ol"):
            flow.add_block(self._list(node, marker))
        elif tag == "blockquote":
            flow.add_block(Blockquote(children=self._convert_flow(node.children), data_id=data_id, diff=marker))
        elif tag == "pre":
            flow.add_block(CodeBlock(text=self._code_text(node), data_id=data_id, diff=marker))
        elif tag == "hr":
            flow.add_block(SectionBreak(data_id=data_id, diff=marker))
        elif tag == "table":
            flow.add_block(self._native_table(node, marker))
        elif is_block(node):
            flow.add_block(block_to_table(read_block(node, marker), self._convert_cell))
        elif tag in IMAGE_TAGS or self._linked_image(node) is not None:
            image = self._image(node, marker)
            if flow.section_level:
                flow.add_block(image)
            else:
                flow.add_inline([image], flow.run_marker)
        elif tag in TRANSPARENT_TAGS:
            flow.flush()
            self._fill(flow, node.children, marker)
            flow.flush()
        elif tag in MARK_TAGS or tag in ("a", "br", "span"):
            flow.add_inline(self._inline([node]), marker)
        else:
            logger.debug(f"Escaping unknown element <{tag}>")
            flow.add_inline([Text(text=pseudo_markup(node))], marker)
            self._fill(flow, node.children, marker)

    def _is_section_break(self, paragraph: Element) -> bool:
        if paragraph.element_children():
            return False
        return flatten_text(paragraph).strip() == SECTION_BREAK_TEXT

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _inline_content(self, nodes: List[MarkupNode]) -> List[Node]:
        return normalize_inline(self._inline(nodes))

    def _inline(self, nodes: List[MarkupNode], marks: Tuple[Mark, ...] = ()) -> List[Node]:
        result: List[Node] = []
        for node, _ in unwrap_diff_wrappers(nodes):
            if isinstance(node, MarkupComment):
                continue
            if isinstance(node, MarkupText):
                result.append(Text(text=node.value, marks=sort_marks(marks)))
                continue
            tag = node.tag
            if tag in MARK_TAGS:
                result.extend(self._inline(node.children, marks + (Mark(MARK_TAGS[tag]),)))
            elif tag == "a":
                if self._linked_image(node) is not None:
                    result.append(self._image(node, attribute_marker(node)))
                else:
                    link = Mark(MarkType.LINK, href=node.get("href"), title=node.get("title"))
                    result.extend(self._inline(node.children, marks + (link,)))
            elif tag == "br":
                result.append(LineBreak(marks=sort_marks(marks)))
            elif tag in IMAGE_TAGS:
                result.append(self._image(node, attribute_marker(node)))
            elif tag == "span" or tag in BLOCK_TAGS:
                result.extend(self._inline(node.children, marks))
            else:
                logger.debug(f"Escaping unknown inline element <{tag}>")
                result.append(Text(text=pseudo_markup(node), marks=sort_marks(marks)))
                result.extend(self._inline(node.children, marks))
        return result

    def _code_text(self, pre: Element) -> str:
        content = [node for node in pre.children if not is_blank(node)]
        if len(content) == 1 and isinstance(content[0], Element) and content[0].tag == "code":
            return self._raw_text(content[0].children)
        return self._raw_text(pre.children)

    def _raw_text(self, nodes: List[MarkupNode]) -> str:
        parts = []
        for node in nodes:
            if isinstance(node, MarkupText):
                parts.append(node.value)
            elif isinstance(node, Element):
                if node.tag == "br":
                    parts.append("\n")
                    continue
                if node.tag not in MARK_TAGS and node.tag not in ("a", "span"):
                    parts.append(pseudo_markup(node))
                parts.append(self._raw_text(node.children))
        return "".join(parts)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _linked_image(self, node: Element) -> Optional[Element]:
        """The picture or img an anchor wraps on its own, if any"""
        if node.tag != "a":
            return None
        content = [child for child in node.children if not is_blank(child)]
        if len(content) == 1 and isinstance(content[0], Element) and content[0].tag in IMAGE_TAGS:
            return content[0]
        return None

    def _image(self, node: Element, marker: Optional[DiffMarker]) -> Image:
        link = node if node.tag == "a" else None
        target = self._linked_image(node) if link is not None else node
        img = target if target.tag == "img" else _first(target, "img")
        attributes = img.attributes if img is not None else {}

        src = attributes.get("src")
        if not src:
            source = _first(target, "source")
            srcset = (source.get("srcset") or "").strip() if source is not None else ""
            src = srcset.split(",")[0].split()[0] if srcset else ""

        holder = link if link is not None else img
        href = holder.get("href") if holder is not None else None
        title = holder.get("title") if holder is not None else None

        data_id = None
        for candidate in (img, target, link):
            if candidate is not None and candidate.has(DATA_ID_ATTRIBUTE):
                data_id = candidate.get(DATA_ID_ATTRIBUTE)
                break
        if marker is None:
            for candidate in (link, target, img):
                marker = marker or (attribute_marker(candidate) if candidate is not None else None)

        return Image(
            src=src,
            alt=attributes.get("alt"),
            title=title,
            href=href,
            loading=attributes.get("loading"),
            data_id=data_id,
            diff=marker,
        )

    # ------------------------------------------------------------------
    # Lists and native tables
    # ------------------------------------------------------------------

    def _list(self, node: Element, marker: Optional[DiffMarker]):
        items = []
        for child, child_marker in unwrap_diff_wrappers(node.children):
            if is_blank(child):
                continue
            if isinstance(child, Element) and child.tag == "li":
                items.append(ListItem(
                    children=self._convert_flow(child.children),
                    data_id=child.get(DATA_ID_ATTRIBUTE),
                    diff=attribute_marker(child) or child_marker,
                ))
            else:
                items.append(ListItem(children=self._convert_flow([child]), diff=child_marker))
        data_id = node.get(DATA_ID_ATTRIBUTE)
        if node.tag == "ol":
            return OrderedList(items=items, start=_span(node.get("start")), data_id=data_id, diff=marker)
        return UnorderedList(items=items, data_id=data_id, diff=marker)

    def _native_table(self, node: Element, marker: Optional[DiffMarker]) -> Table:
        rows: List[TableRow] = []
        self._table_rows(node, None, rows)
        return Table(rows=rows, html_table=True, data_id=node.get(DATA_ID_ATTRIBUTE), diff=marker)

    def _table_rows(self, parent: Element, section: Optional[str], rows: List[TableRow]) -> None:
        for child, marker in unwrap_diff_wrappers(parent.children):
            if is_blank(child):
                continue
            if not isinstance(child, Element):
                logger.debug("Skipping text between table rows")
                continue
            if child.tag in ("thead", "tbody", "tfoot"):
                self._table_rows(child, child.tag, rows)
            elif child.tag == "tr":
                rows.append(TableRow(
                    cells=self._table_cells(child),
                    section=section,
                    data_id=child.get(DATA_ID_ATTRIBUTE),
                    diff=attribute_marker(child) or marker,
                ))
            elif child.tag in ("td", "th"):
                rows.append(TableRow(cells=[self._table_cell(child)], section=section, diff=marker))
            else:
                logger.debug(f"Skipping <{child.tag}> inside table")

    def _table_cells(self, row: Element) -> List[TableCell]:
        cells = []
        for child in row.children:
            if is_blank(child):
                continue
            if isinstance(child, Element) and child.tag in ("td", "th"):
                cells.append(self._table_cell(child))
            else:
                cells.append(TableCell(children=self._convert_flow([child])))
        return cells

    def _table_cell(self, cell: Element) -> TableCell:
        return TableCell(
            children=self._convert_flow(cell.children),
            header=cell.tag == "th",
            colspan=_span(cell.get("colspan")),
            rowspan=_span(cell.get("rowspan")),
            data_id=cell.get(DATA_ID_ATTRIBUTE),
        )

    # ------------------------------------------------------------------
    # Metadata sidecar
    # ------------------------------------------------------------------

    def _metadata(self, containers: List[Element]) -> List[Tuple[str, str]]:
        entries = []
        for container in containers:
            for entry in container.element_children():
                parts = entry.element_children()
                if entry.tag != "div" or len(parts) != 2 or any(part.tag != "div" for part in parts):
                    logger.debug(f"Skipping malformed metadata entry <{entry.tag}>")
                    continue
                label = flatten_text(parts[0]).strip()
                if not label:
                    continue
                value = flatten_text(parts[1]).strip()
                if not value:
                    logger.debug(f"Metadata '{label}' has no value, leaving it out")
                entries.append((METADATA_KEYS.get(label, label), value))
        return entries
