# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Block <-> table transcoding

A block is authored as nested divs and edited as a table:

    <div class="cards dark">          table
      <div>                             row 0: [ "cards dark" ]  (name row)
        <div>cell</div>                 row 1: [ cell, cell ]
        <div>cell</div>
      </div>
    </div>

The name row is synthetic: it holds the class string as plain text in a single
cell spanning the widest row. On the way back the class is recovered from that
cell's flattened text, so marks applied to the name in the editor never leak
into the class attribute.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..constants import DATA_ID_ATTRIBUTE
from ..model.nodes import DiffMarker, Node, Paragraph, Table, TableCell, TableRow, Text
from .diff_normalizer import attribute_marker, emit_with_markers, unwrap_diff_wrappers
from .reader import Element, MarkupNode, is_blank
from .text_walker import class_name, flatten_text

logger = logging.getLogger(__name__)


@dataclass
class BlockCell:
    children: List[MarkupNode] = field(default_factory=list)
    data_id: Optional[str] = None


@dataclass
class BlockRow:
    cells: List[BlockCell] = field(default_factory=list)
    data_id: Optional[str] = None
    diff: Optional[DiffMarker] = None


@dataclass
class Block:
    class_name: str = ""
    rows: List[BlockRow] = field(default_factory=list)
    data_id: Optional[str] = None
    diff: Optional[DiffMarker] = None


def is_block(node: MarkupNode) -> bool:
    """A div carrying a class attribute, even an empty one, is a block"""
    return isinstance(node, Element) and node.tag == "div" and node.has("class")


def read_block(element: Element, inherited: Optional[DiffMarker] = None) -> Block:
    """
    Read the div > div(row) > div(cell) convention

    Content that does not follow the convention is kept rather than dropped:
    a non-div child of the block becomes a single cell row, a non-div child of
    a row becomes a cell of its own.
    """
    block = Block(
        class_name=class_name(element.get("class") or ""),
        data_id=element.get(DATA_ID_ATTRIBUTE),
        diff=attribute_marker(element) or inherited,
    )
    for node, marker in unwrap_diff_wrappers(element.children):
        if is_blank(node):
            continue
        if isinstance(node, Element) and node.tag == "div" and not node.has("class"):
            row = BlockRow(
                cells=_read_cells(node),
                data_id=node.get(DATA_ID_ATTRIBUTE),
                diff=attribute_marker(node) or marker,
            )
        else:
            logger.debug(f"Block '{block.class_name}' has a row that is not a div, keeping it as one cell")
            row = BlockRow(cells=[BlockCell([node])], diff=attribute_marker(node) or marker)
        block.rows.append(row)
    return block


def _read_cells(row: Element) -> List[BlockCell]:
    cells = []
    for node in row.children:
        if is_blank(node):
            continue
        if isinstance(node, Element) and node.tag == "div":
            cells.append(BlockCell(list(node.children), node.get(DATA_ID_ATTRIBUTE)))
        else:
            cells.append(BlockCell([node]))
    return cells


def block_to_table(block: Block, convert_cell: Callable[[List[MarkupNode]], List[Node]]) -> Table:
    """
    Convert a read block into its table form

    Args:
        block: The block read from markup
        convert_cell: Converts the markup content of one cell to document nodes

    Returns:
        A table whose first row names the block
    """
    width = max((len(row.cells) for row in block.rows), default=1)
    name = [Text(text=block.class_name)] if block.class_name else []
    name_row = TableRow(cells=[TableCell(
        children=[Paragraph(children=name)],
        colspan=width if width > 1 else None,
    )])
    rows = [name_row]
    for row in block.rows:
        cells = [TableCell(children=convert_cell(cell.children), data_id=cell.data_id) for cell in row.cells]
        rows.append(TableRow(cells=cells, data_id=row.data_id, diff=row.diff))
    return Table(rows=rows, data_id=block.data_id, diff=block.diff)


def block_class(table: Table) -> str:
    """Class string named by the first row's first cell, marks stripped"""
    if not table.rows or not table.rows[0].cells:
        return ""
    return class_name(flatten_text(table.rows[0].cells[0]))


def table_to_block(
    table: Table,
    destination: Element,
    render_cell: Optional[Callable[[TableCell], List[MarkupNode]]] = None,
) -> Element:
    """
    Append the block markup of a table to destination

    Args:
        table: Table whose first row names the block
        destination: Element receiving exactly one div
        render_cell: Renders the content of one cell; defaults to the
            markup writer's cell rendering

    Returns:
        The appended block div
    """
    if render_cell is None:
        from .writer import MarkupWriter
        render_cell = MarkupWriter().render_cell

    attributes = {"class": block_class(table)}
    if table.data_id is not None:
        attributes[DATA_ID_ATTRIBUTE] = table.data_id
    block = destination.append(Element("div", attributes))

    def render_row(row: TableRow, parent: Element) -> Element:
        row_attributes = {DATA_ID_ATTRIBUTE: row.data_id} if row.data_id is not None else {}
        row_div = parent.append(Element("div", row_attributes))
        for cell in row.cells:
            cell_attributes = {DATA_ID_ATTRIBUTE: cell.data_id} if cell.data_id is not None else {}
            row_div.append(Element("div", cell_attributes, list(render_cell(cell))))
        return row_div

    emit_with_markers(block, [(row, row.diff) for row in table.rows[1:]], render_row)
    return block
