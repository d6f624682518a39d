# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Sheets <-> CRDT storage

Each sheet is one value of the "sheets" sequence:

    {
      "sheetName": "data",
      "minDimensions": [[20, 20]],      # wrapped, empty when unknown
      "data": [                         # XML-like grid, at least 20 x 20
        {"nodeName": "row", "children": [
          {"nodeName": "cell", "attributes": {"value": "A"}},
          ...
        ]},
        ...
      ],
      "columns": [{"width": "50"}, ...]
    }

Cell values are always stored as strings.
"""

import logging
from typing import Any, Dict, List

from ..constants import MIN_SHEET_DIMENSIONS, SHEETS_KEY
from ..model.document_store import as_document_store

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """String form of a cell value; missing values are empty"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def row_to_store(row: List[Any]) -> Dict[str, Any]:
    cell_count = max(len(row), MIN_SHEET_DIMENSIONS)
    cells = [
        {"nodeName": "cell", "attributes": {"value": cell_text(row[index] if index < len(row) else None)}}
        for index in range(cell_count)
    ]
    return {"nodeName": "row", "children": cells}


def data_to_store(data: List[List[Any]]) -> List[Dict[str, Any]]:
    """Grid rows padded to at least MIN_SHEET_DIMENSIONS in both directions"""
    data = data or []
    row_count = max(len(data), MIN_SHEET_DIMENSIONS)
    return [row_to_store(data[index] if index < len(data) else []) for index in range(row_count)]


def store_to_data(rows: Any) -> List[List[str]]:
    data = []
    for row in rows or []:
        cells = row.get("children") if isinstance(row, dict) else None
        values = []
        for cell in cells or []:
            attributes = cell.get("attributes") if isinstance(cell, dict) else None
            values.append((attributes or {}).get("value") or "")
        data.append(values)
    return data


def sheets_to_store(
    sheets: List[Dict[str, Any]],
    document: Any,
    delete_existing: bool = False,
    sheets_key: str = SHEETS_KEY,
) -> None:
    """
    Append sheets to the document in one transaction

    Args:
        sheets: Editable sheets
        document: A loro.LoroDoc or DocumentStore
        delete_existing: Remove the sheets already stored first
        sheets_key: Root key of the sheets sequence
    """
    values = []
    for sheet in sheets:
        min_dimensions = sheet.get("minDimensions")
        values.append({
            "sheetName": sheet.get("sheetName"),
            "minDimensions": [list(min_dimensions)] if min_dimensions else [],
            "data": data_to_store(sheet.get("data")),
            "columns": [dict(column) for column in sheet.get("columns") or []],
        })

    store = as_document_store(document)
    sequence = store.get_sequence(sheets_key)
    with store.transaction():
        if delete_existing:
            sequence.clear()
        position = len(sequence)
        for value in values:
            sequence.insert(position, value)
            position += 1

    logger.info(f"Stored {len(values)} sheets")


def store_to_sheets(document: Any, can_write: bool = True, sheets_key: str = SHEETS_KEY) -> List[Dict[str, Any]]:
    """
    Read the stored sheets back

    Args:
        document: A loro.LoroDoc or DocumentStore
        can_write: False yields the read-only projection, where every column
            is marked readOnly and minDimensions is left out
        sheets_key: Root key of the sheets sequence

    Returns:
        Editable sheets
    """
    store = as_document_store(document)
    sheets = []
    for value in store.get_sequence(sheets_key).items():
        if not isinstance(value, dict):
            logger.warning(f"Ignoring stored sheet that is not a map: {type(value).__name__}")
            continue
        sheet: Dict[str, Any] = {"sheetName": value.get("sheetName")}
        min_dimensions = value.get("minDimensions")
        if min_dimensions:
            sheet["minDimensions"] = min_dimensions[0]
        sheet["data"] = store_to_data(value.get("data"))

        columns = []
        for column in value.get("columns") or []:
            column = dict(column)
            if not can_write:
                column["readOnly"] = True
            columns.append(column)
        sheet["columns"] = columns

        if not can_write:
            sheet.pop("minDimensions", None)
        sheets.append(sheet)
    return sheets
