# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Spreadsheet JSON <-> sheets

The JSON side is the published sheet format:

    {":type": "sheet", ":sheetname": "data", "total": 2, "limit": 2, "offset": 0,
     "data": [{"name": "a", "value": "1"}, ...], ":colWidths": [120, 50]}

or, with several public sheets, one entry per sheet plus ":names",
":version" and ":type": "multi-sheet". Sheets whose name starts with
"private-" live under ":private".

The sheet side is what the spreadsheet editor edits: a grid whose first row is
the header, padded to at least MIN_SHEET_DIMENSIONS rows and columns.
"""

import json
import logging
from typing import Any, Dict, List, Union

from ..constants import DEFAULT_COLUMN_WIDTH, MIN_SHEET_DIMENSIONS

logger = logging.getLogger(__name__)

PRIVATE_PREFIX = "private-"
MULTI_SHEET_VERSION = 3


def sheet_template() -> Dict[str, Any]:
    return {"minDimensions": [MIN_SHEET_DIMENSIONS, MIN_SHEET_DIMENSIONS], "sheetName": "data"}


def _sheet_rows(records: Any) -> List[List[Any]]:
    """Header row from the first record's keys, then each record's values"""
    if not records:
        return [[], []]
    first = records[0]
    header = list(first.keys()) if isinstance(first, dict) else []
    rows = [header]
    for record in records:
        if isinstance(record, dict):
            rows.append(list(record.values()))
        elif isinstance(record, list):
            rows.append(list(record))
        else:
            rows.append([])
    return rows


def _sheet(source: Dict[str, Any], sheet_name: str) -> Dict[str, Any]:
    sheet = sheet_template()
    min_rows, min_cols = sheet["minDimensions"]
    data = _sheet_rows(source.get("data"))

    while len(data) < min_rows:
        data.append([])
    for row in data:
        row.extend([""] * (min_cols - len(row)))

    widths = source.get(":colWidths") or []
    column_count = max(min_cols, len(data[0]) if data else 0)
    columns = [
        {"width": (widths[index] if index < len(widths) else None) or DEFAULT_COLUMN_WIDTH}
        for index in range(column_count)
    ]

    sheet.update({"sheetName": sheet_name, "data": data, "columns": columns})
    return sheet


def aem_json_to_sheets(value: Union[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Read published sheet JSON into editable sheets

    Args:
        value: The JSON document, as text or already decoded

    Returns:
        Sheets in order: the single sheet, then named sheets, then private ones
    """
    document = json.loads(value) if isinstance(value, str) else value
    sheets = []

    if document.get(":type") == "sheet":
        sheets.append(_sheet(document, document.get(":sheetname") or "data"))

    for sheet_name in document.get(":names") or []:
        sheets.append(_sheet(document.get(sheet_name) or {}, sheet_name))

    for sheet_name, source in (document.get(":private") or {}).items():
        sheets.append(_sheet(source or {}, sheet_name))

    logger.debug(f"Read {len(sheets)} sheets from JSON")
    return sheets


def _records(data: List[List[Any]]) -> List[Dict[str, Any]]:
    if not data:
        return []
    header = data[0]
    records = []
    for row in data[1:]:
        record = {}
        for index, value in enumerate(row):
            if index < len(header) and header[index]:
                record[header[index]] = value
        records.append(record)

    while len(records) > 1 and not any(records[-1].values()):
        records.pop()
    return records


def _sheet_props(sheet: Dict[str, Any]) -> Dict[str, Any]:
    records = _records(sheet.get("data") or [])
    return {
        "total": len(records),
        "limit": len(records),
        "offset": 0,
        "data": records,
        ":colWidths": [column.get("width") for column in sheet.get("columns") or []],
    }


def sheets_to_aem_json(sheets: List[Dict[str, Any]]) -> str:
    """
    Publish editable sheets as sheet JSON

    Args:
        sheets: Sheets as produced by aem_json_to_sheets or store_to_sheets

    Returns:
        Compact JSON text
    """
    public: Dict[str, Any] = {}
    private: Dict[str, Any] = {}
    for sheet in sheets:
        name = sheet.get("sheetName") or "data"
        target = private if name.startswith(PRIVATE_PREFIX) else public
        target[name] = _sheet_props(sheet)

    document: Dict[str, Any] = {}
    if len(public) > 1:
        document = dict(public)
        document[":names"] = list(public)
        document[":version"] = MULTI_SHEET_VERSION
        document[":type"] = "multi-sheet"
    elif len(public) == 1:
        name, props = next(iter(public.items()))
        document = dict(props)
        document[":sheetname"] = name
        document[":type"] = "sheet"

    if private:
        document[":private"] = private
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)
