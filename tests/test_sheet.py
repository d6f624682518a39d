#!/usr/bin/env python3
# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Tests for the sheet subsystem: sheet JSON <-> sheets <-> Loro document.
"""

import json

import loro
import pytest

from markup_loro import doc_to_json, json_to_doc
from markup_loro.sheet import aem_json_to_sheets, sheets_to_aem_json, sheets_to_store, store_to_sheets
from markup_loro.sheet.sheet_store import cell_text

SINGLE_SHEET = {
    ":type": "sheet",
    ":sheetname": "data",
    "total": 2,
    "limit": 2,
    "offset": 0,
    "data": [{"name": "a", "value": "1"}, {"name": "b", "value": "2"}],
    ":colWidths": [120],
}


def padded(*rows, width=20, height=20):
    data = [list(row) + [""] * (width - len(row)) for row in rows]
    return data + [[""] * width for _ in range(height - len(rows))]


class TestSheetJson:
    """Published JSON -> editable sheets"""

    def test_single_sheet(self):
        sheets = aem_json_to_sheets(json.dumps(SINGLE_SHEET))
        assert len(sheets) == 1
        sheet = sheets[0]
        assert sheet["sheetName"] == "data"
        assert sheet["minDimensions"] == [20, 20]
        assert sheet["data"] == padded(["name", "value"], ["a", "1"], ["b", "2"])

    def test_column_widths_default(self):
        columns = aem_json_to_sheets(SINGLE_SHEET)[0]["columns"]
        assert len(columns) == 20
        assert columns[0] == {"width": 120}
        assert columns[1] == {"width": "50"}

    def test_wide_sheet_keeps_all_columns(self):
        record = {f"c{index}": str(index) for index in range(25)}
        sheet = aem_json_to_sheets({":type": "sheet", "data": [record]})[0]
        assert len(sheet["data"][0]) == 25
        assert len(sheet["columns"]) == 25

    def test_multi_sheet(self):
        document = {
            ":names": ["one", "two"],
            ":version": 3,
            ":type": "multi-sheet",
            "one": {"data": [{"k": "v"}]},
            "two": {"data": []},
        }
        sheets = aem_json_to_sheets(document)
        assert [sheet["sheetName"] for sheet in sheets] == ["one", "two"]
        assert sheets[1]["data"] == padded()

    def test_private_sheets_come_last(self):
        document = dict(SINGLE_SHEET, **{":private": {"private-notes": {"data": [{"note": "x"}]}}})
        sheets = aem_json_to_sheets(document)
        assert [sheet["sheetName"] for sheet in sheets] == ["data", "private-notes"]
        assert sheets[1]["data"][:2] == padded(["note"], ["x"])[:2]


class TestSheetsToJson:
    """Editable sheets -> published JSON"""

    def test_single_public_sheet(self):
        sheets = [{"sheetName": "data", "data": padded(["name", "value"], ["a", "1"]), "columns": [{"width": 80}]}]
        document = json.loads(sheets_to_aem_json(sheets))
        assert document[":type"] == "sheet"
        assert document[":sheetname"] == "data"
        assert document["data"] == [{"name": "a", "value": "1"}]
        assert document["total"] == document["limit"] == 1
        assert document["offset"] == 0
        assert document[":colWidths"] == [80]

    def test_multi_sheet_and_private(self):
        sheets = [
            {"sheetName": "one", "data": [["k"], ["v"]]},
            {"sheetName": "two", "data": [["k"], ["w"]]},
            {"sheetName": "private-x", "data": [["k"], ["p"]]},
        ]
        document = json.loads(sheets_to_aem_json(sheets))
        assert document[":type"] == "multi-sheet"
        assert document[":version"] == 3
        assert document[":names"] == ["one", "two"]
        assert document["two"]["data"] == [{"k": "w"}]
        assert document[":private"]["private-x"]["data"] == [{"k": "p"}]

    def test_trailing_empty_rows_are_trimmed(self):
        sheets = [{"sheetName": "data", "data": [["k", ""], ["", "x"], ["1", ""], ["", "x"], ["", ""]]}]
        assert json.loads(sheets_to_aem_json(sheets))["data"] == [{"k": ""}, {"k": "1"}]

    def test_all_empty_rows_keep_one_record(self):
        sheets = [{"sheetName": "data", "data": padded(["k"])}]
        assert json.loads(sheets_to_aem_json(sheets))["data"] == [{"k": ""}]

    def test_compact_and_unescaped(self):
        text = sheets_to_aem_json([{"sheetName": "data", "data": [["name"], ["café"]]}])
        assert ": " not in text
        assert "café" in text


class TestSheetStore:
    """Sheets stored in and read back from a Loro document"""

    @pytest.fixture
    def doc(self):
        return loro.LoroDoc()

    def sheets(self, *names):
        return [
            {"sheetName": name, "data": [["A", "B", "C"], ["D", "E", "F"], ["G", "H", "I"]]}
            for name in names
        ]

    def test_cells_are_stored(self, doc):
        sheets_to_store(self.sheets("sheet1", "sheet2"), doc)
        stored = doc.get_list("sheets").get_deep_value()
        assert [sheet["sheetName"] for sheet in stored] == ["sheet1", "sheet2"]
        first_row = stored[0]["data"][0]
        assert first_row["nodeName"] == "row"
        assert [cell["attributes"]["value"] for cell in first_row["children"][:3]] == ["A", "B", "C"]

    def test_empty_sheet_gets_minimum_grid(self, doc):
        sheets_to_store([{"sheetName": "sheet1", "data": [], "columns": []}], doc)
        stored = doc.get_list("sheets").get_deep_value()[0]
        assert len(stored["data"]) == 20
        assert len(stored["data"][0]["children"]) == 20
        assert stored["columns"] == []
        assert stored["minDimensions"] == []

    def test_store_round_trip(self, doc):
        sheets = self.sheets("sheet1")
        sheets[0]["columns"] = [{"width": 100}, {"width": 50}, {"width": 200}]
        sheets_to_store(sheets, doc)
        result = store_to_sheets(doc)
        assert len(result) == 1
        assert result[0]["sheetName"] == "sheet1"
        assert result[0]["columns"] == [{"width": 100}, {"width": 50}, {"width": 200}]
        assert result[0]["data"] == padded(["A", "B", "C"], ["D", "E", "F"], ["G", "H", "I"])
        assert "minDimensions" not in result[0]

    def test_min_dimensions_are_unwrapped(self, doc):
        sheets_to_store([{"sheetName": "s", "data": [], "minDimensions": [20, 20]}], doc)
        assert doc.get_list("sheets").get_deep_value()[0]["minDimensions"] == [[20, 20]]
        assert store_to_sheets(doc)[0]["minDimensions"] == [20, 20]

    def test_read_only_projection(self, doc):
        sheets = self.sheets("sheet1")
        sheets[0]["columns"] = [{"width": 100}, {"width": 50}, {"width": 200}]
        sheets[0]["minDimensions"] = [20, 20]
        sheets_to_store(sheets, doc)
        result = store_to_sheets(doc, can_write=False)[0]
        assert result["columns"] == [
            {"width": 100, "readOnly": True},
            {"width": 50, "readOnly": True},
            {"width": 200, "readOnly": True},
        ]
        assert "minDimensions" not in result

    def test_delete_existing(self, doc):
        sheets_to_store(self.sheets("sheet1"), doc)
        sheets_to_store(self.sheets("sheet2"), doc)
        assert len(doc.get_list("sheets").get_deep_value()) == 2
        sheets_to_store(self.sheets("sheet3"), doc, delete_existing=True)
        assert [sheet["sheetName"] for sheet in store_to_sheets(doc)] == ["sheet3"]

    def test_values_are_stored_as_strings(self, doc):
        sheets_to_store([{"sheetName": "s", "data": [["n", "flag"], [1, True], [2.5, None]]}], doc)
        assert store_to_sheets(doc)[0]["data"][1][:2] == ["1", "true"]
        assert store_to_sheets(doc)[0]["data"][2][:2] == ["2.5", ""]


class TestCellText:

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (1.0, "1"),
        (2.5, "2.5"),
        ("x", "x"),
    ])
    def test_cell_text(self, value, expected):
        assert cell_text(value) == expected


class TestJsonDocument:
    """json_to_doc / doc_to_json"""

    def test_round_trip(self):
        doc = loro.LoroDoc()
        json_to_doc(json.dumps(SINGLE_SHEET), doc)
        document = json.loads(doc_to_json(doc))
        assert document[":type"] == "sheet"
        assert document[":sheetname"] == "data"
        assert document["data"] == SINGLE_SHEET["data"]
        assert document["total"] == 2
        assert document[":colWidths"][:2] == [120, "50"]

    def test_json_to_doc_replaces_sheets(self):
        doc = loro.LoroDoc()
        json_to_doc(SINGLE_SHEET, doc)
        json_to_doc({":type": "sheet", ":sheetname": "other", "data": [{"k": "v"}]}, doc)
        document = json.loads(doc_to_json(doc))
        assert document[":sheetname"] == "other"
        assert document["data"] == [{"k": "v"}]
