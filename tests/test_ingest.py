import json
from io import BytesIO

import pytest
from openpyxl import Workbook

from results.errors import (
    InvalidJSONError,
    NotArrayError,
    NotEnoughDataError,
    UnreadableFileError,
    UnsupportedFileError,
    UploadError,
)
from results.ingest import ingest_upload, read_workbook_grid


def _xlsx(rows, merge=None):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    if merge:
        ws.merge_cells(merge)
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def test_json_array_upload():
    data = json.dumps([
        {"id": 1, "name": "Rahim", "group": "Science", "written": 40, "mcq": 20, "practical": 22, "total": 82},
        {"id": 2, "written": 10, "mcq": 5},
    ]).encode("utf-8")
    result = ingest_upload("students.json", data)
    assert result["kind"] == "json"
    assert result["source"] == "students.json"
    assert [s["id"] for s in result["students"]] == [1, 2]
    assert result["students"][1]["name"] == "Student 2"
    assert result["students"][1]["total"] == 15
    assert result["duplicates"] == []


def test_empty_json_array_is_accepted():
    assert ingest_upload("empty.json", b"[]")["students"] == []


def test_json_with_bom():
    data = "\ufeff[]".encode("utf-8")
    assert ingest_upload("bom.json", data)["students"] == []


def test_json_must_be_array():
    with pytest.raises(NotArrayError) as exc:
        ingest_upload("obj.json", b'{"id": 1}')
    assert exc.value.message == "ডেটা অ্যারে ফরম্যাটে হতে হবে"


def test_invalid_json():
    with pytest.raises(InvalidJSONError) as exc:
        ingest_upload("bad.json", b"[{")
    assert exc.value.code == "invalid_json"
    assert exc.value.message.startswith("ভুল JSON ফরম্যাট: ")


def test_unsupported_extension():
    with pytest.raises(UnsupportedFileError):
        ingest_upload("students.csv", b"id,name\n1,A\n")
    with pytest.raises(UploadError):
        ingest_upload("", b"")


def test_xlsx_upload():
    data = _xlsx([
        ["Roll", "Name", "Group", "Subject", "Written (50)", "MCQ(25)", "Practical (25)", "Total (100)"],
        [101, "রহিম উদ্দিন", "Science", "ICT", 40, 20, 22, 82],
        [102, "করিম হোসেন", "Humanities", "ICT", 35, 18, 20, None],
        [101, "রহিম উদ্দিন", "Science", "ICT", 41, 20, 22, 83],
    ])
    result = ingest_upload("Results.XLSX", data)
    assert result["kind"] == "excel"
    assert result["subject"] == "ICT"
    assert [s["id"] for s in result["students"]] == [101, 102]
    assert result["students"][0]["total"] == 83
    assert result["students"][1]["total"] == 73
    assert result["students"][1]["group"] == "humanities"
    assert len(result["duplicates"]) == 1
    assert result["column_map"]["id"] == 0
    assert result["headers"][0] == "roll"


def test_xlsx_header_only():
    data = _xlsx([["Roll", "Name", "Written"]])
    with pytest.raises(NotEnoughDataError):
        ingest_upload("one_row.xlsx", data)


def test_merged_cells_are_expanded():
    data = _xlsx([
        ["Roll", "Name", "Group", "Written"],
        [1, "A", "Science", 30],
        [2, "B", None, 30],
    ], merge="C2:C3")
    grid = read_workbook_grid(data, "merged.xlsx")
    assert grid[2][2] == "Science"


def test_unreadable_workbook():
    with pytest.raises(UnreadableFileError):
        ingest_upload("broken.xlsx", b"not a workbook")


def test_only_first_sheet_is_read():
    wb = Workbook()
    wb.active.append(["Roll", "Name", "Written"])
    wb.active.append([1, "A", 30])
    other = wb.create_sheet("Notes")
    other.append(["ignored"])
    bio = BytesIO()
    wb.save(bio)
    assert read_workbook_grid(bio.getvalue(), "two_sheets.xlsx") == [["Roll", "Name", "Written"], [1, "A", 30]]
