from io import BytesIO

from openpyxl import load_workbook

from results.export import (
    DUPLICATES_SHEET,
    FAILED_SHEET,
    GROUP_SHEET,
    RESULT_COLUMNS,
    RESULT_SHEET,
    TEMPLATE_SHEET,
    export_to_excel_bytes,
    result_frame,
    template_excel_bytes,
)
from results.ingest import ingest_upload


def test_result_frame(student):
    df = result_frame([student(101, name="Rahim", written=40, mcq=20, practical=22)], subject="ICT")
    assert list(df.columns) == RESULT_COLUMNS
    row = df.iloc[0]
    assert row["ক্রমিক নং (SL)"] == 1
    assert row["রোল (Roll)"] == 101
    assert row["বিষয় (Subject)"] == "ICT"
    assert row["গ্রুপ (Group)"] == "বিজ্ঞান গ্রুপ"
    assert row["শ্রেণি (Class)"] == "-"
    assert row["GPA"] == 5.0
    assert row["গ্রেড (Grade)"] == "A+"


def test_export_sheets(student):
    records = [student(1), student(2, written=5)]
    dups = [{"reason": "duplicate_identity", "key": "1_x", "kept_row": 3, "dropped_row": 2}]
    wb = load_workbook(BytesIO(export_to_excel_bytes(records, "ICT", duplicates=dups)))
    assert wb.sheetnames == [RESULT_SHEET, GROUP_SHEET, FAILED_SHEET, DUPLICATES_SHEET]
    ws = wb[RESULT_SHEET]
    assert ws.max_row == 3
    assert ws.cell(1, 2).value == "রোল (Roll)"
    assert wb[FAILED_SHEET].cell(2, 1).value == 2


def test_export_without_failures_or_duplicates(student):
    wb = load_workbook(BytesIO(export_to_excel_bytes([student(1)])))
    assert wb.sheetnames == [RESULT_SHEET, GROUP_SHEET]


def test_export_empty():
    wb = load_workbook(BytesIO(export_to_excel_bytes([])))
    assert wb.sheetnames == [RESULT_SHEET]


def test_template_round_trips_through_ingest():
    data = template_excel_bytes()
    wb = load_workbook(BytesIO(data))
    assert wb.sheetnames == [TEMPLATE_SHEET]

    result = ingest_upload("student_data_template.xlsx", data)
    students = result["students"]
    assert [s["id"] for s in students] == [101, 102]
    assert [s["group"] for s in students] == ["science", "humanities"]
    assert students[0]["total"] == 82
    assert students[0]["class"] == "11"
    assert result["subject"] == "ICT"
