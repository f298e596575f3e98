from __future__ import annotations
import pandas as pd
from io import BytesIO
from typing import Any, Dict, List, Optional

from .constants import GROUP_NAMES
from .grading import grade_of
from .stats import failed_frame, group_statistics_frame
from .utils import as_number

RESULT_SHEET = "Result Data"
GROUP_SHEET = "Group Summary"
FAILED_SHEET = "Failed Students"
DUPLICATES_SHEET = "Duplicates"
TEMPLATE_SHEET = "Template"

RESULT_COLUMNS = [
    "ক্রমিক নং (SL)",
    "রোল (Roll)",
    "নাম (Name)",
    "বিষয় (Subject)",
    "গ্রুপ (Group)",
    "শ্রেণি (Class)",
    "সেশন (Session)",
    "লিখিত (Written)",
    "এমসিকিউ (MCQ)",
    "ব্যবহারিক (Practical)",
    "মোট (Total)",
    "GPA",
    "গ্রেড (Grade)",
]

TEMPLATE_ROWS: List[Dict[str, Any]] = [
    {
        "Roll": "101", "Name": "রহিম উদ্দিন", "Class": "11", "Session": "2024-2025",
        "Subject": "ICT", "Group": "Science",
        "Written (50)": 40, "MCQ(25)": 20, "Practical (25)": 22, "Total (100)": 82,
        "GPA": "5.00", "Grade": "A+", "Status": "Passed",
    },
    {
        "Roll": "102", "Name": "করিম হোসেন", "Class": "11", "Session": "2024-2025",
        "Subject": "ICT", "Group": "Humanities",
        "Written (50)": 35, "MCQ(25)": 18, "Practical (25)": 20, "Total (100)": 73,
        "GPA": "4.00", "Grade": "A", "Status": "Passed",
    },
]


def result_frame(records: List[Dict[str, Any]], subject: str = "") -> pd.DataFrame:
    rows = []
    for i, r in enumerate(records, start=1):
        g, point = grade_of(r.get("total"))
        rows.append([
            i,
            r.get("id"),
            r.get("name", ""),
            subject or "-",
            GROUP_NAMES.get(r.get("group"), r.get("group") or ""),
            r.get("class") or "-",
            r.get("session") or "-",
            as_number(r.get("written")),
            as_number(r.get("mcq")),
            as_number(r.get("practical")),
            as_number(r.get("total")),
            point,
            g,
        ])
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def export_to_excel_bytes(
    records: List[Dict[str, Any]],
    subject: str = "",
    policy: Optional[Dict[str, Any]] = None,
    *,
    duplicates: Optional[List[Dict[str, Any]]] = None,
) -> bytes:
    bio = BytesIO()

    result_df = result_frame(records, subject)
    group_df = group_statistics_frame(records, policy)
    failed_df = failed_frame(records, policy)
    duplicates_df = pd.DataFrame(duplicates or [])

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        result_df.to_excel(writer, index=False, sheet_name=RESULT_SHEET)

        if not group_df.empty:
            group_df.to_excel(writer, index=False, sheet_name=GROUP_SHEET)

        if not failed_df.empty:
            failed_df.to_excel(writer, index=False, sheet_name=FAILED_SHEET)

        if not duplicates_df.empty:
            duplicates_df.to_excel(writer, index=False, sheet_name=DUPLICATES_SHEET)

        wb = writer.book

        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_fail = wb.add_format({"bg_color": "#FCE8E6"})
        fmt_pass = wb.add_format({"bg_color": "#E6F4EA"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 12, max_width: int = 40):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                w = max(10, min(max_width, int(len(str(name)) * 1.2) + 4))
                ws.set_column(col, col, max(default_width, w))

        format_df_sheet(RESULT_SHEET, result_df)
        ws = writer.sheets[RESULT_SHEET]
        ws.set_column(2, 2, 25)
        ws.set_column(3, 3, 20)

        # grade column: F in red, everything else green
        if len(result_df):
            grade_col = len(RESULT_COLUMNS) - 1
            ws.conditional_format(1, grade_col, len(result_df), grade_col, {
                "type": "cell", "criteria": "==", "value": '"F"', "format": fmt_fail,
            })
            ws.conditional_format(1, grade_col, len(result_df), grade_col, {
                "type": "cell", "criteria": "!=", "value": '"F"', "format": fmt_pass,
            })

        format_df_sheet(GROUP_SHEET, group_df)
        format_df_sheet(FAILED_SHEET, failed_df, max_width=48)
        format_df_sheet(DUPLICATES_SHEET, duplicates_df)

    return bio.getvalue()


def template_excel_bytes() -> bytes:
    bio = BytesIO()
    df = pd.DataFrame(TEMPLATE_ROWS)
    widths = [10, 20, 10, 15, 10, 15, 15, 10, 15, 12, 8, 8, 10]
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=TEMPLATE_SHEET)
        ws = writer.sheets[TEMPLATE_SHEET]
        for col, w in enumerate(widths):
            ws.set_column(col, col, w)
    return bio.getvalue()
