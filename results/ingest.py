from __future__ import annotations
import json
import logging
from io import BytesIO
from typing import List, Dict, Any
import pandas as pd
from openpyxl import load_workbook

from .constants import STUDENT_NAME_TEMPLATE
from .errors import (
    InvalidJSONError,
    NotArrayError,
    UnreadableFileError,
    UnsupportedFileError,
    UploadError,
)
from .normalize import coerce_records, parse_grid
from .utils import is_blank

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")
# =========================

# Excel: first sheet as a matrix, merged cells expanded
# =========================
def _sheet_to_matrix_with_merged(wb_bytes: bytes) -> List[List[Any]]:
    wb = load_workbook(BytesIO(wb_bytes), read_only=False, data_only=True)
    ws = wb.worksheets[0]
    merged_map = {}
    for r in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = r.bounds
        top_val = ws.cell(min_row, min_col).value
        for rr in range(min_row, max_row + 1):
            for cc in range(min_col, max_col + 1):
                merged_map[(rr, cc)] = top_val

    rows = []
    max_r = ws.max_row
    max_c = ws.max_column

    for r in range(1, max_r + 1):
        row_vals = []
        for c in range(1, max_c + 1):
            v = ws.cell(r, c).value
            if (r, c) in merged_map and (v is None or str(v).strip() == ""):
                v = merged_map[(r, c)]
            row_vals.append(v)
        rows.append(row_vals)

    return rows


def _frame_to_matrix(df: pd.DataFrame) -> List[List[Any]]:
    # NaN from pandas -> None, like an empty openpyxl cell
    return [[None if isinstance(v, float) and v != v else v for v in row] for row in df.itertuples(index=False, name=None)]


def _trim_trailing_empty(matrix: List[List[Any]]) -> List[List[Any]]:
    while matrix and all(is_blank(v) for v in matrix[-1]):
        matrix.pop()
    return matrix


def read_workbook_grid(data: bytes, file_name: str = "") -> List[List[Any]]:
    """
    First sheet of an .xlsx/.xls upload as a list of rows (row 0 = headers).
    """
    try:
        if file_name.lower().endswith(".xlsx"):
            try:
                matrix = _sheet_to_matrix_with_merged(data)
            except Exception:
                logger.warning("openpyxl could not read %s, retrying with pandas", file_name, exc_info=True)
                matrix = _frame_to_matrix(pd.read_excel(BytesIO(data), sheet_name=0, header=None))
        else:
            matrix = _frame_to_matrix(pd.read_excel(BytesIO(data), sheet_name=0, header=None))
    except Exception as e:
        raise UnreadableFileError(str(e)) from e

    matrix = _trim_trailing_empty(matrix)
    logger.info("Read %d rows from %s", len(matrix), file_name or "workbook")
    return matrix


def parse_json_records(data: bytes, name_template: str = STUDENT_NAME_TEMPLATE) -> List[Dict[str, Any]]:
    try:
        obj = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidJSONError(str(e)) from e
    if not isinstance(obj, list):
        raise NotArrayError()
    return coerce_records(obj, name_template=name_template)
# =========================

# Main: upload -> students
# =========================
def ingest_upload(file_name: str, data: bytes, name_template: str = STUDENT_NAME_TEMPLATE) -> Dict[str, Any]:
    """
    Returns:
      {
        "source": <file name>,
        "kind": "json" | "excel",
        "students": [...canonical records...],
        "duplicates": [...dedupe log...],
        "subject": <most frequent subject cell or "">,
        "column_map": {...}, "headers": [...] (excel only),
      }
    Raises an UploadError subclass when the upload must be rejected.
    """
    name = (file_name or "").lower()

    if name.endswith(".json"):
        students = parse_json_records(data, name_template=name_template)
        logger.info("JSON upload %s: %d students", file_name, len(students))
        return {
            "source": file_name,
            "kind": "json",
            "students": students,
            "duplicates": [],
            "subject": "",
            "column_map": {},
            "headers": [],
        }

    if name.endswith(EXCEL_EXTENSIONS):
        grid = read_workbook_grid(data, file_name)
        try:
            report = parse_grid(grid, name_template=name_template)
        except UploadError:
            raise
        except Exception as e:
            logger.exception("Excel parsing error in %s", file_name)
            raise UnreadableFileError(str(e)) from e
        return {
            "source": file_name,
            "kind": "excel",
            "students": report["students"],
            "duplicates": report["duplicates"],
            "subject": report["subject"],
            "column_map": report["column_map"],
            "headers": report["headers"],
        }

    raise UnsupportedFileError()
