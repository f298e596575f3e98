"""
Tabular ingestion: a header row plus data rows (English or Bengali headers)
become canonical student records.

Canonical record keys: id, name, group, class, session, written, mcq,
practical, total. id/name/group/total are always set.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .constants import BUSINESS, HUMANITIES, SCIENCE, STUDENT_NAME_TEMPLATE
from .dedupe import dedupe_students
from .errors import NotEnoughDataError, NoValidStudentsError
from .header_detect import NOT_FOUND, detect_columns, normalize_headers
from .utils import cell_text, is_blank, parse_float_prefix, parse_int_prefix, tidy_number

logger = logging.getLogger(__name__)

# Checked in this order, first hit wins. Business goes first because
# "business studies" and "b.com" must not fall through to other groups.
GROUP_CUES: List[Tuple[str, List[str]]] = [
    (BUSINESS, ["business", "ব্যবসায়", "বাণিজ্য", "studies", "commerce", "b."]),
    (HUMANITIES, ["arts", "মানবিক", "humanities"]),
    (SCIENCE, ["science", "বিজ্ঞান"]),
]
DEFAULT_GROUP = SCIENCE

SCORE_ABSENT_TOKENS = {"absent", "অনুপস্থিত", ""}


def classify_group(value: Any) -> str:
    if is_blank(value):
        return DEFAULT_GROUP
    v = str(value).lower().strip()
    for group, cues in GROUP_CUES:
        if any(c in v for c in cues):
            return group
    return DEFAULT_GROUP


def parse_score(value: Any):
    if is_blank(value):
        return 0
    if isinstance(value, str) and value.strip().lower() in SCORE_ABSENT_TOKENS:
        return 0
    f = parse_float_prefix(value)
    if f is None:
        return 0
    return tidy_number(f)


def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx == NOT_FOUND or idx >= len(row):
        return None
    return row[idx]


def parse_row(
    row: Sequence[Any],
    column_map: Dict[str, int],
    row_index: int,
    name_template: str = STUDENT_NAME_TEMPLATE,
) -> Optional[Dict[str, Any]]:
    """
    One data row -> record, or None for a row with neither a roll nor a score.
    row_index is the 1-based data row number, used as the fallback id.
    """
    raw_id = _cell(row, column_map["id"])
    sid = parse_int_prefix(raw_id) or row_index

    name = cell_text(_cell(row, column_map["name"]))
    if not name:
        name = name_template.format(id=sid)

    has_roll = not is_blank(raw_id)
    has_scores = not is_blank(_cell(row, column_map["written"])) or not is_blank(_cell(row, column_map["total"]))
    if not has_roll and not has_scores:
        return None

    group = DEFAULT_GROUP
    raw_group = _cell(row, column_map["group"])
    if not is_blank(raw_group):
        group = classify_group(raw_group)
        logger.debug("Row %s: group %r -> %s", row_index, raw_group, group)

    written = parse_score(_cell(row, column_map["written"]))
    mcq = parse_score(_cell(row, column_map["mcq"]))
    practical = parse_score(_cell(row, column_map["practical"]))

    total = tidy_number(float(written + mcq + practical))
    raw_total = _cell(row, column_map["total"])
    if not is_blank(raw_total) and raw_total != 0:
        explicit = parse_float_prefix(raw_total)
        if explicit is not None:
            total = tidy_number(explicit)

    return {
        "id": sid,
        "name": name,
        "group": group,
        "class": cell_text(_cell(row, column_map["class"])),
        "session": cell_text(_cell(row, column_map["session"])),
        "written": written,
        "mcq": mcq,
        "practical": practical,
        "total": total,
    }


def _pick_mode(values: List[str]) -> str:
    s = pd.Series([v for v in values if v], dtype="object")
    if s.empty:
        return ""
    return str(s.mode().iloc[0])


def parse_grid(grid: Sequence[Sequence[Any]], name_template: str = STUDENT_NAME_TEMPLATE) -> Dict[str, Any]:
    """
    Full normalization report for a 2-D grid (row 0 = headers):
      students, duplicates, column_map, headers, skipped_rows, subject
    Raises NotEnoughDataError for fewer than two rows and
    NoValidStudentsError when no row survives.
    """
    if grid is None or len(grid) < 2:
        raise NotEnoughDataError()

    headers = normalize_headers(grid[0] or [])
    column_map = detect_columns(headers)
    logger.info("Detected columns: %s", {k: v for k, v in column_map.items() if v != NOT_FOUND})

    rows: List[Dict[str, Any]] = []
    origins: List[int] = []
    skipped: List[int] = []
    subjects: List[str] = []

    for i in range(1, len(grid)):
        row = grid[i]
        if not row:
            skipped.append(i + 1)
            continue
        rec = parse_row(row, column_map, i, name_template=name_template)
        if rec is None:
            skipped.append(i + 1)
            continue
        rows.append(rec)
        origins.append(i + 1)  # spreadsheet row number
        subjects.append(cell_text(_cell(row, column_map["subject"])))

    students, duplicates = dedupe_students(rows, origins)
    logger.info("Unique students: %d (from %d rows)", len(students), len(rows))

    if not students:
        raise NoValidStudentsError()

    return {
        "students": students,
        "duplicates": duplicates,
        "column_map": column_map,
        "headers": headers,
        "skipped_rows": skipped,
        "subject": _pick_mode(subjects),
    }


def normalize_grid(grid: Sequence[Sequence[Any]], name_template: str = STUDENT_NAME_TEMPLATE) -> List[Dict[str, Any]]:
    return parse_grid(grid, name_template=name_template)["students"]


def coerce_record(raw: Dict[str, Any], position: int, name_template: str = STUDENT_NAME_TEMPLATE) -> Dict[str, Any]:
    """
    Fill the defaults of a record that arrived already shaped (JSON upload,
    store feed). Extra keys are kept.
    """
    sid = parse_int_prefix(raw.get("id")) or position
    name = cell_text(raw.get("name")) or name_template.format(id=sid)

    written = parse_score(raw.get("written"))
    mcq = parse_score(raw.get("mcq"))
    practical = parse_score(raw.get("practical"))
    total = tidy_number(float(written + mcq + practical))
    if not is_blank(raw.get("total")):
        explicit = parse_float_prefix(raw.get("total"))
        if explicit is not None:
            total = tidy_number(explicit)

    out = dict(raw)
    out.update({
        "id": sid,
        "name": name,
        "group": classify_group(raw.get("group")),
        "class": cell_text(raw.get("class")),
        "session": cell_text(raw.get("session")),
        "written": written,
        "mcq": mcq,
        "practical": practical,
        "total": total,
    })
    return out


def coerce_records(items: List[Dict[str, Any]], name_template: str = STUDENT_NAME_TEMPLATE) -> List[Dict[str, Any]]:
    return [coerce_record(r, i + 1, name_template) for i, r in enumerate(items) if isinstance(r, dict)]
