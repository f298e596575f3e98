from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple

# Ordered (field, cues). A header cell goes to the first field whose cue it
# contains; the order is the precedence rule.
FIELD_CUES: List[Tuple[str, List[str]]] = [
    ("name", ["name", "নাম"]),
    ("id", ["roll", "রোল", "id", "আইডি"]),
    ("group", ["group", "গ্রুপ", "বিভাগ"]),
    ("written", ["written", "লিখিত"]),
    ("mcq", ["mcq", "এমসিকিউ", "বহুনির্বাচনী"]),
    ("practical", ["practical", "ব্যবহারিক", "প্রাক্টিক্যাল"]),
    ("total", ["total", "মোট"]),
    ("subject", ["subject", "বিষয়"]),
    ("class", ["class", "শ্রেণি", "শ্রেণী"]),
    ("session", ["session", "সেশন", "শিক্ষাবর্ষ"]),
]

FIELDS: List[str] = [f for f, _ in FIELD_CUES]

NOT_FOUND = -1


def normalize_headers(row: Sequence[Any]) -> List[str]:
    return ["" if h is None else str(h).lower().strip() for h in row]


def match_field(header: str) -> str:
    """Field a single (normalized) header belongs to, or "" if none."""
    if not header:
        return ""
    for field, cues in FIELD_CUES:
        if any(c in header for c in cues):
            return field
    return ""


def detect_columns(headers: Sequence[str]) -> Dict[str, int]:
    """
    Map every field to the index of the first header assigned to it,
    NOT_FOUND (-1) when no header matched.
    """
    column_map = {f: NOT_FOUND for f in FIELDS}
    for idx, header in enumerate(headers):
        field = match_field(header)
        if field and column_map[field] == NOT_FOUND:
            column_map[field] = idx
    return column_map


def describe_columns(headers: Sequence[str], column_map: Dict[str, int]) -> List[Dict[str, Any]]:
    # rows for the column-detection check in the UI
    out = []
    for field in FIELDS:
        idx = column_map.get(field, NOT_FOUND)
        out.append({
            "field": field,
            "column": idx + 1 if idx >= 0 else None,
            "header": headers[idx] if 0 <= idx < len(headers) else "",
        })
    return out
