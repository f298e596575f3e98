from __future__ import annotations
from typing import Dict, Any, List, Optional, Sequence, Tuple


def identity_key(r: Dict[str, Any]) -> Optional[str]:
    """
    Identity of one student in one exam context:
      "{id}_{name}_{group}_{class}_{session}"
    Records without a truthy id have no identity.
    """
    sid = r.get("id")
    if not sid:
        return None
    return f'{sid}_{r.get("name", "")}_{r.get("group", "")}_{r.get("class") or ""}_{r.get("session") or ""}'


def dedupe_students(
    rows: List[Dict[str, Any]],
    origin_rows: Optional[Sequence[Any]] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Removes repeated student rows, the later row wins.
    Returns:
      - unique: one record per identity key, in first-seen key order
      - duplicates_log: one entry per overwritten row
    Rows without an id are dropped. origin_rows (same length as rows) are
    the source row numbers reported in the log.
    """
    if origin_rows is None:
        origin_rows = range(1, len(rows) + 1)

    seen: Dict[str, Dict[str, Any]] = {}
    seen_origin: Dict[str, Any] = {}
    duplicates: List[Dict[str, Any]] = []

    for r, origin in zip(rows, origin_rows):
        key = identity_key(r)
        if key is None:
            continue

        old = seen.get(key)
        if old is not None:
            duplicates.append({
                "reason": "duplicate_identity",
                "key": key,
                "id": r.get("id"),
                "name": r.get("name", ""),
                "group": r.get("group", ""),

                "kept_row": origin,
                "kept_total": r.get("total", 0),

                "dropped_row": seen_origin[key],
                "dropped_total": old.get("total", 0),
            })
        # dict keeps the first insertion position on overwrite
        seen[key] = r
        seen_origin[key] = origin

    return list(seen.values()), duplicates
