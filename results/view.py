"""
Filter & sort for the dashboard view.

The app owns the current selection and passes it in as a ViewRequest on
every recomputation; nothing here keeps state between calls.
"""
from __future__ import annotations
from typing import Any, Dict, List, NamedTuple, Optional

from .constants import GRADE_LABELS, GROUP_PRIORITY, UNKNOWN_GROUP_PRIORITY
from .grading import failed_components, grade_of, is_absent
from .policy import find_config, resolve_policy
from .stats import failed_students, group_statistics, statistics
from .utils import as_number, id_text

ALL = "all"
ABSENT_BUCKET = "absent"
TOTAL_FAIL_BUCKET = "total-fail"
TOTAL_PASS_BUCKET = "total-pass"
ROLL_ORDERS = ("roll-asc", "roll-desc")


class ViewRequest(NamedTuple):
    group: str = ALL
    search_term: str = ""
    grade: str = ALL
    criteria: str = "total"
    sort_field: str = "total"
    sort_order: str = "desc"
    subject: str = ""
    class_name: str = ""
    session: str = ""


def _component_outcome(record: Dict[str, Any], policy: Optional[Dict[str, Any]], criteria: str) -> bool:
    # True = failed, for the component(s) the current view looks at
    failed_written, failed_mcq = failed_components(record, policy)
    if criteria == "written":
        return failed_written
    if criteria == "mcq":
        return failed_mcq
    return failed_written or failed_mcq


def _matches_bucket(record: Dict[str, Any], bucket: str, policy: Optional[Dict[str, Any]], criteria: str) -> bool:
    if bucket == ABSENT_BUCKET:
        return is_absent(record)
    if bucket == TOTAL_FAIL_BUCKET:
        return not is_absent(record) and _component_outcome(record, policy, criteria)
    if bucket == TOTAL_PASS_BUCKET:
        return not is_absent(record) and not _component_outcome(record, policy, criteria)
    return grade_of(record.get("total"))[0] == bucket


def filter_students(
    records: List[Dict[str, Any]],
    request: ViewRequest = ViewRequest(),
    policy: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    out = list(records)

    if request.group and request.group != ALL:
        out = [r for r in out if r.get("group") == request.group]

    term = (request.search_term or "").strip().lower()
    if term:
        out = [
            r for r in out
            if term in str(r.get("name", "")).lower() or term in id_text(r.get("id")).lower()
        ]

    if request.grade and request.grade != ALL:
        out = [r for r in out if _matches_bucket(r, request.grade, policy, request.criteria)]

    return out


def _group_rank(r: Dict[str, Any]) -> int:
    return GROUP_PRIORITY.get(r.get("group"), UNKNOWN_GROUP_PRIORITY)


def sort_students(records: List[Dict[str, Any]], field: str = "total", order: str = "desc") -> List[Dict[str, Any]]:
    """
    roll-asc / roll-desc: group priority first (always ascending), then id.
    Anything else: numeric value of `field`, descending only for "desc".
    sorted() is stable and returns a new list.
    """
    if order in ROLL_ORDERS:
        sign = 1 if order == "roll-asc" else -1
        return sorted(records, key=lambda r: (_group_rank(r), sign * as_number(r.get("id"))))
    return sorted(records, key=lambda r: as_number(r.get(field)), reverse=(order == "desc"))


def build_dashboard_view(
    records: List[Dict[str, Any]],
    request: ViewRequest = ViewRequest(),
    configs: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    One recomputation of everything the dashboard renders:
      policy, config_key, statistics, group_statistics, rows, failed
    Summary cards and group table cover the whole collection; the table
    rows and failed list follow the filters.
    """
    policy = resolve_policy(configs, request.subject, request.class_name, request.session)
    rows = sort_students(
        filter_students(records, request, policy),
        request.sort_field,
        request.sort_order,
    )
    return {
        "policy": policy,
        "config_key": find_config(configs, request.subject, request.class_name, request.session),
        "statistics": statistics(records, policy),
        "group_statistics": group_statistics(records, policy),
        "rows": rows,
        "failed": failed_students(rows, policy),
    }


def grade_buckets() -> List[str]:
    return [ALL, ABSENT_BUCKET, TOTAL_FAIL_BUCKET, TOTAL_PASS_BUCKET] + GRADE_LABELS
