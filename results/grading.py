"""
Grading table and per-record classification.

Every function here is total: missing or dirty values are coerced, never raised.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, Tuple

from .constants import (
    GRADING_SYSTEM,
    FAIL_GRADE,
    STATUS_ABSENT,
    STATUS_FAIL,
    STATUS_PASS,
)
from .policy import DEFAULT_POLICY
from .utils import as_number

ABSENT_TOKENS = {"0", "absent", "অনুপস্থিত", ""}


def grade_of(total: Any) -> Tuple[str, float]:
    t = as_number(total)
    for lo, hi, grade, point in GRADING_SYSTEM:
        if lo <= t <= hi:
            return grade, point
    return FAIL_GRADE, 0.0


def is_value_absent(value: Any) -> bool:
    # blank, 0, "0", "absent", "অনুপস্থিত"
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    if isinstance(value, str):
        return value.strip().lower() in ABSENT_TOKENS
    return False


def is_absent(record: Dict[str, Any]) -> bool:
    # A single zero can be a real score; only a fully blank row is absence
    if not is_value_absent(record.get("written")):
        return False
    return is_value_absent(record.get("mcq")) and is_value_absent(record.get("practical"))


def _policy_marks(policy: Optional[Dict[str, Any]]) -> Tuple[float, float]:
    p = policy or DEFAULT_POLICY
    return as_number(p.get("written_pass")), as_number(p.get("mcq_pass"))


def failed_components(record: Dict[str, Any], policy: Optional[Dict[str, Any]] = None) -> Tuple[bool, bool]:
    written_pass, mcq_pass = _policy_marks(policy)
    return (
        as_number(record.get("written")) < written_pass,
        as_number(record.get("mcq")) < mcq_pass,
    )


def is_failed(record: Dict[str, Any], policy: Optional[Dict[str, Any]] = None) -> bool:
    """
    Display failure rule for a present student: written or MCQ below its
    pass mark, or a total that grades F.
    """
    failed_written, failed_mcq = failed_components(record, policy)
    return failed_written or failed_mcq or grade_of(record.get("total"))[0] == FAIL_GRADE


def status(record: Dict[str, Any], policy: Optional[Dict[str, Any]] = None) -> str:
    if is_absent(record):
        return STATUS_ABSENT
    if is_failed(record, policy):
        return STATUS_FAIL
    return STATUS_PASS


def grade(record: Dict[str, Any]) -> str:
    return grade_of(record.get("total"))[0]


def classify(record: Dict[str, Any], policy: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    g, point = grade_of(record.get("total"))
    absent = is_absent(record)
    return {
        "is_absent": absent,
        "status": status(record, policy),
        "grade": g,
        "gpa_point": point,
    }
