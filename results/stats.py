"""
Aggregation over a record collection under one resolved policy.

Two failure definitions coexist on purpose:
- failed_students count in statistics(): written OR mcq below pass mark
- grade distribution and failed_students(): the same OR a total graded F
A present student with passing components but an F total is therefore
counted as passed yet bucketed under F and listed among failed students.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .constants import FAIL_GRADE, GRADE_LABELS, GROUP_NAMES, STATUS_NAMES
from .grading import classify, failed_components, grade_of, is_absent, is_failed
from .policy import DEFAULT_POLICY
from .utils import as_number


def statistics(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    policy = policy or DEFAULT_POLICY

    total_students = len(records)
    absent_students = 0
    failed_students = 0
    grade_distribution: Dict[str, int] = {g: 0 for g in GRADE_LABELS}

    for r in records:
        if is_absent(r):
            absent_students += 1
            continue

        failed_written, failed_mcq = failed_components(r, policy)
        if failed_written or failed_mcq:
            failed_students += 1

        g = grade_of(r.get("total"))[0]
        if failed_written or failed_mcq or g == FAIL_GRADE:
            grade_distribution[FAIL_GRADE] += 1
        else:
            grade_distribution[g] += 1

    participants = total_students - absent_students
    passed_students = participants - failed_students
    pass_rate = int(round(passed_students / participants * 100)) if participants > 0 else 0

    return {
        "total_students": total_students,
        "absent_students": absent_students,
        "failed_students": failed_students,
        "passed_students": passed_students,
        "participants": participants,
        "pass_rate": pass_rate,
        "grade_distribution": grade_distribution,
    }


def group_statistics(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    # groups in first-seen order
    partitions: Dict[Any, List[Dict[str, Any]]] = {}
    for r in records:
        partitions.setdefault(r.get("group"), []).append(r)
    return [{"group": g, **statistics(rows, policy)} for g, rows in partitions.items()]


def failed_students(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return [r for r in records if not is_absent(r) and is_failed(r, policy)]


def fail_reason(record: Dict[str, Any], policy: Optional[Dict[str, Any]] = None) -> Tuple[str, str]:
    """
    Which rule failed first, with a short explanation:
    ("written" | "mcq" | "total", text). ("", "") for a passing record.
    """
    policy = policy or DEFAULT_POLICY
    failed_written, failed_mcq = failed_components(record, policy)
    if failed_written:
        return "written", f'লিখিত: {record.get("written")} < {policy["written_pass"]}'
    if failed_mcq:
        return "mcq", f'MCQ: {record.get("mcq")} < {policy["mcq_pass"]}'
    if grade_of(record.get("total"))[0] == FAIL_GRADE:
        return "total", f'মোট মার্কস < {policy["total_pass"]}'
    return "", ""


def students_frame(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    """Display table: one row per record with its classification."""
    rows = []
    for i, r in enumerate(records, start=1):
        c = classify(r, policy)
        rows.append({
            "SL": i,
            "Roll": r.get("id"),
            "Name": r.get("name", ""),
            "Group": GROUP_NAMES.get(r.get("group"), r.get("group") or ""),
            "Class": r.get("class") or "",
            "Session": r.get("session") or "",
            "Written": as_number(r.get("written")),
            "MCQ": as_number(r.get("mcq")),
            "Practical": as_number(r.get("practical")),
            "Total": as_number(r.get("total")),
            "GPA": c["gpa_point"],
            "Grade": c["grade"],
            "Status": STATUS_NAMES.get(c["status"], c["status"]),
        })
    return pd.DataFrame(rows)


def failed_frame(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    rows = []
    for r in failed_students(records, policy):
        _, reason = fail_reason(r, policy)
        rows.append({
            "Roll": r.get("id"),
            "Name": r.get("name", ""),
            "Group": GROUP_NAMES.get(r.get("group"), r.get("group") or ""),
            "Written": as_number(r.get("written")),
            "MCQ": as_number(r.get("mcq")),
            "Total": as_number(r.get("total")),
            "Reason": reason,
        })
    return pd.DataFrame(rows)


def group_statistics_frame(records: List[Dict[str, Any]], policy: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    stats = group_statistics(records, policy)
    if not stats:
        return pd.DataFrame()

    df = pd.DataFrame([
        {
            "Group": GROUP_NAMES.get(s["group"], s["group"]),
            "Students": s["total_students"],
            "Absent": s["absent_students"],
            "Participants": s["participants"],
            "Passed": s["passed_students"],
            "Failed": s["failed_students"],
            **{g: s["grade_distribution"][g] for g in GRADE_LABELS},
        }
        for s in stats
    ])
    participants = df["Participants"].to_numpy(dtype=float)
    passed = df["Passed"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        rate = np.where(participants > 0, passed / participants * 100, 0.0)
    df["Pass rate (%)"] = np.round(rate, 1)
    return df


def grade_distribution_frame(stats: Dict[str, Any]) -> pd.DataFrame:
    dist = stats.get("grade_distribution", {})
    return pd.DataFrame({"Grade": GRADE_LABELS, "Students": [int(dist.get(g, 0)) for g in GRADE_LABELS]})
