"""
Saved exams and per-student timelines across them.

An exam document is a snapshot:
  {name, subject, class, session, date, studentCount, studentData, stats, config_key}
"""
from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

from .grading import grade_of
from .policy import find_config, resolve_policy
from .stats import statistics
from .utils import id_text, to_english_digits, try_parse_date

logger = logging.getLogger(__name__)

_ROLL_QUERY_RE = re.compile(r"^\d+$")
ALL = "all"
NO_SESSION = "N/A"


def build_exam(
    name: str,
    subject: str,
    records: List[Dict[str, Any]],
    configs: Optional[Dict[str, Any]] = None,
    class_name: str = "",
    session: str = "",
    date: Any = None,
) -> Dict[str, Any]:
    # stats are computed under the policy that applies to this subject/class/session
    policy = resolve_policy(configs, subject, class_name, session)
    return {
        "name": (name or "").strip(),
        "subject": (subject or "").strip(),
        "class": class_name or "",
        "session": session or "",
        "date": try_parse_date(date) if date is not None else None,
        "studentCount": len(records),
        "studentData": [dict(r) for r in records],
        "stats": statistics(records, policy),
        "config_key": find_config(configs, subject, class_name, session),
    }


def recompute_exam_stats(exam: Dict[str, Any], configs: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Copy of `exam` with stats refreshed against the current configs."""
    records = exam.get("studentData") or []
    policy = resolve_policy(configs, exam.get("subject"), exam.get("class"), exam.get("session"))
    out = dict(exam)
    out["stats"] = statistics(records, policy)
    out["studentCount"] = len(records)
    out["config_key"] = find_config(configs, exam.get("subject"), exam.get("class"), exam.get("session"))
    return out


def _same_student(r: Dict[str, Any], student_id: Any, group: Optional[str]) -> bool:
    if id_text(r.get("id")) != id_text(student_id):
        return False
    return not group or r.get("group") == group


def _exam_date_key(exam: Dict[str, Any]):
    when = exam.get("date") or exam.get("createdAt")
    return try_parse_date(when) or "", str(exam.get("createdAt") or "")


def student_history(exams: List[Dict[str, Any]], student_id: Any, group: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    One entry per saved exam the student appears in, oldest first.
    Entry = the student's record + examName, subject, date, grade.
    """
    history = []
    for exam in sorted(exams, key=_exam_date_key):
        rows = exam.get("studentData")
        if not isinstance(rows, list):
            continue
        found = next((r for r in rows if _same_student(r, student_id, group)), None)
        if found is None:
            continue
        history.append({
            **found,
            "examName": exam.get("name", ""),
            "subject": exam.get("subject", ""),
            "session": found.get("session") or exam.get("session") or "",
            "date": exam.get("date") or try_parse_date(exam.get("createdAt")),
            "grade": grade_of(found.get("total"))[0],
        })
    logger.debug("History for %s/%s: %d exams", student_id, group, len(history))
    return history


def filter_history(history: List[Dict[str, Any]], session: str = ALL, subject: str = ALL) -> List[Dict[str, Any]]:
    out = history
    if session and session != ALL:
        out = [h for h in out if (h.get("session") or NO_SESSION) == session]
    if subject and subject != ALL:
        out = [h for h in out if h.get("subject") == subject]
    return out


def exam_subject_entries(
    exams: List[Dict[str, Any]],
    exam_name: str,
    student_id: Any,
    group: Optional[str] = None,
    subject: str = ALL,
) -> List[Dict[str, Any]]:
    """The student's result in every subject saved under one exam name."""
    out = []
    for exam in exams:
        if exam.get("name") != exam_name:
            continue
        if subject and subject != ALL and exam.get("subject") != subject:
            continue
        found = next((r for r in exam.get("studentData") or [] if _same_student(r, student_id, group)), None)
        if found is not None:
            out.append({
                **found,
                "examName": exam_name,
                "subject": exam.get("subject", ""),
                "grade": grade_of(found.get("total"))[0],
            })
    return out


def search_candidates(exams: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """
    Students across all saved exams matching `query`.
    All digits (Bengali digits included) = exact roll; otherwise a
    case-insensitive name substring. One candidate per id + group.
    """
    if not query or not query.strip():
        return []

    normalized = to_english_digits(query.strip())
    by_roll = bool(_ROLL_QUERY_RE.match(normalized))
    needle = query.strip().lower()

    candidates: Dict[str, Dict[str, Any]] = {}
    for exam in exams:
        for s in exam.get("studentData") or []:
            if by_roll:
                match = id_text(s.get("id")) == normalized
            else:
                match = needle in str(s.get("name") or "").lower()
            if not match:
                continue
            key = f'{id_text(s.get("id"))}_{s.get("group")}'
            if key not in candidates:
                candidates[key] = {
                    "id": s.get("id"),
                    "name": s.get("name"),
                    "group": s.get("group"),
                    "class": s.get("class") or exam.get("class") or "",
                    "session": s.get("session") or exam.get("session") or "",
                }
    return list(candidates.values())
