"""
Fixed tables shared by the engine and the dashboard: grading scale,
group tags, default pass marks, storage keys.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

# (min, max, grade, point), descending; covers 0..100 inclusive
GRADING_SYSTEM: List[Tuple[int, int, str, float]] = [
    (80, 100, "A+", 5.0),
    (70, 79, "A", 4.0),
    (60, 69, "A-", 3.5),
    (50, 59, "B", 3.0),
    (40, 49, "C", 2.0),
    (33, 39, "D", 1.0),
    (0, 32, "F", 0.0),
]
GRADE_LABELS: List[str] = [g for _, _, g, _ in GRADING_SYSTEM]
FAIL_GRADE = "F"

# Group tags. Display strings belong to the UI.
SCIENCE = "science"
BUSINESS = "business"
HUMANITIES = "humanities"
GROUPS: List[str] = [SCIENCE, BUSINESS, HUMANITIES]

GROUP_NAMES: Dict[str, str] = {
    SCIENCE: "বিজ্ঞান গ্রুপ",
    BUSINESS: "ব্যবসায় গ্রুপ",
    HUMANITIES: "মানবিক গ্রুপ",
}
GROUP_PRIORITY: Dict[str, int] = {SCIENCE: 1, BUSINESS: 2, HUMANITIES: 3}
UNKNOWN_GROUP_PRIORITY = 4

STATUS_PASS = "Pass"
STATUS_FAIL = "Fail"
STATUS_ABSENT = "Absent"

STATUS_NAMES: Dict[str, str] = {
    STATUS_PASS: "পাস",
    STATUS_FAIL: "ফেল",
    STATUS_ABSENT: "অনুপস্থিত",
}

TOTAL_PASS_RATIO = 0.33

DEFAULT_SUBJECT_CONFIG: Dict[str, object] = {
    "total": 100,
    "written": 50,
    "written_pass": 17,
    "mcq": 25,
    "mcq_pass": 8,
    "practical": 25,
    "practical_pass": 0,
    "practical_optional": False,
}

# Score fields that can drive a chart / single-component filter
CRITERIA: Dict[str, str] = {
    "total": "মোট স্কোর",
    "written": "লিখিত পরীক্ষার স্কোর",
    "mcq": "এমসিকিউ স্কোর",
    "practical": "প্র্যাকটিক্যাল পরীক্ষার স্কোর",
}

SORT_ORDERS: Dict[str, str] = {
    "desc": "সর্বোচ্চ → সর্বনিম্ন",
    "asc": "সর্বনিম্ন → সর্বোচ্চ",
    "roll-asc": "রোল: ছোট → বড়",
    "roll-desc": "রোল: বড় → ছোট",
}

STORAGE_KEYS: Dict[str, str] = {
    "student_data": "studentPerformanceData",
    "theme": "dashboardTheme",
}

MAX_CHART_ENTRIES = 200
MAX_TABLE_ENTRIES = 2000

DEBOUNCE_SECONDS = 0.3

STUDENT_NAME_TEMPLATE = "Student {id}"
STUDENT_NAME_TEMPLATE_BN = "শিক্ষার্থী {id}"
