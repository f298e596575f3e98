"""
This package contains:
- upload ingestion (JSON / XLSX / XLS)
- column detection for English and Bengali headers
- student deduplication
- subject pass-mark policies
- grading, statistics, filtering and sorting
- storage with an offline cache, saved exams and student history
- Excel export
"""
from .ingest import ingest_upload
from .normalize import normalize_grid, coerce_records
from .header_detect import detect_columns
from .dedupe import dedupe_students
from .grading import grade_of, classify, is_absent, status
from .policy import resolve_policy, parse_subject_config, config_key
from .stats import statistics, group_statistics, failed_students
from .view import ViewRequest, filter_students, sort_students, build_dashboard_view
from .history import build_exam, student_history, search_candidates
from .store import FileStore, LocalCache
from .sync import DataService
from .export import export_to_excel_bytes, template_excel_bytes

__all__ = [
    "ingest_upload",
    "normalize_grid",
    "coerce_records",
    "detect_columns",
    "dedupe_students",
    "grade_of",
    "classify",
    "is_absent",
    "status",
    "resolve_policy",
    "parse_subject_config",
    "config_key",
    "statistics",
    "group_statistics",
    "failed_students",
    "ViewRequest",
    "filter_students",
    "sort_students",
    "build_dashboard_view",
    "build_exam",
    "student_history",
    "search_candidates",
    "FileStore",
    "LocalCache",
    "DataService",
    "export_to_excel_bytes",
    "template_excel_bytes",
]
