"""
JSON-file document store: students, settings, subject configs,
class -> subject mapping and saved exams, one file each under a data
directory. Subscribers to the student collection are called after every
write that changes it.
"""
from __future__ import annotations
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .utils import data_dir, load_json, save_json

logger = logging.getLogger(__name__)

STUDENTS_FILE = "students.json"
SETTINGS_FILE = "settings.json"
SUBJECT_CONFIGS_FILE = "subject_configs.json"
CLASS_SUBJECTS_FILE = "class_subjects.json"
EXAMS_FILE = "exams.json"
CACHE_FILE = "local_cache.json"

DEFAULT_SETTINGS: Dict[str, Any] = {"theme": "light", "currentExam": None}

_UNSAFE_ID_RE = re.compile(r"[^a-zA-Z0-9]")
_UNSAFE_EXAM_RE = re.compile(r"[/\s.]")


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def student_doc_id(r: Dict[str, Any]) -> str:
    parts = [_UNSAFE_ID_RE.sub("_", str(r.get(k) or "").strip()) for k in ("id", "group", "class", "session")]
    return ("STUDENT_" + "_".join(parts)).upper()


def exam_doc_id(name: Any, subject: Any) -> str:
    safe_name = _UNSAFE_EXAM_RE.sub("_", str(name or "exam").strip())
    safe_subject = _UNSAFE_EXAM_RE.sub("_", str(subject or "subject").strip())
    return f"{safe_name}_{safe_subject}"


def _read_strict(path: Path) -> Any:
    # unlike load_json, a damaged file is an error here
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class FileStore:
    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else data_dir()
        self.root.mkdir(parents=True, exist_ok=True)
        self._subscribers: List[Callable[[List[Dict[str, Any]]], None]] = []

    def _path(self, name: str) -> Path:
        return self.root / name

    # =========================
    # students
    # =========================
    def get_all(self) -> Optional[List[Dict[str, Any]]]:
        """
        Stored records in save order, None when nothing was ever saved.
        Raises OSError/ValueError when the file cannot be read.
        """
        path = self._path(STUDENTS_FILE)
        if not path.exists():
            return None
        docs = _read_strict(path)
        if not isinstance(docs, dict):
            raise ValueError(f"{path} is not a document map")
        return list(docs.values())

    def bulk_save(self, records: List[Dict[str, Any]]) -> bool:
        """Replace the whole collection."""
        stamp = _now()
        docs: Dict[str, Dict[str, Any]] = {}
        for r in records:
            doc_id = student_doc_id(r)
            docs[doc_id] = {**r, "docId": doc_id, "updatedAt": stamp}
        try:
            save_json(self._path(STUDENTS_FILE), docs)
        except OSError:
            logger.exception("Bulk save failed")
            return False
        logger.info("Saved %d student documents", len(docs))
        self._notify()
        return True

    def delete_all(self) -> bool:
        try:
            save_json(self._path(STUDENTS_FILE), {})
        except OSError:
            logger.exception("Delete all failed")
            return False
        self._notify()
        return True

    def subscribe(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        try:
            records = self.get_all() or []
        except (OSError, ValueError):
            logger.exception("Live update skipped: store unreadable")
            return
        for cb in list(self._subscribers):
            cb(records)

    # =========================
    # settings
    # =========================
    def get_settings(self) -> Dict[str, Any]:
        settings = load_json(self._path(SETTINGS_FILE), None)
        if not isinstance(settings, dict):
            return dict(DEFAULT_SETTINGS)
        return settings

    def update_settings(self, partial: Dict[str, Any]) -> bool:
        # merge, not replace
        settings = self.get_settings()
        settings.update(partial)
        settings["updatedAt"] = _now()
        try:
            save_json(self._path(SETTINGS_FILE), settings)
        except OSError:
            logger.exception("Settings update failed")
            return False
        return True

    # =========================
    # subject configs
    # =========================
    def get_subject_configs(self) -> Dict[str, Any]:
        configs = load_json(self._path(SUBJECT_CONFIGS_FILE), {})
        return configs if isinstance(configs, dict) else {}

    def save_subject_config(self, key: str, config: Dict[str, Any]) -> bool:
        configs = self.get_subject_configs()
        configs[key] = dict(config)
        try:
            save_json(self._path(SUBJECT_CONFIGS_FILE), configs)
        except OSError:
            logger.exception("Saving subject config %s failed", key)
            return False
        return True

    def delete_subject_config(self, key: str) -> bool:
        configs = self.get_subject_configs()
        if key not in configs:
            return False
        del configs[key]
        try:
            save_json(self._path(SUBJECT_CONFIGS_FILE), configs)
        except OSError:
            logger.exception("Deleting subject config %s failed", key)
            return False
        return True

    # =========================
    # class -> subjects
    # =========================
    def get_class_subjects(self) -> Dict[str, List[str]]:
        mapping = load_json(self._path(CLASS_SUBJECTS_FILE), {})
        return mapping if isinstance(mapping, dict) else {}

    def save_class_subjects(self, class_name: str, subjects: List[str]) -> bool:
        mapping = self.get_class_subjects()
        mapping[class_name] = [s for s in dict.fromkeys(str(x).strip() for x in subjects) if s]
        try:
            save_json(self._path(CLASS_SUBJECTS_FILE), mapping)
        except OSError:
            logger.exception("Saving class mapping for %s failed", class_name)
            return False
        return True

    # =========================
    # saved exams
    # =========================
    def _exams(self) -> Dict[str, Dict[str, Any]]:
        exams = load_json(self._path(EXAMS_FILE), {})
        return exams if isinstance(exams, dict) else {}

    def save_exam(self, exam: Dict[str, Any]) -> Optional[str]:
        """Store an exam snapshot; same name + subject overwrites. Returns the doc id."""
        doc_id = exam_doc_id(exam.get("name"), exam.get("subject"))
        exams = self._exams()
        exams[doc_id] = {**exam, "id": doc_id, "createdAt": exam.get("createdAt") or _now()}
        try:
            save_json(self._path(EXAMS_FILE), exams)
        except OSError:
            logger.exception("Saving exam %s failed", doc_id)
            return None
        return doc_id

    def get_saved_exams(self) -> List[Dict[str, Any]]:
        # newest first
        exams = [{"docId": k, **v} for k, v in self._exams().items()]
        return sorted(exams, key=lambda e: str(e.get("createdAt") or ""), reverse=True)

    def delete_exam(self, doc_id: str) -> bool:
        exams = self._exams()
        if doc_id not in exams:
            return False
        del exams[doc_id]
        try:
            save_json(self._path(EXAMS_FILE), exams)
        except OSError:
            logger.exception("Deleting exam %s failed", doc_id)
            return False
        return True

    def update_exam(self, doc_id: str, updates: Dict[str, Any]) -> bool:
        exams = self._exams()
        if doc_id not in exams:
            return False
        exams[doc_id].update(updates)
        exams[doc_id]["updatedAt"] = _now()
        try:
            save_json(self._path(EXAMS_FILE), exams)
        except OSError:
            logger.exception("Updating exam %s failed", doc_id)
            return False
        return True


class LocalCache:
    """Key -> string mirror kept beside the store, for offline reads."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else data_dir() / CACHE_FILE

    def _load(self) -> Dict[str, str]:
        d = load_json(self.path, {})
        return d if isinstance(d, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        d = self._load()
        d[key] = value
        save_json(self.path, d)

    def remove_item(self, key: str) -> None:
        d = self._load()
        if d.pop(key, None) is not None:
            save_json(self.path, d)
