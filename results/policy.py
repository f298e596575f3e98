"""
Pass-mark policy per subject.

Configs are stored under one of three keys, most specific first:
    "{subject} ({class} - {session})", "{subject} ({class})", "{subject}"
Missing configuration is not an error; it means the defaults apply.
"""
from __future__ import annotations
import math
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_SUBJECT_CONFIG, TOTAL_PASS_RATIO
from .utils import normalize_bn, parse_int_prefix

NUMERIC_FIELDS = ["total", "written", "written_pass", "mcq", "mcq_pass", "practical", "practical_pass"]

# stored documents may use the dashboard's camelCase names
_ALIASES = {
    "written_pass": ("written_pass", "writtenPass"),
    "mcq_pass": ("mcq_pass", "mcqPass"),
    "practical_pass": ("practical_pass", "practicalPass"),
    "practical_optional": ("practical_optional", "practicalOptional"),
}

_META_KEYS = {"updatedAt", "updated_at"}


def total_pass_mark(total: Any) -> int:
    # advisory only; failure rules use grade F on the total instead
    t = parse_int_prefix(total)
    if t is None or t < 0:
        t = int(DEFAULT_SUBJECT_CONFIG["total"])
    return int(math.ceil(t * TOTAL_PASS_RATIO))


def _raw(raw: Dict[str, Any], field: str) -> Any:
    for k in _ALIASES.get(field, (field,)):
        if k in raw:
            return raw[k]
    return None


def _as_flag(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(v)


def parse_subject_config(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Coerce a stored config into a policy. Numeric fields accept numbers or
    numeric strings; anything that does not parse to a non-negative integer
    falls back to the default for that field.
    """
    raw = raw if isinstance(raw, dict) else {}
    out: Dict[str, Any] = {}
    for field in NUMERIC_FIELDS:
        v = parse_int_prefix(_raw(raw, field))
        out[field] = v if v is not None and v >= 0 else int(DEFAULT_SUBJECT_CONFIG[field])
    out["practical_optional"] = _as_flag(_raw(raw, "practical_optional"))
    out["total_pass"] = total_pass_mark(out["total"])
    return out


DEFAULT_POLICY: Dict[str, Any] = parse_subject_config(DEFAULT_SUBJECT_CONFIG)


def default_policy() -> Dict[str, Any]:
    return dict(DEFAULT_POLICY)


def config_key(subject: str, class_name: str = "", session: str = "") -> str:
    if class_name and session:
        return f"{subject} ({class_name} - {session})"
    if class_name:
        return f"{subject} ({class_name})"
    return subject


def candidate_keys(subject: str, class_name: str = "", session: str = "") -> List[str]:
    keys = []
    if class_name and session:
        keys.append(config_key(subject, class_name, session))
    if class_name:
        keys.append(config_key(subject, class_name))
    keys.append(subject)
    return keys


def _stored_key(configs: Dict[str, Any], key: str) -> Optional[str]:
    # exact key first, then a key that differs only in Bengali vowel signs / case
    if key in configs and key not in _META_KEYS:
        return key
    wanted = normalize_bn(key)
    for k in configs:
        if k in _META_KEYS:
            continue
        if normalize_bn(k) == wanted:
            return k
    return None


def find_config(
    configs: Optional[Dict[str, Any]],
    subject: Optional[str],
    class_name: Optional[str] = "",
    session: Optional[str] = "",
) -> Optional[str]:
    """Stored key of the config that applies, or None when the defaults apply."""
    if not subject or not configs:
        return None
    for key in candidate_keys(subject, class_name or "", session or ""):
        stored = _stored_key(configs, key)
        if stored is not None and configs[stored] is not None:
            return stored
    return None


def resolve_policy(
    configs: Optional[Dict[str, Any]],
    subject: Optional[str],
    class_name: Optional[str] = "",
    session: Optional[str] = "",
) -> Dict[str, Any]:
    key = find_config(configs, subject, class_name, session)
    if key is None:
        return default_policy()
    return parse_subject_config(configs[key])


def history_pass_mark(config: Optional[Dict[str, Any]], criteria: str, max_marks: Any = 100) -> float:
    """
    Pass line for a score timeline: a third of the maximum for totals,
    the component pass mark otherwise.
    """
    base = parse_int_prefix(max_marks)
    pass_mark = (base if base is not None and base > 0 else 100) * TOTAL_PASS_RATIO
    if not config:
        return pass_mark
    policy = parse_subject_config(config)
    if criteria == "total" and _raw(config, "total") is not None:
        return policy["total"] * TOTAL_PASS_RATIO
    if criteria == "written" and _raw(config, "written_pass") is not None:
        return float(policy["written_pass"])
    if criteria == "mcq" and _raw(config, "mcq_pass") is not None:
        return float(policy["mcq_pass"])
    if criteria == "practical" and _raw(config, "practical_pass") is not None:
        return float(policy["practical_pass"])
    return pass_mark
