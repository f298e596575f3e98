import os
import re
import json
import math
import logging
from pathlib import Path
from typing import Any, Optional
from dateutil import parser as dtparser

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

APPDATA = os.environ.get("APPDATA")
if os.environ.get("RESULTS_DATA_DIR"):
    USER_DATA_DIR = Path(os.environ["RESULTS_DATA_DIR"])
elif APPDATA:
    USER_DATA_DIR = Path(APPDATA) / "ResultDashboard" / "data"
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def save_json(path: Path, obj: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants
_BN_DIGITS = str.maketrans("০১২৩৪৫৬৭৮৯", "0123456789")
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Bengali vowel signs that spreadsheets and keyboards mix up
_BN_VARIANTS = str.maketrans({"ী": "ি", "ূ": "ু", "ৈ": "ে", "ৌ": "ো"})


def norm_text(s: Any) -> str:
    """
    Text normalization for headers and free-text cells:
    - BOM and non-breaking spaces removed
    - lower case
    - whitespace collapsed
    """
    if s is None:
        return ""
    s = str(s)
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    s = s.lower()
    s = re.sub(r"\s+", " ", s).strip()
    return s


def normalize_bn(s: Any) -> str:
    # ী/ি, ূ/ু, ৈ/ে, ৌ/ো are treated as the same letter for key lookups
    if not s:
        return ""
    return str(s).translate(_BN_VARIANTS).lower().strip()


def to_english_digits(s: str) -> str:
    return s.translate(_BN_DIGITS)


def is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and math.isnan(v):
        return True
    if isinstance(v, str) and not v.strip():
        return True
    return False


def tidy_number(x: float):
    # 40.0 -> 40, 40.5 stays
    if isinstance(x, float) and x.is_integer():
        return int(x)
    return x


def cell_text(v: Any) -> str:
    if is_blank(v):
        return ""
    if isinstance(v, float):
        v = tidy_number(v)
    return str(v).strip()


def parse_int_prefix(v: Any) -> Optional[int]:
    """
    Leading-integer parse: "101" -> 101, "12abc" -> 12, 12.9 -> 12.
    Returns None when nothing numeric leads the value.
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        if isinstance(v, float) and not math.isfinite(v):
            return None
        return int(v)
    m = _INT_PREFIX_RE.match(to_english_digits(str(v).strip()))
    if not m:
        return None
    return int(m.group(0))


def parse_float_prefix(v: Any) -> Optional[float]:
    """
    Leading-float parse: "40" -> 40.0, "17.5 marks" -> 17.5, "abc" -> None.
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        f = float(v)
        return None if math.isnan(f) else f
    m = _FLOAT_PREFIX_RE.match(to_english_digits(str(v).strip()))
    if not m:
        return None
    return float(m.group(0))


def as_number(v: Any) -> float:
    """
    Numeric coercion for threshold comparisons. Blank is 0, strings must be
    fully numeric, anything unparsable (NaN) counts as 0.
    """
    if v is None:
        return 0.0
    if isinstance(v, (int, float)):
        f = float(v)
        return 0.0 if math.isnan(f) else f
    s = to_english_digits(str(v).strip())
    if not s:
        return 0.0
    try:
        f = float(s)
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(f) else f


def id_text(v: Any) -> str:
    if isinstance(v, float):
        v = tidy_number(v)
    return "" if v is None else str(v)


def try_parse_date(s: Any) -> Optional[str]:
    # ISO date (YYYY-MM-DD) from datetime, Timestamp or text; None when unrecognized
    if s is None:
        return None

    # pandas.Timestamp / datetime.date / datetime.datetime
    if hasattr(s, "year") and hasattr(s, "month") and hasattr(s, "day"):
        return f"{int(s.year):04d}-{int(s.month):02d}-{int(s.day):02d}"

    txt = to_english_digits(norm_text(s))
    if not txt:
        return None

    # dd.mm.yyyy / dd/mm/yyyy as written on Bangladeshi result sheets
    if re.match(r"^\d{1,2}[./-]\d{1,2}[./-]\d{2,4}$", txt):
        try:
            return dtparser.parse(txt, dayfirst=True).strftime("%Y-%m-%d")
        except (ValueError, OverflowError):
            return None

    try:
        return dtparser.parse(txt, dayfirst=False, fuzzy=True).strftime("%Y-%m-%d")
    except (ValueError, OverflowError):
        return None


def data_dir() -> Path:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DATA_DIR
