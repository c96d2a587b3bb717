"""Converters for string-typed CSV cells."""
import json
from datetime import datetime
from typing import Any, List, Optional


def now_iso() -> str:
    return datetime.utcnow().isoformat(sep=" ")


def to_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if value is None or value == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "y", "t")


def to_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def to_list(value: Any) -> List[Any]:
    # list columns are stored as JSON text
    if isinstance(value, list):
        return value
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []
