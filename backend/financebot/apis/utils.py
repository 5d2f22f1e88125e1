from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from dateutil import parser as dateparser

_NUMERIC_NOISE = re.compile(r"[$,\s]")


def first_key(data: dict[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    for key in keys:
        if key in data and not _is_blank(data[key]):
            return data[key]
    return default


def _is_blank(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce CSV-ish values ("$1,200.50", Decimal, NaN, None) to a finite float."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NUMERIC_NOISE.sub("", value)
        if not cleaned:
            return default
        try:
            number = float(cleaned)
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_iso(value: Any) -> str | None:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        try:
            parsed = dateparser.parse(value)
        except (ValueError, OverflowError):
            return None
        if parsed.time() == datetime.min.time():
            return parsed.date().isoformat()
        return parsed.isoformat()
    return None


def utc_timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"
