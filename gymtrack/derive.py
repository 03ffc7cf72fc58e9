from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from math import isfinite
from typing import Any, Optional


def _today_local() -> date:
    return datetime.now().astimezone().date()


def round1(value: float) -> float:
    """Round to one decimal place, ties away from zero (0.25 -> 0.3, -0.25 -> -0.3).

    Works on the shortest decimal repr of the float, so a value printed as
    21.75 rounds up even if its binary form is a hair below.
    """
    return float(Decimal(repr(float(value))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def parse_date(raw: Any) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def calculate_age(birth_date: Any, today: Optional[date] = None) -> int | None:
    """Completed years between birth_date and today (local calendar day).

    Returns None when birth_date cannot be parsed or lies after today.
    Timezone handling is whatever the host considers "today".
    """
    born = parse_date(birth_date)
    if born is None:
        return None
    today = today or _today_local()
    if born > today:
        return None

    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def age_summary(birth_date: Any, today: Optional[date] = None) -> dict[str, Any]:
    """{"status": "missing"|"invalid"|"ok", "years": int|None}"""
    if birth_date is None or (isinstance(birth_date, str) and not birth_date.strip()):
        return {"status": "missing", "years": None}
    years = calculate_age(birth_date, today)
    if years is None:
        return {"status": "invalid", "years": None}
    return {"status": "ok", "years": years}


def _positive(v: Any) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    fv = float(v)
    if not isfinite(fv) or fv <= 0:
        return None
    return fv


def calculate_bmi(weight_kg: Any, height_cm: Any) -> float | None:
    """BMI = kg / m^2, one decimal. None for missing or non-physical inputs."""
    weight = _positive(weight_kg)
    height = _positive(height_cm)
    if weight is None or height is None:
        return None

    height_m = height / 100.0
    return round1(weight / (height_m * height_m))
