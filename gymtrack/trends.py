from __future__ import annotations

from typing import Sequence

from .derive import round1
from .measurements import METRICS, is_metric, unit_for
from .models import MeasurementRecord, ProgressIndicator


def progress_indicator(metric: str, history: Sequence[MeasurementRecord]) -> ProgressIndicator:
    """Latest-vs-previous change of one metric over an ascending history.

    Every metric uses the same convention: an increase is shown as positive and
    a decrease as negative, including weight and BMI where a decrease is often
    the goal. The status follows the exact difference; only the reported
    delta is rounded, so a small change can read as an increase of 0.0.
    """
    if not is_metric(metric):
        raise ValueError(f"Unknown metric: {metric}")
    unit = unit_for(metric)

    if len(history) < 2:
        return ProgressIndicator(metric=metric, status="no_data", unit=unit)

    latest_value = history[-1].value(metric)
    previous_value = history[-2].value(metric)
    if latest_value is None or previous_value is None:
        return ProgressIndicator(metric=metric, status="no_data", unit=unit)

    diff = latest_value - previous_value
    delta = round1(diff)
    if diff > 0:
        return ProgressIndicator(metric=metric, status="increase", delta=delta, unit=unit, tone="positive")
    if diff < 0:
        return ProgressIndicator(metric=metric, status="decrease", delta=delta, unit=unit, tone="negative")
    return ProgressIndicator(metric=metric, status="unchanged", delta=0.0, unit=unit)


def progress_indicators(history: Sequence[MeasurementRecord]) -> dict[str, ProgressIndicator]:
    order = ["weight", "bmi"] + [m for m in METRICS if m not in ("weight", "bmi")]
    return {m: progress_indicator(m, history) for m in order}
