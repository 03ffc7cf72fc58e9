from __future__ import annotations

from typing import Any, Iterable, Sequence

from pydantic import ValidationError

from .logging import get_logger
from .models import MeasurementRecord

logger = get_logger(__name__)

DEFAULT_WINDOW = 7


def normalize(docs: Iterable[MeasurementRecord | dict[str, Any]]) -> list[MeasurementRecord]:
    """Snapshot documents -> fresh MeasurementRecord copies, in input order.

    Documents that do not fit the record shape are logged and left out, so
    one bad entry never hides the rest of the history.
    """
    out: list[MeasurementRecord] = []
    for d in docs:
        if isinstance(d, MeasurementRecord):
            out.append(d.model_copy(deep=True))
            continue
        try:
            out.append(MeasurementRecord.model_validate(d))
        except ValidationError as exc:
            logger.warning("measurement_skipped", doc_id=d.get("id"), errors=exc.error_count())
    return out


# sorted() is stable, also with reverse=True, so records sharing a timestamp
# keep the store's native relative order in both views.
def ascending(records: Iterable[MeasurementRecord]) -> list[MeasurementRecord]:
    return sorted(records, key=lambda r: r.timestamp)


def descending(records: Iterable[MeasurementRecord]) -> list[MeasurementRecord]:
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def recent_window(records: Iterable[MeasurementRecord], size: int = DEFAULT_WINDOW) -> list[MeasurementRecord]:
    if size < 1:
        raise ValueError(f"window size must be >= 1, got {size}")
    return ascending(records)[-size:]


def has_chartable_history(records: Sequence[MeasurementRecord]) -> bool:
    # A single point is not a trend line.
    return len(records) >= 2


def latest(records: Iterable[MeasurementRecord]) -> MeasurementRecord | None:
    ordered = descending(records)
    return ordered[0] if ordered else None


def chart_points(records: Iterable[MeasurementRecord], metrics: Sequence[str]) -> list[dict[str, Any]]:
    points: list[dict[str, Any]] = []
    for r in ascending(records):
        point: dict[str, Any] = {"date": r.date, "timestamp": r.timestamp}
        for m in metrics:
            point[m] = r.value(m)
        points.append(point)
    return points
