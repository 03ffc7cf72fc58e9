"""Dashboard state as a pure transition function.

The dashboard listens to two queries: the single most recent measurement
("latest") and the full ascending history ("history"). It is loading until
both inputs have reported once, by a snapshot or by an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Literal, Optional, Union

from .derive import age_summary, calculate_bmi
from .history import DEFAULT_WINDOW, ascending, chart_points, has_chartable_history, latest, recent_window
from .models import MeasurementRecord

Source = Literal["latest", "history"]

_ERROR_TEXT = {
    "latest": "Could not load latest measurement.",
    "history": "Could not load recent history.",
}


@dataclass(frozen=True)
class Snapshot:
    source: Source
    records: tuple[MeasurementRecord, ...]


@dataclass(frozen=True)
class SnapshotError:
    source: Source
    message: str


DashboardEvent = Union[Snapshot, SnapshotError]


@dataclass(frozen=True)
class DashboardState:
    latest: Optional[MeasurementRecord] = None
    history: tuple[MeasurementRecord, ...] = field(default_factory=tuple)
    latest_loaded: bool = False
    history_loaded: bool = False
    latest_error: Optional[str] = None
    history_error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return not (self.latest_loaded and self.history_loaded)

    @property
    def error(self) -> Optional[str]:
        return self.latest_error or self.history_error


def reduce_dashboard(state: DashboardState, event: DashboardEvent) -> DashboardState:
    if isinstance(event, SnapshotError):
        # Keep whatever data we had; only mark the input as reported.
        text = _ERROR_TEXT[event.source]
        if event.source == "latest":
            return replace(state, latest_loaded=True, latest_error=text)
        return replace(state, history_loaded=True, history_error=text)

    if event.source == "latest":
        return replace(state, latest=latest(event.records), latest_loaded=True, latest_error=None)
    return replace(
        state, history=tuple(ascending(event.records)), history_loaded=True, history_error=None
    )


def current_bmi(record: Optional[MeasurementRecord], height_cm: Any) -> float | None:
    """Stored BMI of the latest record, else recomputed from its weight."""
    if record is None:
        return None
    if record.bmi is not None:
        return record.bmi
    return calculate_bmi(record.measurements.get("weight"), height_cm)


def build_dashboard(
    profile: dict[str, Any] | None,
    state: DashboardState,
    *,
    window: int = DEFAULT_WINDOW,
    today: Optional[date] = None,
) -> dict[str, Any]:
    profile = profile or {}
    newest = state.latest
    recent = recent_window(state.history, window)
    return {
        "loading": state.loading,
        "displayName": profile.get("displayName") or "User",
        "age": age_summary(profile.get("birthDate"), today),
        "height": profile.get("height"),
        "latest": newest.model_dump() if newest else None,
        "currentWeight": newest.measurements.get("weight") if newest else None,
        "currentBmi": current_bmi(newest, profile.get("height")),
        "recent": chart_points(recent, ["weight", "bmi"]),
        "chartAvailable": has_chartable_history(recent),
        "totalMeasurements": len(state.history),
        "error": state.error,
    }
