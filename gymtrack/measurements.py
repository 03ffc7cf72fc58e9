from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from math import isfinite
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .derive import calculate_bmi
from .errors import MeasurementValidationError, NothingToSaveError
from .logging import get_logger
from .models import MeasurementRecord

if TYPE_CHECKING:
    from .store import FirestoreStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class MeasurementType:
    kind: str
    label: str
    unit: str


# Display order, not semantic order.
MEASUREMENT_TYPES: dict[str, MeasurementType] = {
    t.kind: t
    for t in (
        MeasurementType("weight", "Weight", "Kg"),
        MeasurementType("waist", "Waist", "cm"),
        MeasurementType("neck", "Neck", "cm"),
        MeasurementType("shoulder", "Shoulder", "cm"),
        MeasurementType("chest", "Chest", "cm"),
        MeasurementType("leftBicep", "Left Bicep", "cm"),
        MeasurementType("rightBicep", "Right Bicep", "cm"),
        MeasurementType("leftForearm", "Left Forearm", "cm"),
        MeasurementType("rightForearm", "Right Forearm", "cm"),
        MeasurementType("abdomen", "Abdomen", "cm"),
        MeasurementType("hips", "Hips", "cm"),
        MeasurementType("leftThigh", "Left Thigh", "cm"),
        MeasurementType("rightThigh", "Right Thigh", "cm"),
        MeasurementType("leftCalf", "Left Calf", "cm"),
        MeasurementType("rightCalf", "Right Calf", "cm"),
    )
}

BMI = "bmi"
METRICS: tuple[str, ...] = tuple(MEASUREMENT_TYPES) + (BMI,)


def is_metric(metric: str) -> bool:
    return metric in MEASUREMENT_TYPES or metric == BMI


def unit_for(metric: str) -> str:
    if metric == BMI:
        return ""
    try:
        return MEASUREMENT_TYPES[metric].unit
    except KeyError:
        raise ValueError(f"Unknown metric: {metric}") from None


def label_for(metric: str) -> str:
    if metric == BMI:
        return "BMI"
    return MEASUREMENT_TYPES[metric].label


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def _parse_value(kind: str, raw: Any) -> float:
    label = MEASUREMENT_TYPES[kind].label
    if isinstance(raw, bool):
        raise MeasurementValidationError(kind, f"{label} must be a number")
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        # float() also takes digit separators ("1_000"), which a number field does not.
        if "_" in raw:
            raise MeasurementValidationError(kind, f"{label} must be a number")
        try:
            value = float(raw.strip())
        except ValueError:
            raise MeasurementValidationError(kind, f"{label} must be a number") from None
    else:
        raise MeasurementValidationError(kind, f"{label} must be a number")

    if not isfinite(value):
        raise MeasurementValidationError(kind, f"{label} must be a finite number")
    if value < 0:
        raise MeasurementValidationError(kind, f"{label} must be a non-negative number")
    return value


def parse_measurements(raw: Mapping[str, Any]) -> dict[str, float]:
    """Parse form values into {kind: value}.

    Unknown keys are ignored and blank values mean "not recorded this
    session". The first invalid value aborts the whole submission.
    """
    out: dict[str, float] = {}
    for kind in MEASUREMENT_TYPES:
        if kind not in raw or _is_blank(raw[kind]):
            continue
        out[kind] = _parse_value(kind, raw[kind])
    if not out:
        raise NothingToSaveError()
    return out


def build_record(
    raw: Mapping[str, Any],
    *,
    user_id: str,
    profile_height: Optional[float],
    now: Optional[datetime] = None,
) -> MeasurementRecord:
    values = parse_measurements(raw)
    now = now or datetime.now().astimezone()
    return MeasurementRecord(
        userId=user_id,
        date=now.date().isoformat(),
        timestamp=int(now.timestamp() * 1000),
        measurements=values,
        bmi=calculate_bmi(values.get("weight"), profile_height),
    )


def save_measurement(
    store: "FirestoreStore",
    raw: Mapping[str, Any],
    *,
    user_id: str,
    profile_height: Optional[float],
    now: Optional[datetime] = None,
) -> MeasurementRecord:
    """Validate, then append a new record. Validation errors never reach the store."""
    record = build_record(raw, user_id=user_id, profile_height=profile_height, now=now)
    record_id = store.add_measurement(record)
    saved = record.model_copy(update={"id": record_id})
    logger.info(
        "measurement_saved",
        user_id=user_id,
        record_id=record_id,
        kinds=sorted(saved.measurements),
        bmi=saved.bmi,
    )
    return saved
