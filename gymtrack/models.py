from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

MeasurementKind = Literal[
    "weight",
    "waist",
    "neck",
    "shoulder",
    "chest",
    "leftBicep",
    "rightBicep",
    "leftForearm",
    "rightForearm",
    "abdomen",
    "hips",
    "leftThigh",
    "rightThigh",
    "leftCalf",
    "rightCalf",
]

Sex = Literal["male", "female", "other"]


class UserProfile(BaseModel):
    id: str
    displayName: Optional[str] = None
    email: Optional[str] = None
    avatarUrl: Optional[str] = None
    birthDate: Optional[str] = None
    sex: Optional[Sex] = None
    height: Optional[float] = None


class ProfileUpdateRequest(BaseModel):
    displayName: Optional[str] = None
    birthDate: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    sex: Optional[Sex] = None
    height: Optional[float] = Field(default=None, gt=0, le=300)

    @field_validator("birthDate")
    @classmethod
    def _real_past_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        d = date.fromisoformat(v)  # ValueError -> 422
        if d > date.today():
            raise ValueError("birth date is in the future")
        return v


class MeasurementRecord(BaseModel):
    id: Optional[str] = None
    userId: str
    date: str
    timestamp: int
    measurements: dict[MeasurementKind, float] = Field(min_length=1)
    bmi: Optional[float] = None

    def value(self, metric: str) -> float | None:
        if metric == "bmi":
            return self.bmi
        return self.measurements.get(metric)  # type: ignore[call-overload]

    def to_document(self) -> dict[str, Any]:
        """Fields as stored in the `measurements` collection (no id)."""
        return self.model_dump(exclude={"id"})


class MeasurementCreateRequest(BaseModel):
    # Raw form values; strings are parsed server-side so per-field errors
    # can name the offending kind.
    measurements: dict[str, Any] = Field(default_factory=dict)


class MeasurementListResponse(BaseModel):
    measurements: list[MeasurementRecord]


class ProgressIndicator(BaseModel):
    metric: str
    status: Literal["no_data", "increase", "decrease", "unchanged"]
    delta: Optional[float] = None
    unit: str = ""
    tone: Literal["positive", "negative", "neutral"] = "neutral"
