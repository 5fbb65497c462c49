"""Data models for daily logs and training sessions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.training.catalog import TrainingType, parse_training_type

MIN_WEIGHT_KG = 30.0
MAX_WEIGHT_KG = 300.0
MAX_SESSION_MINUTES = 480


def parse_date(value: object) -> date:
    """Parse a YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(
            errors.INVALID_DATE, f"date must be YYYY-MM-DD, got '{value}'"
        ) from None


def validate_weight(weight_kg: Optional[float], label: str = "weight_kg") -> None:
    if weight_kg is None:
        raise ValidationError(errors.MISSING_WEIGHT, f"{label} is required")
    if not MIN_WEIGHT_KG <= weight_kg <= MAX_WEIGHT_KG:
        raise ValidationError(
            errors.INVALID_WEIGHT,
            f"{label} must be {MIN_WEIGHT_KG:g}-{MAX_WEIGHT_KG:g} kg, got {weight_kg}",
        )


def _check_range(value: Optional[float], low: float, high: float, code: str, label: str) -> None:
    if value is not None and not low <= value <= high:
        raise ValidationError(code, f"{label} must be {low:g}-{high:g}, got {value}")


@dataclass(frozen=True)
class TrainingSession:
    """A planned or completed training session."""

    type: TrainingType
    duration_min: int = 0
    perceived_intensity: Optional[int] = None  # RPE 1-10
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", parse_training_type(self.type))
        if self.type == TrainingType.REST:
            object.__setattr__(self, "duration_min", 0)
        if not 0 <= self.duration_min <= MAX_SESSION_MINUTES:
            raise ValidationError(
                errors.INVALID_TRAINING_DURATION,
                f"duration_min must be 0-{MAX_SESSION_MINUTES}, got {self.duration_min}",
            )
        if self.perceived_intensity is not None and not 1 <= self.perceived_intensity <= 10:
            raise ValidationError(
                errors.INVALID_RPE,
                f"perceived_intensity must be 1-10, got {self.perceived_intensity}",
            )

    @classmethod
    def from_dict(cls, data: dict) -> "TrainingSession":
        return cls(
            type=data.get("type"),
            duration_min=int(data.get("duration_min") or 0),
            perceived_intensity=data.get("perceived_intensity"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "duration_min": self.duration_min,
            "perceived_intensity": self.perceived_intensity,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class SyncMetrics:
    """Metrics pushed by a device sync. None means "not reported"."""

    steps: Optional[int] = None
    active_calories: Optional[float] = None
    resting_heart_rate: Optional[int] = None
    sleep_hours: Optional[float] = None
    weight_kg: Optional[float] = None
    body_fat_percent: Optional[float] = None

    def __post_init__(self) -> None:
        if self.weight_kg is not None:
            validate_weight(self.weight_kg)
        _check_range(self.body_fat_percent, 3, 70, errors.INVALID_BODY_FAT, "body_fat_percent")
        _check_range(self.resting_heart_rate, 30, 200, errors.INVALID_HEART_RATE, "resting_heart_rate")
        _check_range(self.sleep_hours, 0, 24, errors.INVALID_SLEEP_HOURS, "sleep_hours")
        if self.steps is not None and self.steps < 0:
            raise ValidationError(errors.INVALID_STEPS, f"steps must be >= 0, got {self.steps}")


@dataclass(frozen=True)
class DailyLogSnapshot:
    """One day's measurements plus the values computed from them.

    Snapshots are immutable; edits produce a new snapshot via
    :meth:`supersede`.
    """

    log_date: date
    weight_kg: float
    body_fat_percent: Optional[float] = None
    resting_heart_rate: Optional[int] = None
    sleep_hours: Optional[float] = None
    intake_kcal: Optional[float] = None
    steps: Optional[int] = None
    active_calories: Optional[float] = None
    planned_sessions: tuple[TrainingSession, ...] = ()
    actual_sessions: tuple[TrainingSession, ...] = ()
    notes: Optional[str] = None
    # Computed
    estimated_tdee: Optional[float] = None
    tdee_source: str = "formula"
    confidence: float = 0.0
    calculated_targets: Optional[object] = None
    training_summary: Optional[object] = None
    log_id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "log_date", parse_date(self.log_date))
        validate_weight(self.weight_kg)
        _check_range(self.body_fat_percent, 3, 70, errors.INVALID_BODY_FAT, "body_fat_percent")
        _check_range(self.resting_heart_rate, 30, 200, errors.INVALID_HEART_RATE, "resting_heart_rate")
        _check_range(self.sleep_hours, 0, 24, errors.INVALID_SLEEP_HOURS, "sleep_hours")
        if self.intake_kcal is not None and not 0 <= self.intake_kcal <= 15000:
            raise ValidationError(
                errors.INVALID_INTAKE, f"intake_kcal must be 0-15000, got {self.intake_kcal}"
            )
        object.__setattr__(self, "planned_sessions", tuple(self.planned_sessions))
        object.__setattr__(self, "actual_sessions", tuple(self.actual_sessions))

    def supersede(self, **changes) -> "DailyLogSnapshot":
        """Return a new snapshot with ``changes`` applied."""
        return replace(self, **changes)

    def with_sync(self, metrics: SyncMetrics) -> "DailyLogSnapshot":
        """Merge synced metrics; fields the sync did not report keep their value."""
        changes = {
            name: getattr(metrics, name)
            for name in (
                "steps",
                "active_calories",
                "resting_heart_rate",
                "sleep_hours",
                "weight_kg",
                "body_fat_percent",
            )
            if getattr(metrics, name) is not None
        }
        return self.supersede(**changes) if changes else self

    def to_dict(self) -> dict:
        targets = self.calculated_targets
        summary = self.training_summary
        return {
            "log_id": self.log_id,
            "date": self.log_date.isoformat(),
            "weight_kg": self.weight_kg,
            "body_fat_percent": self.body_fat_percent,
            "resting_heart_rate": self.resting_heart_rate,
            "sleep_hours": self.sleep_hours,
            "intake_kcal": self.intake_kcal,
            "steps": self.steps,
            "active_calories": self.active_calories,
            "planned_sessions": [s.to_dict() for s in self.planned_sessions],
            "actual_sessions": [s.to_dict() for s in self.actual_sessions],
            "notes": self.notes,
            "estimated_tdee": round(self.estimated_tdee) if self.estimated_tdee is not None else None,
            "tdee_source": self.tdee_source,
            "confidence": round(self.confidence, 2),
            "calculated_targets": targets.to_dict() if targets is not None else None,
            "training_summary": summary.to_dict() if summary is not None else None,
        }
