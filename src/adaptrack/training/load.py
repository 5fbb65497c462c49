"""Training load arithmetic: session load, acute/chronic load and ACR.

Session load scales a type's load score by duration and perceived effort:

    load = load_score x (duration_min / 60) x (rpe / 3)

Acute load is the mean of the last 7 daily loads, chronic load the mean of
the last 28 (zero until a full week exists). Their ratio (ACR) maps to a
zone. All functions are pure and total: numeric edge cases return neutral
values instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from adaptrack.training.catalog import (
    DEFAULT_CATALOG,
    TrainingCatalog,
    TrainingType,
    exercise_calories,
)

DEFAULT_RPE = 5
ACUTE_WINDOW_DAYS = 7
CHRONIC_WINDOW_DAYS = 28
MIN_CHRONIC_DAYS = 7
OPTIMAL_ACR_MAX = 1.3
HIGH_ACR_MAX = 1.5
OVERLOAD_FACTOR = 1.5


class LoadZone(str, Enum):
    """Acute:chronic ratio zones."""
    OPTIMAL = "optimal"
    HIGH = "high"
    OVERLOAD = "overload"


def session_load(load_score: float, duration_min: float, rpe: Optional[float] = None) -> float:
    """Load of a single session.

    Args:
        load_score: Catalog load score for the session type
        duration_min: Session length in minutes
        rpe: Perceived intensity 1-10, defaults to 5

    Returns:
        Session load (0 for zero-length sessions)
    """
    if duration_min <= 0:
        return 0.0
    effort = DEFAULT_RPE if rpe is None else rpe
    return load_score * (duration_min / 60) * (effort / 3)


def load_for_session(session, catalog: Optional[TrainingCatalog] = None) -> float:
    """Session load using the catalog score for ``session.type``."""
    catalog = catalog or DEFAULT_CATALOG
    return session_load(
        catalog[session.type].load_score,
        session.duration_min,
        session.perceived_intensity,
    )


def day_load(sessions: Sequence, catalog: Optional[TrainingCatalog] = None) -> float:
    """Sum of session loads for one day."""
    return float(sum(load_for_session(s, catalog) for s in sessions))


def daily_load(
    actual_sessions: Sequence,
    planned_sessions: Sequence,
    catalog: Optional[TrainingCatalog] = None,
) -> float:
    """Day load from actual sessions when any were logged, else the plan."""
    sessions = actual_sessions if actual_sessions else planned_sessions
    return day_load(sessions, catalog)


def acute_load(history: Sequence[float]) -> float:
    """Mean of the last 7 daily loads (0 for an empty history)."""
    if len(history) == 0:
        return 0.0
    return float(np.mean(np.asarray(history[-ACUTE_WINDOW_DAYS:], dtype=float)))


def chronic_load(history: Sequence[float]) -> float:
    """Mean of the last 28 daily loads; 0 until 7 days exist."""
    if len(history) < MIN_CHRONIC_DAYS:
        return 0.0
    return max(float(np.mean(np.asarray(history[-CHRONIC_WINDOW_DAYS:], dtype=float))), 0.0)


def acr(acute: float, chronic: float) -> float:
    """Acute:chronic ratio, 1.0 when there is no chronic baseline."""
    if chronic == 0:
        return 1.0
    return acute / chronic


def load_zone(ratio: float) -> LoadZone:
    """Map an ACR to its zone (boundaries inclusive on the lower zone)."""
    if ratio <= OPTIMAL_ACR_MAX:
        return LoadZone.OPTIMAL
    if ratio <= HIGH_ACR_MAX:
        return LoadZone.HIGH
    return LoadZone.OVERLOAD


def is_overloaded(todays_load: float, chronic: float) -> bool:
    """True when today's load exceeds 1.5x the chronic load."""
    if chronic == 0:
        return False
    return todays_load > chronic * OVERLOAD_FACTOR


@dataclass(frozen=True)
class TrainingLoadStatus:
    """Load picture for one day given its preceding history."""

    day_load: float
    acute_load: float
    chronic_load: float
    acr: float
    zone: LoadZone
    overloaded: bool
    days_of_history: int

    def to_dict(self) -> dict:
        return {
            "day_load": round(self.day_load, 2),
            "acute_load": round(self.acute_load, 2),
            "chronic_load": round(self.chronic_load, 2),
            "acr": round(self.acr, 2),
            "zone": self.zone.value,
            "overloaded": self.overloaded,
            "days_of_history": self.days_of_history,
        }


def training_load_status(todays_load: float, history: Sequence[float]) -> TrainingLoadStatus:
    """Compute load status; ``history`` is oldest first and includes today."""
    acute = acute_load(history)
    chronic = chronic_load(history)
    ratio = acr(acute, chronic)
    return TrainingLoadStatus(
        day_load=todays_load,
        acute_load=acute,
        chronic_load=chronic,
        acr=ratio,
        zone=load_zone(ratio),
        overloaded=is_overloaded(todays_load, chronic),
        days_of_history=len(history),
    )


@dataclass(frozen=True)
class TrainingSummary:
    """Per-day training digest attached to daily logs."""

    session_count: int
    total_duration_min: int
    load: float
    exercise_kcal: float
    is_training_day: bool
    source: str  # "actual", "planned" or "none"

    def to_dict(self) -> dict:
        return {
            "session_count": self.session_count,
            "total_duration_min": self.total_duration_min,
            "load": round(self.load, 2),
            "exercise_kcal": round(self.exercise_kcal),
            "is_training_day": self.is_training_day,
            "source": self.source,
        }


def summarize_training(
    actual_sessions: Sequence,
    planned_sessions: Sequence,
    weight_kg: float,
    catalog: Optional[TrainingCatalog] = None,
) -> TrainingSummary:
    """Summarize the sessions that count for the day (actual over planned)."""
    if actual_sessions:
        sessions, source = actual_sessions, "actual"
    elif planned_sessions:
        sessions, source = planned_sessions, "planned"
    else:
        sessions, source = [], "none"

    return TrainingSummary(
        session_count=len(sessions),
        total_duration_min=int(sum(s.duration_min for s in sessions)),
        load=day_load(sessions, catalog),
        exercise_kcal=float(
            sum(exercise_calories(s.type, weight_kg, s.duration_min, catalog) for s in sessions)
        ),
        is_training_day=any(s.type != TrainingType.REST for s in sessions),
        source=source,
    )
