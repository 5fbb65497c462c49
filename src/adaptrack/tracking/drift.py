"""Drift detection: sustained divergence between adaptive and formula TDEE.

Estimates are bucketed into ISO weeks (Monday start). A week is evaluable
when it holds enough confident estimates; its mean difference from the
formula TDEE of the same day converts to a weekly weight trajectory difference:

    weekly_kg = (adaptive - formula) x 7 / 7700

Each day carries its own formula value, so weight lost over a long plan
lowers the baseline week by week.

Drift is flagged when each of the last ``window_weeks`` evaluable weeks
exceeds ``tolerance_kg`` in the same direction. The episode starts on the
Monday of the earliest consecutive qualifying week, so the episode identity
is stable while the drift persists.

Dismissal is explicit state passed in by the caller. A dismissal silences
the same episode (direction and start) at the same or a lower severity
band. A new episode or a higher band notifies again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from adaptrack.profiles.body_calc import KCAL_PER_KG
from adaptrack.tracking.metabolic import DailyTDEEEstimate

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_KG = 0.25
DEFAULT_WINDOW_WEEKS = 2
MIN_DAYS_PER_WEEK = 4
MIN_CONFIDENCE = 0.3
BAND_WIDTH_KCAL = 100


class DriftDirection(str, Enum):
    """Which way adaptive TDEE has moved from the formula."""
    HIGHER = "higher"
    LOWER = "lower"


@dataclass(frozen=True)
class WeekBucket:
    """Mean difference from the formula for one ISO week."""

    week_start: date
    mean_difference_kcal: float
    days: int

    @property
    def weekly_kg(self) -> float:
        return self.mean_difference_kcal * 7 / KCAL_PER_KG


@dataclass(frozen=True)
class DriftEpisode:
    """A detected drift run."""

    direction: DriftDirection
    started_on: date
    magnitude_kcal: float  # signed mean difference over the window
    weekly_trajectory_kg: float
    weeks: int

    @property
    def band(self) -> int:
        return int(abs(self.magnitude_kcal) // BAND_WIDTH_KCAL)

    @property
    def episode_id(self) -> str:
        return f"{self.direction.value}:{self.started_on.isoformat()}"


@dataclass(frozen=True)
class DismissalRecord:
    """A user's dismissal of a drift episode."""

    episode_id: str
    direction: DriftDirection
    started_on: date
    band: int
    dismissed_at: datetime

    @classmethod
    def for_episode(cls, episode: DriftEpisode, dismissed_at: datetime) -> "DismissalRecord":
        return cls(
            episode_id=episode.episode_id,
            direction=episode.direction,
            started_on=episode.started_on,
            band=episode.band,
            dismissed_at=dismissed_at,
        )

    def covers(self, episode: DriftEpisode) -> bool:
        """True when this dismissal silences ``episode``."""
        return (
            self.direction == episode.direction
            and self.started_on == episode.started_on
            and episode.band <= self.band
        )


@dataclass(frozen=True)
class DriftNotification:
    """User-facing notification for an undismissed drift episode."""

    episode_id: str
    direction: DriftDirection
    started_on: date
    magnitude_kcal: int
    weekly_trajectory_kg: float
    band: int
    message: str

    def to_dict(self) -> dict:
        return {
            "episode_id": self.episode_id,
            "direction": self.direction.value,
            "started_on": self.started_on.isoformat(),
            "magnitude_kcal": self.magnitude_kcal,
            "weekly_trajectory_kg": round(self.weekly_trajectory_kg, 2),
            "band": self.band,
            "message": self.message,
        }


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def weekly_buckets(
    estimates: Sequence[DailyTDEEEstimate],
    as_of: date,
    min_confidence: float = MIN_CONFIDENCE,
    min_days: int = MIN_DAYS_PER_WEEK,
) -> list[WeekBucket]:
    """Evaluable ISO-week buckets up to ``as_of``, oldest first.

    A week is dropped when it has fewer than ``min_days`` estimates at or
    above ``min_confidence``. Differences are taken against each
    estimate's own ``formula_tdee``.
    """
    grouped: dict[date, list[float]] = {}
    for estimate in estimates:
        if estimate.day > as_of or estimate.confidence < min_confidence:
            continue
        grouped.setdefault(_week_start(estimate.day), []).append(estimate.bias)
    return [
        WeekBucket(week_start=start, mean_difference_kcal=float(np.mean(diffs)), days=len(diffs))
        for start, diffs in sorted(grouped.items())
        if len(diffs) >= min_days
    ]


def _direction(bucket: WeekBucket, tolerance_kg: float) -> Optional[DriftDirection]:
    if bucket.weekly_kg > tolerance_kg:
        return DriftDirection.HIGHER
    if bucket.weekly_kg < -tolerance_kg:
        return DriftDirection.LOWER
    return None


def detect_drift(
    estimates: Sequence[DailyTDEEEstimate],
    as_of: date,
    tolerance_kg: float = DEFAULT_TOLERANCE_KG,
    window_weeks: int = DEFAULT_WINDOW_WEEKS,
    min_confidence: float = MIN_CONFIDENCE,
) -> Optional[DriftEpisode]:
    """Return the current drift episode, or None.

    Args:
        estimates: Per-day adaptive estimates (see estimate_series)
        as_of: Analysis date
        tolerance_kg: Weekly trajectory difference that counts as drift
        window_weeks: Consecutive evaluable weeks required
        min_confidence: Estimates below this confidence are ignored
    """
    buckets = weekly_buckets(estimates, as_of, min_confidence)
    if len(buckets) < window_weeks or window_weeks <= 0:
        return None

    window = buckets[-window_weeks:]
    directions = {_direction(bucket, tolerance_kg) for bucket in window}
    if len(directions) != 1 or None in directions:
        return None
    direction = directions.pop()

    # Walk back to the first week of the run
    first_index = len(buckets) - window_weeks
    while first_index > 0 and _direction(buckets[first_index - 1], tolerance_kg) == direction:
        first_index -= 1

    magnitude = float(np.mean([bucket.mean_difference_kcal for bucket in window]))
    episode = DriftEpisode(
        direction=direction,
        started_on=buckets[first_index].week_start,
        magnitude_kcal=magnitude,
        weekly_trajectory_kg=magnitude * 7 / KCAL_PER_KG,
        weeks=len(buckets) - first_index,
    )
    logger.debug(
        "Drift %s since %s: %+.0f kcal/day", direction.value, episode.started_on, magnitude
    )
    return episode


def drift_message(episode: DriftEpisode) -> str:
    """Notification text for an episode, worded for any goal."""
    if episode.direction == DriftDirection.HIGHER:
        burn, relative, weight = "more", "above", "below"
    else:
        burn, relative, weight = "less", "below", "above"
    return (
        f"You are burning {burn} than the formula predicts. Your measured TDEE has been "
        f"{abs(round(episode.magnitude_kcal))} kcal/day {relative} the formula estimate "
        f"for {episode.weeks} weeks, so weight is tracking about "
        f"{abs(episode.weekly_trajectory_kg):.2f} kg/week {weight} the formula projection."
    )


def drift_notification(
    episode: Optional[DriftEpisode],
    dismissal: Optional[DismissalRecord] = None,
) -> Optional[DriftNotification]:
    """Turn an episode into a notification unless a dismissal covers it."""
    if episode is None:
        return None
    if dismissal is not None and dismissal.covers(episode):
        return None
    return DriftNotification(
        episode_id=episode.episode_id,
        direction=episode.direction,
        started_on=episode.started_on,
        magnitude_kcal=int(round(episode.magnitude_kcal)),
        weekly_trajectory_kg=episode.weekly_trajectory_kg,
        band=episode.band,
        message=drift_message(episode),
    )
