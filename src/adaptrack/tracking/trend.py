"""Least-squares weight trend.

Weights are regressed on elapsed days since the first sample. Several
weigh-ins on the same day are averaged first so a day counts once. The slope
is reported per week and R² describes how well a straight line explains the
series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

import numpy as np

from adaptrack.results import Computed, InsufficientData

logger = logging.getLogger(__name__)

MIN_TREND_DAYS = 5


@dataclass(frozen=True)
class WeightSample:
    """A single weigh-in."""

    sample_date: date
    weight_kg: float


@dataclass(frozen=True)
class WeightTrend:
    """Fitted linear trend."""

    weekly_change_kg: float
    r_squared: float
    intercept_kg: float
    start_date: date
    end_date: date
    start_weight_kg: float  # fitted value at start_date
    end_weight_kg: float  # fitted value at end_date
    days_used: int

    @property
    def daily_change_kg(self) -> float:
        return self.weekly_change_kg / 7

    def predict(self, on: date) -> float:
        """Fitted weight on ``on`` (extrapolates outside the fitted span)."""
        elapsed = (on - self.start_date).days
        return self.intercept_kg + self.daily_change_kg * elapsed

    def to_dict(self) -> dict:
        return {
            "weekly_change_kg": round(self.weekly_change_kg, 3),
            "r_squared": round(self.r_squared, 3),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_weight_kg": round(self.start_weight_kg, 2),
            "end_weight_kg": round(self.end_weight_kg, 2),
            "days_used": self.days_used,
        }


def average_by_day(samples: Iterable[WeightSample]) -> list[tuple[date, float]]:
    """Collapse samples to one mean weight per day, oldest first."""
    by_day: dict[date, list[float]] = {}
    for sample in samples:
        by_day.setdefault(sample.sample_date, []).append(sample.weight_kg)
    return [(day, float(np.mean(weights))) for day, weights in sorted(by_day.items())]


def fit_weight_trend(
    samples: Sequence[WeightSample],
    min_days: int = MIN_TREND_DAYS,
) -> Computed[WeightTrend] | InsufficientData:
    """Fit an ordinary least-squares line through the samples.

    Args:
        samples: Weigh-ins in any order
        min_days: Minimum number of distinct days required

    Returns:
        Computed(WeightTrend), or InsufficientData when fewer than
        ``min_days`` distinct days are present
    """
    daily = average_by_day(samples)
    if len(daily) < min_days:
        return InsufficientData(
            reason=f"need {min_days} days of weigh-ins for a trend, have {len(daily)}",
            required=min_days,
            available=len(daily),
        )

    first_day = daily[0][0]
    x = np.array([(day - first_day).days for day, _ in daily], dtype=float)
    y = np.array([weight for _, weight in daily], dtype=float)

    slope, intercept = np.polyfit(x, y, 1)
    fitted = intercept + slope * x
    ss_res = float(np.sum((y - fitted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    # A flat series is explained perfectly by a flat line
    r_squared = 1.0 if ss_tot == 0 else max(0.0, 1.0 - ss_res / ss_tot)

    last_day = daily[-1][0]
    trend = WeightTrend(
        weekly_change_kg=float(slope) * 7,
        r_squared=r_squared,
        intercept_kg=float(intercept),
        start_date=first_day,
        end_date=last_day,
        start_weight_kg=float(intercept),
        end_weight_kg=float(intercept + slope * x[-1]),
        days_used=len(daily),
    )
    logger.debug(
        "Weight trend over %d days: %.3f kg/week (R²=%.2f)",
        trend.days_used,
        trend.weekly_change_kg,
        trend.r_squared,
    )
    return Computed(trend)


def samples_in_window(
    samples: Iterable[WeightSample],
    end: date,
    window_days: int,
) -> list[WeightSample]:
    """Samples within the ``window_days`` days ending on ``end`` (inclusive)."""
    start = end - timedelta(days=window_days - 1)
    return [s for s in samples if start <= s.sample_date <= end]
