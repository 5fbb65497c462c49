"""Adaptive TDEE estimation from logged intake and weight.

For every logged day with enough surrounding data, the estimator derives an
implied TDEE from the trailing window:

    implied_tdee = trimmed_mean(intake) - slope_kg_per_day x 7700

The slope is a Theil-Sen estimate (median of pairwise slopes), so one
extreme weigh-in barely moves it, and the intake mean drops the most extreme
tenth on each side. The implied values feed :class:`TDEEFilter`, which
learns the personal offset from the formula baseline and caps how far any
one day can push it.

Confidence grows with consecutive observations and shrinks with logging
gaps and clipped outliers. The estimator needs ``min_days`` days with intake
before it answers at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

import numpy as np
from scipy import stats

from adaptrack.profiles.body_calc import KCAL_PER_KG, UserProfile, formula_tdee
from adaptrack.results import Computed, InsufficientData
from adaptrack.tracking.tdee_filter import TDEEFilter

logger = logging.getLogger(__name__)

MIN_ADAPTIVE_DAYS = 14
WINDOW_DAYS = 14
MIN_WINDOW_WEIGHINS = 7
INTAKE_TRIM = 0.1
TREND_DELTA_KCAL = 50


@dataclass(frozen=True)
class MetabolicDataPoint:
    """One logged day as the estimator sees it."""

    day: date
    weight_kg: float
    intake_kcal: Optional[float] = None


@dataclass(frozen=True)
class DailyTDEEEstimate:
    """Estimator state after processing one logged day."""

    day: date
    tdee: float
    formula_tdee: float
    observed_tdee: Optional[float]
    confidence: float
    clipped: bool = False

    @property
    def bias(self) -> float:
        return self.tdee - self.formula_tdee

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "tdee": round(self.tdee),
            "formula_tdee": round(self.formula_tdee),
            "observed_tdee": round(self.observed_tdee) if self.observed_tdee is not None else None,
            "confidence": round(self.confidence, 2),
            "clipped": self.clipped,
        }


@dataclass(frozen=True)
class AdaptiveTDEE:
    """Adaptive TDEE as of a date."""

    as_of: date
    tdee: float
    formula_tdee: float
    bias: float
    confidence: float
    uncertainty_kcal: float  # 95% CI half-width
    data_points_used: int
    observations: int
    outliers_clipped: int
    series: tuple[DailyTDEEEstimate, ...] = ()

    def to_dict(self, include_series: bool = False) -> dict:
        data = {
            "as_of": self.as_of.isoformat(),
            "tdee": round(self.tdee),
            "formula_tdee": round(self.formula_tdee),
            "bias": round(self.bias),
            "confidence": round(self.confidence, 2),
            "uncertainty_kcal": round(self.uncertainty_kcal),
            "data_points_used": self.data_points_used,
            "observations": self.observations,
            "outliers_clipped": self.outliers_clipped,
        }
        if include_series:
            data["series"] = [point.to_dict() for point in self.series]
        return data


def _prepare(points: Sequence[MetabolicDataPoint], as_of: date) -> list[MetabolicDataPoint]:
    by_day: dict[date, MetabolicDataPoint] = {}
    for point in points:
        if point.day <= as_of:
            by_day[point.day] = point
    return [by_day[day] for day in sorted(by_day)]


def implied_tdee(window: Sequence[MetabolicDataPoint]) -> Optional[float]:
    """Robust implied TDEE for one window, or None when it cannot be formed."""
    intakes = np.array([p.intake_kcal for p in window if p.intake_kcal is not None], dtype=float)
    if len(window) < 2 or len(intakes) == 0:
        return None

    first_day = window[0].day
    x = np.array([(p.day - first_day).days for p in window], dtype=float)
    y = np.array([p.weight_kg for p in window], dtype=float)
    slope, _, _, _ = stats.theilslopes(y, x)
    intake = float(stats.trim_mean(intakes, INTAKE_TRIM))
    return intake - float(slope) * KCAL_PER_KG


def estimate_series(
    points: Sequence[MetabolicDataPoint],
    profile: UserProfile,
    as_of: date,
    window_days: int = WINDOW_DAYS,
    min_window_weighins: int = MIN_WINDOW_WEIGHINS,
    outlier_sigma: float = 2.5,
) -> tuple[list[DailyTDEEEstimate], TDEEFilter]:
    """Run the filter across all logged days up to ``as_of``.

    Returns:
        Tuple of (per-day estimates oldest first, final filter state)
    """
    history = _prepare(points, as_of)
    tdee_filter = TDEEFilter(outlier_sigma=outlier_sigma)
    series: list[DailyTDEEEstimate] = []
    last_observed: Optional[date] = None

    for index, point in enumerate(history):
        window_start = point.day - timedelta(days=window_days - 1)
        window = [p for p in history[: index + 1] if p.day >= window_start]
        intake_days = sum(1 for p in window if p.intake_kcal is not None)
        baseline = formula_tdee(profile, point.weight_kg)

        observed: Optional[float] = None
        clipped = False
        if len(window) >= min_window_weighins and intake_days >= min_window_weighins:
            observed = implied_tdee(window)
        if observed is not None:
            gap = (point.day - last_observed).days if last_observed else 1
            step = tdee_filter.predict_and_update(observed, baseline, days=gap)
            clipped = step.clipped
            last_observed = point.day
            if clipped:
                logger.debug(
                    "Clipped implied TDEE %.0f on %s (residual %.0f)",
                    observed,
                    point.day,
                    step.residual,
                )

        series.append(
            DailyTDEEEstimate(
                day=point.day,
                tdee=baseline + tdee_filter.bias,
                formula_tdee=baseline,
                observed_tdee=observed,
                confidence=tdee_filter.confidence,
                clipped=clipped,
            )
        )

    if last_observed is not None and as_of > last_observed:
        tdee_filter.predict((as_of - last_observed).days)

    return series, tdee_filter


def estimate_adaptive_tdee(
    points: Sequence[MetabolicDataPoint],
    profile: UserProfile,
    as_of: date,
    min_days: int = MIN_ADAPTIVE_DAYS,
    window_days: int = WINDOW_DAYS,
    min_window_weighins: int = MIN_WINDOW_WEIGHINS,
    outlier_sigma: float = 2.5,
) -> Computed[AdaptiveTDEE] | InsufficientData:
    """Adaptive TDEE as of ``as_of``.

    Args:
        points: Logged days (weight required, intake optional)
        profile: Profile for the formula baseline
        as_of: Analysis date; later points are ignored
        min_days: Minimum days with logged intake

    Returns:
        Computed(AdaptiveTDEE) or InsufficientData
    """
    history = _prepare(points, as_of)
    intake_days = sum(1 for p in history if p.intake_kcal is not None)
    if intake_days < min_days:
        return InsufficientData(
            reason=f"need {min_days} days of intake and weight logs, have {intake_days}",
            required=min_days,
            available=intake_days,
        )

    series, tdee_filter = estimate_series(
        history, profile, as_of, window_days, min_window_weighins, outlier_sigma
    )
    if tdee_filter.observations == 0:
        return InsufficientData(
            reason=f"need {min_window_weighins} weigh-ins within {window_days} days",
            required=min_window_weighins,
            available=0,
        )

    latest_weight = history[-1].weight_kg
    baseline = formula_tdee(profile, latest_weight)
    tdee, uncertainty = tdee_filter.get_adjusted_tdee(baseline)
    result = AdaptiveTDEE(
        as_of=as_of,
        tdee=tdee,
        formula_tdee=baseline,
        bias=tdee_filter.bias,
        confidence=tdee_filter.confidence,
        uncertainty_kcal=uncertainty,
        data_points_used=intake_days,
        observations=tdee_filter.observations,
        outliers_clipped=tdee_filter.clipped_count,
        series=tuple(series),
    )
    logger.debug(
        "Adaptive TDEE %.0f (formula %.0f, confidence %.2f) from %d days",
        result.tdee,
        result.formula_tdee,
        result.confidence,
        intake_days,
    )
    return Computed(result)


def metabolic_trend(estimates: Sequence[DailyTDEEEstimate]) -> tuple[str, int]:
    """Compare the first and last week of estimates.

    Returns:
        Tuple of (label, delta_kcal) where label is "upregulated",
        "downregulated" or "stable"
    """
    if len(estimates) < 2:
        return "stable", 0
    values = [e.tdee for e in estimates]
    first_avg = float(np.mean(values[:7]))
    last_avg = float(np.mean(values[-7:]))
    delta = int(round(last_avg - first_avg))
    if delta > TREND_DELTA_KCAL:
        return "upregulated", delta
    if delta < -TREND_DELTA_KCAL:
        return "downregulated", delta
    return "stable", delta


def insight_text(label: str, delta_kcal: int, weeks: int) -> str:
    """Plain-language sentence for a metabolic trend label."""
    if label == "upregulated":
        return (
            f"Your metabolism has upregulated by +{abs(delta_kcal)} kcal in the last "
            f"{weeks} weeks. You can eat more while maintaining weight."
        )
    if label == "downregulated":
        return (
            f"Your metabolism has downregulated by -{abs(delta_kcal)} kcal in the last "
            f"{weeks} weeks. Consider a diet break or refeed."
        )
    return "Your metabolism is stable. Keep up the consistent logging!"


def tdee_trend_line(estimates: Sequence[DailyTDEEEstimate]) -> list[tuple[date, float]]:
    """Least-squares line through the estimates, evaluated at each estimate date."""
    if len(estimates) < 2:
        return [(e.day, e.tdee) for e in estimates]
    first_day = estimates[0].day
    x = np.array([(e.day - first_day).days for e in estimates], dtype=float)
    y = np.array([e.tdee for e in estimates], dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    return [(e.day, float(intercept + slope * xi)) for e, xi in zip(estimates, x)]
