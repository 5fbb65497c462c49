"""Dual-track plan analysis: planned trajectory versus observed weight.

The analysis compares where the plan says the user should be with where the
scale says they are, fits a 30-day trend, projects a landing point at the
plan end date and classifies overall plan health:

    critical   the trend moves away from the goal
    on_track   no landing point yet, or landing within 1 kg of goal
    at_risk    landing 1-3 kg from goal
    off_track  landing more than 3 kg from goal
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence, Union

import numpy as np

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.plans.models import LandingPointProjection, NutritionPlan, PlanHealth
from adaptrack.plans.recalibration import RecalibrationOption, generate_options
from adaptrack.results import Computed, InsufficientData, NotRequired, Pending, describe
from adaptrack.tracking.trend import (
    MIN_TREND_DAYS,
    WeightSample,
    WeightTrend,
    average_by_day,
    fit_weight_trend,
    samples_in_window,
)

logger = logging.getLogger(__name__)

TREND_WINDOW_DAYS = 30
ON_TRACK_MAX_KG = 1.0
AT_RISK_MAX_KG = 3.0


@dataclass(frozen=True)
class DualTrackAnalysis:
    """Snapshot of plan progress on one date."""

    plan_id: Optional[int]
    analysis_date: date
    current_week: int
    planned_weight_kg: float
    actual_weight_kg: float
    variance_kg: float
    variance_percent: float
    tolerance_percent: float
    tolerance_exceeded: bool
    trend: Union[Computed[WeightTrend], InsufficientData]
    trend_diverging: bool
    trend_message: Optional[str]
    landing: Union[Computed[LandingPointProjection], InsufficientData]
    status: PlanHealth
    recalibration: Union[Computed[list[RecalibrationOption]], Pending, NotRequired]
    plan_points: tuple[tuple[date, float], ...] = field(default=())
    trend_points: tuple[tuple[date, float], ...] = field(default=())

    @property
    def recalibration_needed(self) -> bool:
        return (
            self.status in (PlanHealth.AT_RISK, PlanHealth.OFF_TRACK, PlanHealth.CRITICAL)
            and isinstance(self.recalibration, Computed)
            and len(self.recalibration.value) > 0
        )

    @property
    def landing_point(self) -> Optional[LandingPointProjection]:
        return self.landing.value if isinstance(self.landing, Computed) else None

    @property
    def options(self) -> list[RecalibrationOption]:
        if isinstance(self.recalibration, Computed):
            return list(self.recalibration.value)
        return []

    def to_dict(self) -> dict:
        trend = (
            {"state": "computed", **self.trend.value.to_dict()}
            if isinstance(self.trend, Computed)
            else describe(self.trend)
        )
        landing = (
            {"state": "computed", **self.landing.value.to_dict()}
            if isinstance(self.landing, Computed)
            else describe(self.landing)
        )
        recalibration = describe(self.recalibration)
        if isinstance(self.recalibration, Computed):
            recalibration["options"] = [o.to_dict() for o in self.recalibration.value]
        return {
            "plan_id": self.plan_id,
            "analysis_date": self.analysis_date.isoformat(),
            "current_week": self.current_week,
            "planned_weight_kg": round(self.planned_weight_kg, 2),
            "actual_weight_kg": round(self.actual_weight_kg, 2),
            "variance_kg": round(self.variance_kg, 2),
            "variance_percent": round(self.variance_percent, 2),
            "tolerance_percent": self.tolerance_percent,
            "tolerance_exceeded": self.tolerance_exceeded,
            "trend": trend,
            "trend_diverging": self.trend_diverging,
            "trend_message": self.trend_message,
            "landing_point": landing,
            "status": self.status.value,
            "recalibration_needed": self.recalibration_needed,
            "recalibration": recalibration,
            "plan_points": [
                {"date": d.isoformat(), "weight_kg": round(w, 2)} for d, w in self.plan_points
            ],
            "trend_points": [
                {"date": d.isoformat(), "weight_kg": round(w, 2)} for d, w in self.trend_points
            ],
        }


def planned_weight_on(plan: NutritionPlan, on: date) -> float:
    """Interpolate the planned weight between weekly knots (clamped to the plan)."""
    points = plan.trajectory_points()
    origin = points[0][0]
    x = np.array([(d - origin).days for d, _ in points], dtype=float)
    y = np.array([w for _, w in points], dtype=float)
    return float(np.interp((on - origin).days, x, y))


def actual_weight_on(samples: Sequence[WeightSample], on: date, fallback: float) -> float:
    """Most recent (day-averaged) weight at or before ``on``."""
    daily = [(day, weight) for day, weight in average_by_day(samples) if day <= on]
    if not daily:
        return fallback
    return daily[-1][1]


def classify_plan_status(
    trend_diverging: bool,
    landing: Optional[LandingPointProjection],
) -> PlanHealth:
    """Plan health from divergence and landing distance (boundaries inclusive)."""
    if trend_diverging:
        return PlanHealth.CRITICAL
    if landing is None:
        return PlanHealth.ON_TRACK
    variance = landing.variance_from_goal_kg
    if variance < ON_TRACK_MAX_KG:
        return PlanHealth.ON_TRACK
    if variance <= AT_RISK_MAX_KG:
        return PlanHealth.AT_RISK
    return PlanHealth.OFF_TRACK


def is_trend_diverging(weekly_change_kg: float, required_weekly_change_kg: float) -> bool:
    """True when the trend and the plan point in strictly opposite directions."""
    return weekly_change_kg * required_weekly_change_kg < 0


def _divergence_message(trend: WeightTrend, plan: NutritionPlan) -> str:
    moving = "gaining" if trend.weekly_change_kg > 0 else "losing"
    wanted = "loss" if plan.required_weekly_change_kg < 0 else "gain"
    return (
        f"Weight trend is moving away from the goal: {moving} "
        f"{abs(trend.weekly_change_kg):.2f} kg/week on a {wanted} plan"
    )


def project_landing(
    plan: NutritionPlan,
    actual_weight_kg: float,
    trend: WeightTrend,
    analysis_date: date,
) -> LandingPointProjection:
    """Extend the weekly trend from the current weight to the plan end date."""
    days_left = max((plan.end_date - analysis_date).days, 0)
    landing_weight = actual_weight_kg + trend.weekly_change_kg * days_left / 7
    return LandingPointProjection(
        weight_kg=landing_weight,
        landing_date=plan.end_date,
        offset_from_goal_kg=landing_weight - plan.goal_weight_kg,
        goal_weight_kg=plan.goal_weight_kg,
    )


def _trend_points(
    plan: NutritionPlan, actual_weight_kg: float, trend: WeightTrend, analysis_date: date
) -> list[tuple[date, float]]:
    points = [(analysis_date, actual_weight_kg)]
    day = analysis_date + timedelta(days=7)
    while day < plan.end_date:
        points.append((day, actual_weight_kg + trend.weekly_change_kg * (day - analysis_date).days / 7))
        day += timedelta(days=7)
    if analysis_date < plan.end_date:
        days_left = (plan.end_date - analysis_date).days
        points.append((plan.end_date, actual_weight_kg + trend.weekly_change_kg * days_left / 7))
    return points


def analyze_plan(
    plan: NutritionPlan,
    samples: Sequence[WeightSample],
    analysis_date: date,
    tolerance_percent: Optional[float] = None,
    trend_window_days: int = TREND_WINDOW_DAYS,
    min_trend_days: int = MIN_TREND_DAYS,
) -> DualTrackAnalysis:
    """Run the dual-track analysis for ``plan`` on ``analysis_date``.

    Args:
        plan: Plan to analyze
        samples: Weigh-ins (any order, may extend past the analysis date)
        analysis_date: Date the analysis is for
        tolerance_percent: Override the plan's tolerance
        trend_window_days: Trailing window for the weight trend
        min_trend_days: Minimum distinct weigh-in days for a trend

    Raises:
        ValidationError: analysis_date is before the plan start
    """
    if analysis_date < plan.start_date:
        raise ValidationError(
            errors.ANALYSIS_BEFORE_PLAN_START,
            f"analysis date {analysis_date} is before plan start {plan.start_date}",
        )
    tolerance = plan.tolerance_percent if tolerance_percent is None else tolerance_percent

    planned = planned_weight_on(plan, analysis_date)
    actual = actual_weight_on(samples, analysis_date, plan.start_weight_kg)
    variance_kg = actual - planned
    denominator = abs(plan.total_change_kg) or planned
    variance_percent = variance_kg / denominator * 100
    tolerance_exceeded = abs(variance_percent) >= tolerance

    window = samples_in_window(samples, analysis_date, trend_window_days)
    trend_result = fit_weight_trend(window, min_days=min_trend_days)

    trend_diverging = False
    trend_message = None
    landing_result: Union[Computed[LandingPointProjection], InsufficientData]
    trend_points: list[tuple[date, float]] = []
    if isinstance(trend_result, Computed):
        trend = trend_result.value
        trend_diverging = is_trend_diverging(trend.weekly_change_kg, plan.required_weekly_change_kg)
        if trend_diverging:
            trend_message = _divergence_message(trend, plan)
        landing_result = Computed(project_landing(plan, actual, trend, analysis_date))
        trend_points = _trend_points(plan, actual, trend, analysis_date)
    else:
        landing_result = InsufficientData(
            reason="a landing point needs a weight trend",
            required=trend_result.required,
            available=trend_result.available,
        )

    landing = landing_result.value if isinstance(landing_result, Computed) else None
    status = classify_plan_status(trend_diverging, landing)
    recalibration = generate_options(
        plan, analysis_date, status, landing, tolerance_exceeded, trend_diverging
    )

    logger.debug(
        "Plan %s on %s: planned %.1f, actual %.1f, status %s",
        plan.plan_id,
        analysis_date,
        planned,
        actual,
        status.value,
    )
    return DualTrackAnalysis(
        plan_id=plan.plan_id,
        analysis_date=analysis_date,
        current_week=plan.current_week(analysis_date),
        planned_weight_kg=planned,
        actual_weight_kg=actual,
        variance_kg=variance_kg,
        variance_percent=variance_percent,
        tolerance_percent=tolerance,
        tolerance_exceeded=tolerance_exceeded,
        trend=trend_result,
        trend_diverging=trend_diverging,
        trend_message=trend_message,
        landing=landing_result,
        status=status,
        recalibration=recalibration,
        plan_points=tuple(plan.trajectory_points()),
        trend_points=tuple(trend_points),
    )
