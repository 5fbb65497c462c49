"""Recalibration options for a plan that is drifting from its goal.

Given the analyzer's verdict, produce a short list of concrete ways to get
back on course: change daily intake, extend the timeline, revise the goal,
or keep going as is. Each option carries a feasibility rating and
human-readable text; :func:`apply_recalibration` turns a chosen option into
a new plan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.profiles.body_calc import KCAL_PER_KG, UserProfile, round_to_nearest
from adaptrack.plans.models import (
    MAX_PLAN_WEEKS,
    LandingPointProjection,
    NutritionPlan,
    PlanHealth,
    PlanStatus,
    reanchor_plan,
)
from adaptrack.results import Computed, NotRequired, Pending
from adaptrack.tracking.models import MAX_WEIGHT_KG, MIN_WEIGHT_KG

logger = logging.getLogger(__name__)

ACHIEVABLE_KCAL = 250
MODERATE_KCAL = 500
ACHIEVABLE_EXTRA_WEEKS = 4
MODERATE_EXTRA_WEEKS = 12
STATUS_BOUNDARIES_KG = (1.0, 3.0)
KCAL_ROUNDING = 50


class RecalibrationType(str, Enum):
    """Kinds of course correction."""
    INCREASE_DEFICIT = "increase_deficit"
    DECREASE_DEFICIT = "decrease_deficit"
    EXTEND_TIMELINE = "extend_timeline"
    REVISE_GOAL = "revise_goal"
    KEEP_CURRENT = "keep_current"


class Feasibility(str, Enum):
    """How hard an option is to follow."""
    ACHIEVABLE = "Achievable"
    MODERATE = "Moderate"
    AMBITIOUS = "Ambitious"


@dataclass(frozen=True)
class RecalibrationOption:
    """One way to respond to plan variance."""

    type: RecalibrationType
    feasibility: Feasibility
    new_parameter: str
    impact: str
    value: float  # kcal/day, total weeks or goal kg depending on type

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "feasibility": self.feasibility.value,
            "new_parameter": self.new_parameter,
            "impact": self.impact,
            "value": self.value,
        }


def kcal_feasibility(kcal: float) -> Feasibility:
    if abs(kcal) <= ACHIEVABLE_KCAL:
        return Feasibility.ACHIEVABLE
    if abs(kcal) <= MODERATE_KCAL:
        return Feasibility.MODERATE
    return Feasibility.AMBITIOUS


def extension_feasibility(extra_weeks: int, capped: bool) -> Feasibility:
    if capped:
        return Feasibility.AMBITIOUS
    if extra_weeks <= ACHIEVABLE_EXTRA_WEEKS:
        return Feasibility.ACHIEVABLE
    if extra_weeks <= MODERATE_EXTRA_WEEKS:
        return Feasibility.MODERATE
    return Feasibility.AMBITIOUS


def is_triggered(tolerance_exceeded: bool, trend_diverging: bool, status: PlanHealth) -> bool:
    """Whether the analysis calls for recalibration options at all."""
    return (
        tolerance_exceeded
        or trend_diverging
        or status in (PlanHealth.AT_RISK, PlanHealth.OFF_TRACK, PlanHealth.CRITICAL)
    )


def remaining_weeks(plan: NutritionPlan, as_of: date) -> int:
    """Weeks left after the current one, at least 1."""
    return max(plan.duration_weeks - plan.current_week(as_of), 1)


def _intake_option(
    plan: NutritionPlan, landing: LandingPointProjection, as_of: date
) -> Optional[RecalibrationOption]:
    weeks = remaining_weeks(plan, as_of)
    weekly_kg = landing.variance_from_goal_kg / weeks
    kcal = round_to_nearest(weekly_kg * KCAL_PER_KG / 7, KCAL_ROUNDING)
    if kcal == 0:
        return None

    if landing.offset_from_goal_kg > 0:
        return RecalibrationOption(
            type=RecalibrationType.INCREASE_DEFICIT,
            feasibility=kcal_feasibility(kcal),
            new_parameter=f"-{kcal:.0f} kcal/day",
            impact=(
                f"Eat {kcal:.0f} kcal/day less for the remaining {weeks} weeks "
                f"to reach {plan.goal_weight_kg:.1f} kg by {plan.end_date.isoformat()}"
            ),
            value=-kcal,
        )
    return RecalibrationOption(
        type=RecalibrationType.DECREASE_DEFICIT,
        feasibility=kcal_feasibility(kcal),
        new_parameter=f"+{kcal:.0f} kcal/day",
        impact=(
            f"Eat {kcal:.0f} kcal/day more for the remaining {weeks} weeks "
            f"to land on {plan.goal_weight_kg:.1f} kg instead of overshooting"
        ),
        value=kcal,
    )


def _extend_option(
    plan: NutritionPlan, landing: LandingPointProjection
) -> Optional[RecalibrationOption]:
    required = plan.required_weekly_change_kg
    falling_short = landing.offset_from_goal_kg * plan.total_change_kg < 0
    if not falling_short or required == 0:
        return None

    extra = math.ceil(landing.variance_from_goal_kg / abs(required))
    new_duration = min(plan.duration_weeks + extra, MAX_PLAN_WEEKS)
    if new_duration <= plan.duration_weeks:
        return None
    capped = plan.duration_weeks + extra > MAX_PLAN_WEEKS
    added = new_duration - plan.duration_weeks
    new_end = plan.start_date + timedelta(weeks=new_duration)
    return RecalibrationOption(
        type=RecalibrationType.EXTEND_TIMELINE,
        feasibility=extension_feasibility(added, capped),
        new_parameter=f"{new_duration} weeks",
        impact=(
            f"Add {added} weeks at the current pace; "
            f"reach {plan.goal_weight_kg:.1f} kg by {new_end.isoformat()}"
        ),
        value=float(new_duration),
    )


def _revise_option(landing: LandingPointProjection) -> Optional[RecalibrationOption]:
    new_goal = round(min(max(landing.weight_kg, MIN_WEIGHT_KG), MAX_WEIGHT_KG), 1)
    if abs(new_goal - landing.goal_weight_kg) < 0.1:
        return None
    return RecalibrationOption(
        type=RecalibrationType.REVISE_GOAL,
        feasibility=Feasibility.ACHIEVABLE,
        new_parameter=f"{new_goal:.1f} kg",
        impact=f"Keep the current pace and end the plan at {new_goal:.1f} kg",
        value=new_goal,
    )


def _keep_option(landing: LandingPointProjection) -> RecalibrationOption:
    return RecalibrationOption(
        type=RecalibrationType.KEEP_CURRENT,
        feasibility=Feasibility.ACHIEVABLE,
        new_parameter="no change",
        impact=f"Projected to land at {landing.weight_kg:.1f} kg; continue as planned",
        value=0.0,
    )


def generate_options(
    plan: NutritionPlan,
    as_of: date,
    status: PlanHealth,
    landing: Optional[LandingPointProjection],
    tolerance_exceeded: bool,
    trend_diverging: bool,
) -> Computed[list[RecalibrationOption]] | Pending | NotRequired:
    """Build the recalibration options for an analysis.

    Returns:
        NotRequired when nothing triggers recalibration, Pending when it is
        triggered but no landing point exists yet, otherwise Computed with
        1-4 options
    """
    if not is_triggered(tolerance_exceeded, trend_diverging, status):
        return NotRequired("plan is within tolerance and on track")
    if landing is None:
        return Pending("waiting for enough weigh-ins to project a landing point")

    options: list[RecalibrationOption] = []
    for option in (
        _intake_option(plan, landing, as_of),
        _extend_option(plan, landing),
        _revise_option(landing),
    ):
        if option is not None:
            options.append(option)

    at_boundary = any(
        math.isclose(landing.variance_from_goal_kg, boundary) for boundary in STATUS_BOUNDARIES_KG
    )
    if status == PlanHealth.ON_TRACK or at_boundary or not options:
        options.append(_keep_option(landing))

    logger.debug(
        "Plan %s: %d recalibration options (%s)",
        plan.plan_id,
        len(options),
        ", ".join(o.type.value for o in options),
    )
    return Computed(options)


def apply_recalibration(
    plan: NutritionPlan,
    option: RecalibrationOption,
    as_of: date,
    actual_weight_kg: float,
    profile: Optional[UserProfile],
    now: Optional[datetime] = None,
) -> NutritionPlan:
    """Return a new plan reflecting the chosen option.

    Intake options re-solve the pace from the current weight to the same
    goal and end date; extending keeps the goal and lengthens the plan;
    revising keeps the end date and moves the goal. Weeks before the current
    one are left untouched.
    """
    if plan.status != PlanStatus.ACTIVE:
        raise ValidationError(
            errors.RECALIBRATION_NOT_AVAILABLE,
            f"only active plans can be recalibrated (plan is {plan.status.value})",
        )

    if option.type == RecalibrationType.KEEP_CURRENT:
        return replace(plan, last_recalibrated_at=now)
    if option.type in (RecalibrationType.INCREASE_DEFICIT, RecalibrationType.DECREASE_DEFICIT):
        return reanchor_plan(plan, as_of, actual_weight_kg, profile, recalibrated_at=now)
    if option.type == RecalibrationType.EXTEND_TIMELINE:
        return reanchor_plan(
            plan, as_of, actual_weight_kg, profile,
            duration_weeks=int(option.value), recalibrated_at=now,
        )
    if option.type == RecalibrationType.REVISE_GOAL:
        return reanchor_plan(
            plan, as_of, actual_weight_kg, profile,
            goal_weight_kg=float(option.value), recalibrated_at=now,
        )
    raise ValidationError(errors.INVALID_RECALIBRATION_OPTION, f"unknown option {option.type}")
