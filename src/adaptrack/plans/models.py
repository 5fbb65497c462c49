"""Nutrition plan models, validation and lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Sequence

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.profiles.body_calc import (
    KCAL_PER_KG,
    UserProfile,
    formula_tdee,
    weekly_change_to_daily_kcal,
)
from adaptrack.tracking.models import parse_date, validate_weight

logger = logging.getLogger(__name__)

MIN_PLAN_WEEKS = 4
MAX_PLAN_WEEKS = 104
MAX_SAFE_DEFICIT_KCAL = 750.0
MAX_SAFE_SURPLUS_KCAL = 500.0
MAX_START_DATE_AGE_DAYS = 7


class PlanStatus(str, Enum):
    """Plan lifecycle states."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


ALLOWED_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.ACTIVE: frozenset({PlanStatus.PAUSED, PlanStatus.COMPLETED, PlanStatus.ABANDONED}),
    PlanStatus.PAUSED: frozenset({PlanStatus.ACTIVE, PlanStatus.COMPLETED, PlanStatus.ABANDONED}),
    PlanStatus.COMPLETED: frozenset(),
    PlanStatus.ABANDONED: frozenset(),
}


@dataclass(frozen=True)
class WeeklyTarget:
    """Projection and targets for one plan week."""

    week_number: int
    start_date: date
    end_date: date
    projected_weight_kg: float
    projected_tdee: int
    target_intake_kcal: int
    daily_balance_kcal: int  # negative = deficit
    actual_weight_kg: Optional[float] = None
    actual_intake_kcal: Optional[float] = None
    days_logged: int = 0

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "projected_weight_kg": self.projected_weight_kg,
            "projected_tdee": self.projected_tdee,
            "target_intake_kcal": self.target_intake_kcal,
            "daily_balance_kcal": self.daily_balance_kcal,
            "actual_weight_kg": self.actual_weight_kg,
            "actual_intake_kcal": self.actual_intake_kcal,
            "days_logged": self.days_logged,
        }


@dataclass(frozen=True)
class NutritionPlan:
    """A weight-change plan from start to goal over a fixed number of weeks."""

    name: str
    start_date: date
    start_weight_kg: float
    goal_weight_kg: float
    duration_weeks: int
    status: PlanStatus = PlanStatus.ACTIVE
    weekly_targets: tuple[WeeklyTarget, ...] = ()
    kcal_factor_override: Optional[float] = None
    tolerance_percent: float = 3.0
    plan_id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)
    last_recalibrated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_date", parse_date(self.start_date))
        object.__setattr__(self, "status", PlanStatus(self.status))
        if self.duration_weeks <= 0:
            raise ValidationError(
                errors.INVALID_PLAN_DURATION,
                f"duration_weeks must be positive, got {self.duration_weeks}",
            )
        object.__setattr__(self, "weekly_targets", tuple(self.weekly_targets))

    @property
    def required_weekly_change_kg(self) -> float:
        """(goal - start) / weeks; negative for a loss plan."""
        return (self.goal_weight_kg - self.start_weight_kg) / self.duration_weeks

    @property
    def required_daily_deficit_kcal(self) -> float:
        """Daily energy balance for the required rate (negative = deficit)."""
        return weekly_change_to_daily_kcal(self.required_weekly_change_kg)

    @property
    def total_change_kg(self) -> float:
        return self.goal_weight_kg - self.start_weight_kg

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(weeks=self.duration_weeks)

    def current_week(self, as_of: date) -> int:
        """1-based plan week containing ``as_of`` (0 before the start)."""
        if as_of < self.start_date:
            return 0
        return (as_of - self.start_date).days // 7 + 1

    def target_for_week(self, week_number: int) -> Optional[WeeklyTarget]:
        for target in self.weekly_targets:
            if target.week_number == week_number:
                return target
        return None

    def trajectory_points(self) -> list[tuple[date, float]]:
        """Planned (date, weight) knots: the start plus each week's end."""
        points = [(self.start_date, self.start_weight_kg)]
        points.extend((t.end_date, t.projected_weight_kg) for t in self.weekly_targets)
        if len(points) == 1:
            points.append((self.end_date, self.goal_weight_kg))
        return points

    def to_dict(self, include_targets: bool = True) -> dict:
        data = {
            "plan_id": self.plan_id,
            "name": self.name,
            "status": self.status.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_weight_kg": self.start_weight_kg,
            "goal_weight_kg": self.goal_weight_kg,
            "duration_weeks": self.duration_weeks,
            "required_weekly_change_kg": round(self.required_weekly_change_kg, 3),
            "required_daily_deficit_kcal": round(self.required_daily_deficit_kcal),
            "kcal_factor_override": self.kcal_factor_override,
            "tolerance_percent": self.tolerance_percent,
            "last_recalibrated_at": (
                self.last_recalibrated_at.isoformat() if self.last_recalibrated_at else None
            ),
        }
        if include_targets:
            data["weekly_targets"] = [t.to_dict() for t in self.weekly_targets]
        return data


def projected_tdee(
    weight_kg: float,
    profile: Optional[UserProfile],
    kcal_factor_override: Optional[float] = None,
) -> float:
    """TDEE used for plan projections (weight x factor when overridden)."""
    if kcal_factor_override is not None:
        return weight_kg * kcal_factor_override
    if profile is None:
        raise ValidationError(
            errors.INVALID_PROFILE, "a profile or kcal_factor_override is required for projections"
        )
    return formula_tdee(profile, weight_kg)


def generate_weekly_targets(
    start_date: date,
    anchor_weight_kg: float,
    goal_weight_kg: float,
    duration_weeks: int,
    profile: Optional[UserProfile],
    kcal_factor_override: Optional[float] = None,
    first_week: int = 1,
) -> list[WeeklyTarget]:
    """Project weeks ``first_week``..``duration_weeks`` on a straight line.

    The line runs from ``anchor_weight_kg`` at the start of ``first_week`` to
    the goal at the end of the plan. Each week's projected weight is its
    end-of-week value rounded to 0.1 kg.
    """
    weeks_left = duration_weeks - first_week + 1
    if weeks_left <= 0:
        return []
    weekly_change = (goal_weight_kg - anchor_weight_kg) / weeks_left
    balance = weekly_change_to_daily_kcal(weekly_change)

    targets = []
    for offset, week in enumerate(range(first_week, duration_weeks + 1), start=1):
        weight = round(anchor_weight_kg + weekly_change * offset, 1)
        tdee = projected_tdee(weight, profile, kcal_factor_override)
        week_start = start_date + timedelta(weeks=week - 1)
        targets.append(
            WeeklyTarget(
                week_number=week,
                start_date=week_start,
                end_date=week_start + timedelta(days=7),
                projected_weight_kg=weight,
                projected_tdee=int(round(tdee)),
                target_intake_kcal=int(round(tdee + balance)),
                daily_balance_kcal=int(round(balance)),
            )
        )
    return targets


def build_plan(
    name: str,
    start_date: date,
    start_weight_kg: float,
    goal_weight_kg: float,
    duration_weeks: int,
    profile: Optional[UserProfile] = None,
    kcal_factor_override: Optional[float] = None,
    tolerance_percent: float = 3.0,
    created_at: Optional[datetime] = None,
) -> NutritionPlan:
    """Build a plan with projected weekly targets, without safety limits.

    Weekly targets are generated only when a profile or kcal factor is
    available to project TDEE.
    """
    start_date = parse_date(start_date)
    targets: list[WeeklyTarget] = []
    if profile is not None or kcal_factor_override is not None:
        targets = generate_weekly_targets(
            start_date,
            start_weight_kg,
            goal_weight_kg,
            duration_weeks,
            profile,
            kcal_factor_override,
        )
    return NutritionPlan(
        name=name,
        start_date=start_date,
        start_weight_kg=start_weight_kg,
        goal_weight_kg=goal_weight_kg,
        duration_weeks=duration_weeks,
        weekly_targets=tuple(targets),
        kcal_factor_override=kcal_factor_override,
        tolerance_percent=tolerance_percent,
        created_at=created_at,
    )


def validate_new_plan(
    name: str,
    start_date: date,
    start_weight_kg: float,
    goal_weight_kg: float,
    duration_weeks: int,
    now: date,
) -> None:
    """Enforce creation-time limits: duration, weights, start date, pace."""
    if not name or not name.strip():
        raise ValidationError(errors.INVALID_PLAN_NAME, "plan name is required")
    if not MIN_PLAN_WEEKS <= duration_weeks <= MAX_PLAN_WEEKS:
        raise ValidationError(
            errors.INVALID_PLAN_DURATION,
            f"duration_weeks must be {MIN_PLAN_WEEKS}-{MAX_PLAN_WEEKS}, got {duration_weeks}",
        )
    validate_weight(start_weight_kg, "start_weight_kg")
    validate_weight(goal_weight_kg, "goal_weight_kg")
    if start_date < now - timedelta(days=MAX_START_DATE_AGE_DAYS):
        raise ValidationError(
            errors.PLAN_START_DATE_TOO_OLD,
            f"start_date may be at most {MAX_START_DATE_AGE_DAYS} days in the past",
        )

    daily = (goal_weight_kg - start_weight_kg) / duration_weeks * KCAL_PER_KG / 7
    if daily < -MAX_SAFE_DEFICIT_KCAL:
        raise ValidationError(
            errors.DEFICIT_TOO_AGGRESSIVE,
            f"plan needs a {-daily:.0f} kcal/day deficit; the limit is {MAX_SAFE_DEFICIT_KCAL:.0f}",
        )
    if daily > MAX_SAFE_SURPLUS_KCAL:
        raise ValidationError(
            errors.SURPLUS_TOO_AGGRESSIVE,
            f"plan needs a {daily:.0f} kcal/day surplus; the limit is {MAX_SAFE_SURPLUS_KCAL:.0f}",
        )


def create_plan(
    name: str,
    start_date: date,
    start_weight_kg: float,
    goal_weight_kg: float,
    duration_weeks: int,
    now: date,
    profile: Optional[UserProfile] = None,
    kcal_factor_override: Optional[float] = None,
    tolerance_percent: float = 3.0,
) -> NutritionPlan:
    """Validate and build a new active plan."""
    start_date = parse_date(start_date)
    validate_new_plan(name, start_date, start_weight_kg, goal_weight_kg, duration_weeks, now)
    return build_plan(
        name.strip(),
        start_date,
        start_weight_kg,
        goal_weight_kg,
        duration_weeks,
        profile=profile,
        kcal_factor_override=kcal_factor_override,
        tolerance_percent=tolerance_percent,
    )


def transition(plan: NutritionPlan, new_status: PlanStatus) -> NutritionPlan:
    """Move a plan to ``new_status`` if the lifecycle allows it."""
    new_status = PlanStatus(new_status)
    if new_status not in ALLOWED_TRANSITIONS[plan.status]:
        raise ValidationError(
            errors.INVALID_PLAN_TRANSITION,
            f"cannot move plan from {plan.status.value} to {new_status.value}",
        )
    return replace(plan, status=new_status)


def with_weekly_actuals(
    plan: NutritionPlan,
    entries: Sequence[tuple[date, float, Optional[float]]],
) -> NutritionPlan:
    """Fill each week's observed mean weight, mean intake and logged days.

    Args:
        plan: Plan whose targets to annotate
        entries: (date, weight_kg, intake_kcal or None) per logged day
    """
    targets = []
    for target in plan.weekly_targets:
        week = [e for e in entries if target.start_date <= e[0] < target.end_date]
        intakes = [e[2] for e in week if e[2] is not None]
        targets.append(
            replace(
                target,
                actual_weight_kg=round(sum(e[1] for e in week) / len(week), 2) if week else None,
                actual_intake_kcal=round(sum(intakes) / len(intakes)) if intakes else None,
                days_logged=len(week),
            )
        )
    return replace(plan, weekly_targets=tuple(targets))


def reanchor_plan(
    plan: NutritionPlan,
    as_of: date,
    actual_weight_kg: float,
    profile: Optional[UserProfile],
    goal_weight_kg: Optional[float] = None,
    duration_weeks: Optional[int] = None,
    recalibrated_at: Optional[datetime] = None,
) -> NutritionPlan:
    """Regenerate weekly targets from the current week onward.

    Weeks already started before the current one keep their targets (and
    recorded actuals); the rest are re-projected from ``actual_weight_kg``
    to the (possibly new) goal over the (possibly new) duration.
    """
    goal = plan.goal_weight_kg if goal_weight_kg is None else goal_weight_kg
    duration = plan.duration_weeks if duration_weeks is None else duration_weeks
    first_week = min(max(plan.current_week(as_of), 1), duration)

    kept = [t for t in plan.weekly_targets if t.week_number < first_week]
    regenerated: list[WeeklyTarget] = []
    if profile is not None or plan.kcal_factor_override is not None:
        regenerated = generate_weekly_targets(
            plan.start_date,
            actual_weight_kg,
            goal,
            duration,
            profile,
            plan.kcal_factor_override,
            first_week=first_week,
        )
    logger.debug(
        "Re-anchored plan %s at week %d: %.1f kg -> %.1f kg over %d weeks",
        plan.plan_id,
        first_week,
        actual_weight_kg,
        goal,
        duration,
    )
    return replace(
        plan,
        goal_weight_kg=goal,
        duration_weeks=duration,
        weekly_targets=tuple(kept + regenerated),
        last_recalibrated_at=recalibrated_at,
    )


class PlanHealth(str, Enum):
    """Overall plan status from the analyzer."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    OFF_TRACK = "off_track"
    CRITICAL = "critical"


@dataclass(frozen=True)
class LandingPointProjection:
    """Where the current trend puts the weight on the plan end date."""

    weight_kg: float
    landing_date: date
    offset_from_goal_kg: float  # landing - goal
    goal_weight_kg: float

    @property
    def variance_from_goal_kg(self) -> float:
        return abs(self.offset_from_goal_kg)

    @property
    def on_track_for_goal(self) -> bool:
        return self.variance_from_goal_kg < 1.0

    def to_dict(self) -> dict:
        return {
            "weight_kg": round(self.weight_kg, 1),
            "date": self.landing_date.isoformat(),
            "goal_weight_kg": self.goal_weight_kg,
            "offset_from_goal_kg": round(self.offset_from_goal_kg, 2),
            "variance_from_goal_kg": round(self.variance_from_goal_kg, 2),
            "on_track_for_goal": self.on_track_for_goal,
        }
