"""Plan operations on top of the database.

All functions take an open connection and explicit dates; nothing here
reads the clock.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from typing import Optional

from adaptrack import errors
from adaptrack.config import Settings, get_settings
from adaptrack.errors import ConflictError, NotFoundError, ValidationError
from adaptrack.plans import models
from adaptrack.plans.analyzer import DualTrackAnalysis, actual_weight_on, analyze_plan
from adaptrack.plans.models import NutritionPlan, PlanStatus
from adaptrack.plans.queries import PlanQueries, RecalibrationQueries
from adaptrack.plans.recalibration import RecalibrationType, apply_recalibration
from adaptrack.tracking.models import parse_date
from adaptrack.tracking.queries import DailyLogQueries, ProfileQueries
from adaptrack.tracking.trend import WeightSample

logger = logging.getLogger(__name__)


def create_plan(
    conn: sqlite3.Connection,
    name: str,
    start_date: date | str,
    start_weight_kg: float,
    goal_weight_kg: float,
    duration_weeks: int,
    now: date,
    kcal_factor_override: Optional[float] = None,
    tolerance_percent: Optional[float] = None,
) -> NutritionPlan:
    """Validate, build and store a new active plan.

    Raises:
        ValidationError: duration, weights, start date or pace out of bounds
        ConflictError: another plan is already active
    """
    if PlanQueries.get_active_plan(conn) is not None:
        raise ConflictError(errors.ACTIVE_PLAN_EXISTS, "an active plan already exists")

    profile = ProfileQueries.get_profile(conn)
    if tolerance_percent is None:
        tolerance_percent = (
            profile.tolerance_percent if profile else get_settings().analysis.tolerance_percent
        )
    plan = models.create_plan(
        name,
        parse_date(start_date),
        start_weight_kg,
        goal_weight_kg,
        duration_weeks,
        now=now,
        profile=profile,
        kcal_factor_override=kcal_factor_override,
        tolerance_percent=tolerance_percent,
    )
    stored = PlanQueries.insert_plan(conn, plan)
    logger.info(
        "Created plan %s: %.1f -> %.1f kg over %d weeks",
        stored.plan_id,
        stored.start_weight_kg,
        stored.goal_weight_kg,
        stored.duration_weeks,
    )
    return PlanQueries.require_plan(conn, stored.plan_id)


def _with_actuals(conn: sqlite3.Connection, plan: NutritionPlan) -> NutritionPlan:
    logs = DailyLogQueries.list_logs(conn, plan.start_date, plan.end_date)
    return models.with_weekly_actuals(
        plan, [(log.log_date, log.weight_kg, log.intake_kcal) for log in logs]
    )


def get_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
    """Plan with weekly actuals filled from the logs."""
    return _with_actuals(conn, PlanQueries.require_plan(conn, plan_id))


def get_active_plan(conn: sqlite3.Connection) -> Optional[NutritionPlan]:
    plan = PlanQueries.get_active_plan(conn)
    return _with_actuals(conn, plan) if plan is not None else None


def list_plans(
    conn: sqlite3.Connection, status: Optional[PlanStatus] = None
) -> list[NutritionPlan]:
    return PlanQueries.list_plans(conn, status)


def _transition(conn: sqlite3.Connection, plan_id: int, status: PlanStatus) -> NutritionPlan:
    plan = PlanQueries.require_plan(conn, plan_id)
    if status == PlanStatus.ACTIVE:
        active = PlanQueries.get_active_plan(conn)
        if active is not None and active.plan_id != plan_id:
            raise ConflictError(errors.ACTIVE_PLAN_EXISTS, "an active plan already exists")
    updated = models.transition(plan, status)
    PlanQueries.update_plan(conn, updated)
    logger.info("Plan %s: %s -> %s", plan_id, plan.status.value, status.value)
    return updated


def complete_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
    return _transition(conn, plan_id, PlanStatus.COMPLETED)


def abandon_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
    return _transition(conn, plan_id, PlanStatus.ABANDONED)


def pause_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
    return _transition(conn, plan_id, PlanStatus.PAUSED)


def resume_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
    return _transition(conn, plan_id, PlanStatus.ACTIVE)


def delete_plan(conn: sqlite3.Connection, plan_id: int) -> None:
    if not PlanQueries.delete_plan(conn, plan_id):
        raise NotFoundError(errors.PLAN_NOT_FOUND, f"plan {plan_id} not found")
    logger.info("Deleted plan %s", plan_id)


def _weight_samples(conn: sqlite3.Connection, end: date) -> list[WeightSample]:
    return [
        WeightSample(sample_date=log.log_date, weight_kg=log.weight_kg)
        for log in DailyLogQueries.list_logs(conn, end=end)
    ]


def _resolve_plan(conn: sqlite3.Connection, plan_id: Optional[int]) -> NutritionPlan:
    if plan_id is not None:
        return PlanQueries.require_plan(conn, plan_id)
    plan = PlanQueries.get_active_plan(conn)
    if plan is None:
        raise NotFoundError(errors.NO_ACTIVE_PLAN, "no active plan")
    return plan


def analyze(
    conn: sqlite3.Connection,
    analysis_date: date | str,
    plan_id: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> DualTrackAnalysis:
    """Dual-track analysis of a plan (the active one by default)."""
    settings = settings or get_settings()
    day = parse_date(analysis_date)
    plan = _resolve_plan(conn, plan_id)
    return analyze_plan(
        plan,
        _weight_samples(conn, day),
        day,
        trend_window_days=settings.analysis.trend_window_days,
        min_trend_days=settings.analysis.min_trend_days,
    )


def recalibrate_plan(
    conn: sqlite3.Connection,
    plan_id: int,
    option_type: RecalibrationType | str,
    analysis_date: date | str,
    now: datetime,
    settings: Optional[Settings] = None,
) -> NutritionPlan:
    """Apply one of the options the current analysis offers.

    Raises:
        ValidationError: the option is not among the computed options
    """
    option_type = RecalibrationType(option_type)
    day = parse_date(analysis_date)
    analysis = analyze(conn, day, plan_id, settings)
    option = next((o for o in analysis.options if o.type == option_type), None)
    if option is None:
        offered = ", ".join(o.type.value for o in analysis.options) or "none"
        raise ValidationError(
            errors.INVALID_RECALIBRATION_OPTION,
            f"{option_type.value} is not available for this plan (offered: {offered})",
        )

    plan = PlanQueries.require_plan(conn, plan_id)
    actual = actual_weight_on(_weight_samples(conn, day), day, plan.start_weight_kg)
    updated = apply_recalibration(
        plan, option, day, actual, ProfileQueries.get_profile(conn), now=now
    )
    PlanQueries.update_plan(conn, _with_actuals(conn, updated))
    RecalibrationQueries.record(conn, plan, option, now)
    logger.info("Plan %s recalibrated with %s", plan_id, option.type.value)
    return get_plan(conn, plan_id)


def list_recalibrations(conn: sqlite3.Connection, plan_id: int) -> list[dict]:
    PlanQueries.require_plan(conn, plan_id)
    return RecalibrationQueries.list_for_plan(conn, plan_id)
