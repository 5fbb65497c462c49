"""Daily log operations.

Every function takes an open connection so callers control the transaction
(``with get_db().get_connection() as conn``). Logs returned from here carry
their computed fields: estimated TDEE with its source and confidence,
calculated targets (when a profile exists) and a training summary.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional, Sequence

from adaptrack import errors
from adaptrack.config import Settings, get_settings
from adaptrack.errors import NotFoundError, ValidationError
from adaptrack.plans.queries import PlanQueries
from adaptrack.profiles.body_calc import calculate_daily_targets, formula_tdee
from adaptrack.results import Computed
from adaptrack.tracking.metabolic import MetabolicDataPoint, estimate_adaptive_tdee
from adaptrack.tracking.models import (
    DailyLogSnapshot,
    SyncMetrics,
    TrainingSession,
    parse_date,
)
from adaptrack.tracking.queries import DailyLogQueries, ProfileQueries
from adaptrack.training.catalog import build_catalog
from adaptrack.training.load import summarize_training

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "weight_kg",
    "body_fat_percent",
    "resting_heart_rate",
    "sleep_hours",
    "intake_kcal",
    "steps",
    "active_calories",
    "notes",
    "planned_sessions",
)


def to_metabolic_points(logs: Iterable[DailyLogSnapshot]) -> list[MetabolicDataPoint]:
    """Project logs onto what the metabolic estimator needs."""
    return [
        MetabolicDataPoint(day=log.log_date, weight_kg=log.weight_kg, intake_kcal=log.intake_kcal)
        for log in logs
    ]


def _coerce_sessions(sessions: Optional[Sequence]) -> tuple[TrainingSession, ...]:
    result = []
    for session in sessions or ():
        if isinstance(session, TrainingSession):
            result.append(session)
        else:
            result.append(TrainingSession.from_dict(dict(session)))
    return tuple(result)


def enrich_log(
    conn: sqlite3.Connection,
    log: DailyLogSnapshot,
    settings: Optional[Settings] = None,
) -> DailyLogSnapshot:
    """Attach estimated TDEE, calculated targets and training summary."""
    settings = settings or get_settings()
    catalog = build_catalog(settings.training.overrides)
    summary = summarize_training(log.actual_sessions, log.planned_sessions, log.weight_kg, catalog)

    profile = ProfileQueries.get_profile(conn)
    if profile is None:
        return log.supersede(training_summary=summary)

    tdee = formula_tdee(profile, log.weight_kg)
    source = "formula"
    confidence = 0.0

    history = DailyLogQueries.list_logs(conn, end=log.log_date)
    metabolic = settings.metabolic
    adaptive = estimate_adaptive_tdee(
        to_metabolic_points(history),
        profile,
        as_of=log.log_date,
        min_days=metabolic.min_days,
        window_days=metabolic.window_days,
        min_window_weighins=metabolic.min_window_weighins,
        outlier_sigma=metabolic.outlier_sigma,
    )
    if isinstance(adaptive, Computed):
        confidence = adaptive.value.confidence
        if confidence >= metabolic.drift_min_confidence:
            tdee = adaptive.value.tdee
            source = "adaptive"

    plan_balance = None
    plan = PlanQueries.get_active_plan(conn)
    if plan is not None:
        target = plan.target_for_week(plan.current_week(log.log_date))
        if target is not None:
            plan_balance = float(target.daily_balance_kcal)

    targets = calculate_daily_targets(
        profile,
        log.weight_kg,
        tdee,
        is_training_day=summary.is_training_day,
        tdee_source=source,
        plan_daily_kcal=plan_balance,
    )
    return log.supersede(
        estimated_tdee=tdee,
        tdee_source=source,
        confidence=confidence,
        calculated_targets=targets,
        training_summary=summary,
    )


def create_daily_log(
    conn: sqlite3.Connection,
    log: DailyLogSnapshot,
    settings: Optional[Settings] = None,
) -> DailyLogSnapshot:
    """Store a new log. Raises ConflictError when the date is already logged."""
    log_id = DailyLogQueries.insert_log(conn, log)
    logger.info("Created daily log for %s", log.log_date)
    return enrich_log(conn, replace(log, log_id=log_id), settings)


def get_daily_log(
    conn: sqlite3.Connection,
    log_date: date | str,
    settings: Optional[Settings] = None,
) -> DailyLogSnapshot:
    """Fetch the log for a date with computed fields. Raises NotFoundError."""
    log = DailyLogQueries.require_log(conn, parse_date(log_date))
    return enrich_log(conn, log, settings)


def list_daily_logs(
    conn: sqlite3.Connection,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[DailyLogSnapshot]:
    """Raw logs in a date range, oldest first (no computed fields)."""
    return DailyLogQueries.list_logs(conn, start, end)


def update_daily_log(
    conn: sqlite3.Connection,
    log_date: date | str,
    settings: Optional[Settings] = None,
    **changes,
) -> DailyLogSnapshot:
    """Replace editable fields of an existing log.

    Args:
        log_date: Date of the log to edit
        **changes: Any of weight_kg, body_fat_percent, resting_heart_rate,
                   sleep_hours, intake_kcal, steps, active_calories, notes,
                   planned_sessions
    """
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            errors.INVALID_LOG_FIELD, f"unknown log fields: {', '.join(sorted(unknown))}"
        )
    if "planned_sessions" in changes:
        changes["planned_sessions"] = _coerce_sessions(changes["planned_sessions"])

    current = DailyLogQueries.require_log(conn, parse_date(log_date))
    updated = current.supersede(**changes)
    DailyLogQueries.update_log(conn, updated)
    return enrich_log(conn, updated, settings)


def update_actual_sessions(
    conn: sqlite3.Connection,
    log_date: date | str,
    sessions: Sequence,
    settings: Optional[Settings] = None,
) -> DailyLogSnapshot:
    """Replace the actual sessions logged for a day."""
    current = DailyLogQueries.require_log(conn, parse_date(log_date))
    updated = current.supersede(actual_sessions=_coerce_sessions(sessions))
    DailyLogQueries.replace_sessions(conn, updated.log_id, "actual", updated.actual_sessions)
    return enrich_log(conn, updated, settings)


def apply_synced_metrics(
    conn: sqlite3.Connection,
    log_date: date | str,
    metrics: SyncMetrics,
    settings: Optional[Settings] = None,
) -> DailyLogSnapshot:
    """Merge device-synced metrics into a log without nulling known values.

    Raises:
        NotFoundError: no log exists for the date
        ValidationError: a synced value is out of range
    """
    current = DailyLogQueries.require_log(conn, parse_date(log_date))
    merged = current.with_sync(metrics)
    if merged is not current:
        DailyLogQueries.update_log(conn, merged)
        logger.debug("Synced metrics into log %s", merged.log_date)
    return enrich_log(conn, merged, settings)


def delete_daily_log(conn: sqlite3.Connection, log_date: date | str) -> None:
    day = parse_date(log_date)
    if not DailyLogQueries.delete_log(conn, day):
        raise NotFoundError(errors.LOG_NOT_FOUND, f"no log for {day.isoformat()}")
