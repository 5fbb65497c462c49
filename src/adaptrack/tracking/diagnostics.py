"""Metabolic and training diagnostics built from stored logs."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union

from adaptrack import errors
from adaptrack.config import Settings, get_settings
from adaptrack.errors import NotFoundError
from adaptrack.results import Computed, InsufficientData, describe
from adaptrack.tracking.drift import (
    DismissalRecord,
    DriftNotification,
    detect_drift,
    drift_notification,
)
from adaptrack.tracking.ema import calculate_trend
from adaptrack.tracking.logs import to_metabolic_points
from adaptrack.tracking.metabolic import (
    AdaptiveTDEE,
    DailyTDEEEstimate,
    estimate_adaptive_tdee,
    insight_text,
    metabolic_trend,
    tdee_trend_line,
)
from adaptrack.tracking.queries import DailyLogQueries, DismissalQueries, ProfileQueries
from adaptrack.training.catalog import TrainingTypeConfig, build_catalog, list_training_types
from adaptrack.training.load import TrainingLoadStatus, daily_load, training_load_status

logger = logging.getLogger(__name__)

LOAD_HISTORY_DAYS = 28


@dataclass
class ChartPoint:
    """One day on the metabolic chart."""

    day: date
    weight_kg: float
    weight_trend_kg: float
    tdee: float
    formula_tdee: float
    tdee_trend: float
    confidence: float
    intake_kcal: Optional[float]

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "weight_kg": self.weight_kg,
            "weight_trend_kg": round(self.weight_trend_kg, 2),
            "tdee": round(self.tdee),
            "formula_tdee": round(self.formula_tdee),
            "tdee_trend": round(self.tdee_trend),
            "confidence": round(self.confidence, 2),
            "intake_kcal": self.intake_kcal,
        }


@dataclass
class MetabolicChart:
    """Chart data for the last ``weeks`` weeks."""

    as_of: date
    weeks: int
    estimate: Union[Computed[AdaptiveTDEE], InsufficientData]
    points: list[ChartPoint] = field(default_factory=list)
    average_tdee: Optional[float] = None
    latest_tdee: Optional[float] = None
    trend: str = "stable"
    delta_kcal: int = 0
    insight: str = ""

    def to_dict(self) -> dict:
        estimate = (
            {"state": "computed", **self.estimate.value.to_dict()}
            if isinstance(self.estimate, Computed)
            else describe(self.estimate)
        )
        return {
            "as_of": self.as_of.isoformat(),
            "weeks": self.weeks,
            "estimate": estimate,
            "points": [p.to_dict() for p in self.points],
            "average_tdee": round(self.average_tdee) if self.average_tdee is not None else None,
            "latest_tdee": round(self.latest_tdee) if self.latest_tdee is not None else None,
            "trend": self.trend,
            "delta_kcal": self.delta_kcal,
            "insight": self.insight,
        }


def _estimate(
    conn: sqlite3.Connection, as_of: date, settings: Settings
) -> tuple[Union[Computed[AdaptiveTDEE], InsufficientData], list]:
    profile = ProfileQueries.require_profile(conn)
    logs = DailyLogQueries.list_logs(conn, end=as_of)
    metabolic = settings.metabolic
    result = estimate_adaptive_tdee(
        to_metabolic_points(logs),
        profile,
        as_of=as_of,
        min_days=metabolic.min_days,
        window_days=metabolic.window_days,
        min_window_weighins=metabolic.min_window_weighins,
        outlier_sigma=metabolic.outlier_sigma,
    )
    return result, logs


def get_adaptive_tdee(
    conn: sqlite3.Connection,
    as_of: date,
    settings: Optional[Settings] = None,
) -> Union[Computed[AdaptiveTDEE], InsufficientData]:
    """Adaptive TDEE from all logs up to ``as_of``."""
    result, _ = _estimate(conn, as_of, settings or get_settings())
    return result


def get_chart_data(
    conn: sqlite3.Connection,
    as_of: date,
    weeks: int = 4,
    settings: Optional[Settings] = None,
) -> MetabolicChart:
    """Daily TDEE and weight trend for the chart, with a trend label and insight."""
    settings = settings or get_settings()
    result, logs = _estimate(conn, as_of, settings)
    chart = MetabolicChart(as_of=as_of, weeks=weeks, estimate=result)
    if not isinstance(result, Computed):
        chart.insight = "Log weight and intake for at least two weeks to see your metabolic trend."
        return chart

    first_day = as_of - timedelta(days=weeks * 7 - 1)
    estimates: list[DailyTDEEEstimate] = [e for e in result.value.series if e.day >= first_day]
    weight_trend = dict(
        zip(
            (log.log_date for log in logs),
            calculate_trend([(log.log_date, log.weight_kg) for log in logs]),
        )
    )
    weights = {log.log_date: log for log in logs}
    tdee_line = dict(tdee_trend_line(estimates))

    chart.points = [
        ChartPoint(
            day=e.day,
            weight_kg=weights[e.day].weight_kg,
            weight_trend_kg=weight_trend[e.day],
            tdee=e.tdee,
            formula_tdee=e.formula_tdee,
            tdee_trend=tdee_line[e.day],
            confidence=e.confidence,
            intake_kcal=weights[e.day].intake_kcal,
        )
        for e in estimates
    ]
    if estimates:
        chart.average_tdee = sum(e.tdee for e in estimates) / len(estimates)
        chart.latest_tdee = estimates[-1].tdee
    chart.trend, chart.delta_kcal = metabolic_trend(estimates)
    chart.insight = insight_text(chart.trend, chart.delta_kcal, weeks)
    return chart


def _current_episode(conn: sqlite3.Connection, as_of: date, settings: Settings):
    result, logs = _estimate(conn, as_of, settings)
    if not isinstance(result, Computed) or not logs:
        return None
    metabolic = settings.metabolic
    return detect_drift(
        result.value.series,
        as_of,
        tolerance_kg=metabolic.drift_tolerance_kg,
        window_weeks=metabolic.drift_window_weeks,
        min_confidence=metabolic.drift_min_confidence,
    )


def get_drift_notification(
    conn: sqlite3.Connection,
    as_of: date,
    settings: Optional[Settings] = None,
) -> Optional[DriftNotification]:
    """Current undismissed drift notification, or None."""
    settings = settings or get_settings()
    episode = _current_episode(conn, as_of, settings)
    return drift_notification(episode, DismissalQueries.latest_dismissal(conn))


def dismiss_drift_notification(
    conn: sqlite3.Connection,
    episode_id: str,
    as_of: date,
    dismissed_at: datetime,
    settings: Optional[Settings] = None,
) -> DismissalRecord:
    """Record a dismissal for the current episode.

    Raises:
        NotFoundError: no current episode has ``episode_id``
    """
    settings = settings or get_settings()
    episode = _current_episode(conn, as_of, settings)
    if episode is None or episode.episode_id != episode_id:
        raise NotFoundError(
            errors.NOTIFICATION_NOT_FOUND, f"no current drift episode {episode_id}"
        )
    record = DismissalRecord.for_episode(episode, dismissed_at)
    DismissalQueries.add_dismissal(conn, record)
    logger.info("Dismissed drift episode %s at band %d", episode_id, record.band)
    return record


def get_training_load(
    conn: sqlite3.Connection,
    as_of: date,
    settings: Optional[Settings] = None,
) -> TrainingLoadStatus:
    """Load status for ``as_of`` from the preceding 28 days of logs.

    Days without a log count as zero load.
    """
    settings = settings or get_settings()
    catalog = build_catalog(settings.training.overrides)
    start = as_of - timedelta(days=LOAD_HISTORY_DAYS - 1)
    logs = {log.log_date: log for log in DailyLogQueries.list_logs(conn, start, as_of)}

    first_logged = min(logs) if logs else as_of
    history = []
    day = first_logged
    while day <= as_of:
        log = logs.get(day)
        history.append(
            daily_load(log.actual_sessions, log.planned_sessions, catalog) if log else 0.0
        )
        day += timedelta(days=1)
    return training_load_status(history[-1] if history else 0.0, history)


def get_training_types(settings: Optional[Settings] = None) -> list[TrainingTypeConfig]:
    """Training catalog with any configured overrides applied."""
    settings = settings or get_settings()
    return list_training_types(build_catalog(settings.training.overrides))
