"""Tests for metabolic and training diagnostics over stored logs."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from adaptrack import errors
from adaptrack.config import Settings
from adaptrack.errors import NotFoundError
from adaptrack.results import Computed, InsufficientData
from adaptrack.tracking import diagnostics
from adaptrack.tracking.drift import DriftDirection
from adaptrack.tracking.models import DailyLogSnapshot, TrainingSession
from adaptrack.tracking.queries import DailyLogQueries
from adaptrack.training.catalog import TrainingType
from adaptrack.training.load import LoadZone
from conftest import make_logs

START = date(2026, 1, 5)


@pytest.fixture
def fast_loss_history(temp_db, stored_profile):
    """Six weeks losing 1 kg/week on 2200 kcal/day, well beyond the formula."""
    logs = make_logs(START, 42, 82.0, -1.0, 2200.0)
    with temp_db.get_connection() as conn:
        for log in logs:
            DailyLogQueries.insert_log(conn, log)
    return logs


class TestAdaptiveTDEE:
    """Tests for get_adaptive_tdee."""

    def test_requires_profile(self, temp_db):
        with pytest.raises(NotFoundError) as exc_info:
            with temp_db.get_connection() as conn:
                diagnostics.get_adaptive_tdee(conn, START)
        assert exc_info.value.code == errors.PROFILE_NOT_FOUND

    def test_insufficient_with_short_history(self, temp_db, stored_profile):
        with temp_db.get_connection() as conn:
            for log in make_logs(START, 10, 82.0, -0.5, 2200.0):
                DailyLogQueries.insert_log(conn, log)
            result = diagnostics.get_adaptive_tdee(conn, START + timedelta(days=9))
        assert isinstance(result, InsufficientData)
        assert result.available == 10

    def test_computed(self, temp_db, log_history):
        with temp_db.get_connection() as conn:
            result = diagnostics.get_adaptive_tdee(conn, log_history[-1].log_date)
        assert isinstance(result, Computed)
        assert result.value.tdee == pytest.approx(2750, abs=150)
        assert result.value.data_points_used == 35

    def test_as_of_ignores_later_logs(self, temp_db, log_history):
        with temp_db.get_connection() as conn:
            result = diagnostics.get_adaptive_tdee(conn, START + timedelta(days=15))
        assert result.value.data_points_used == 16

    def test_settings_min_days(self, temp_db, log_history):
        settings = Settings()
        settings.metabolic.min_days = 60
        with temp_db.get_connection() as conn:
            result = diagnostics.get_adaptive_tdee(conn, log_history[-1].log_date, settings)
        assert isinstance(result, InsufficientData)
        assert result.required == 60


class TestChart:
    """Tests for get_chart_data."""

    def test_points_cover_weeks(self, temp_db, log_history):
        as_of = log_history[-1].log_date
        with temp_db.get_connection() as conn:
            chart = diagnostics.get_chart_data(conn, as_of, weeks=4)
        assert len(chart.points) == 28
        assert chart.points[0].day == as_of - timedelta(days=27)
        assert chart.points[-1].day == as_of
        assert chart.latest_tdee == chart.points[-1].tdee
        assert chart.trend in ("upregulated", "downregulated", "stable")
        assert chart.insight

    def test_weight_trend_smooths(self, temp_db, log_history):
        with temp_db.get_connection() as conn:
            chart = diagnostics.get_chart_data(conn, log_history[-1].log_date, weeks=2)
        last = chart.points[-1]
        # The EMA lags a falling weight
        assert last.weight_trend_kg > last.weight_kg

    def test_insufficient_history(self, temp_db, stored_profile):
        with temp_db.get_connection() as conn:
            chart = diagnostics.get_chart_data(conn, START)
        assert chart.points == []
        assert "two weeks" in chart.insight
        assert chart.to_dict()["estimate"]["state"] == "insufficient_data"


class TestDrift:
    """Tests for drift notifications and dismissal."""

    def test_no_drift_when_formula_matches(self, temp_db, log_history):
        with temp_db.get_connection() as conn:
            assert diagnostics.get_drift_notification(conn, log_history[-1].log_date) is None

    def test_fast_loss_notifies(self, temp_db, fast_loss_history):
        with temp_db.get_connection() as conn:
            notification = diagnostics.get_drift_notification(
                conn, fast_loss_history[-1].log_date
            )
        assert notification is not None
        assert notification.direction == DriftDirection.HIGHER
        assert notification.episode_id.startswith("higher:")
        assert notification.magnitude_kcal > 275
        assert "burning more" in notification.message

    def test_dismiss_silences(self, temp_db, fast_loss_history):
        as_of = fast_loss_history[-1].log_date
        with temp_db.get_connection() as conn:
            notification = diagnostics.get_drift_notification(conn, as_of)
            record = diagnostics.dismiss_drift_notification(
                conn, notification.episode_id, as_of, datetime(2026, 2, 15, 20, 0)
            )
            assert record.band == notification.band
            assert diagnostics.get_drift_notification(conn, as_of) is None

    def test_dismiss_unknown_episode(self, temp_db, fast_loss_history):
        with pytest.raises(NotFoundError) as exc_info:
            with temp_db.get_connection() as conn:
                diagnostics.dismiss_drift_notification(
                    conn,
                    "lower:2026-01-05",
                    fast_loss_history[-1].log_date,
                    datetime(2026, 2, 15, 20, 0),
                )
        assert exc_info.value.code == errors.NOTIFICATION_NOT_FOUND


class TestTrainingLoad:
    """Tests for get_training_load and get_training_types."""

    def log(self, conn, day, *sessions, actual=()):
        DailyLogQueries.insert_log(
            conn,
            DailyLogSnapshot(
                log_date=day,
                weight_kg=80.0,
                planned_sessions=tuple(sessions),
                actual_sessions=tuple(actual),
            ),
        )

    def test_missing_days_count_as_zero(self, temp_db):
        day = date(2026, 3, 10)
        with temp_db.get_connection() as conn:
            self.log(conn, day - timedelta(days=2), TrainingSession(type="strength", duration_min=60))
            self.log(conn, day, TrainingSession(type="walking", duration_min=30))
            status = diagnostics.get_training_load(conn, day)
        strength = 5.0 * 1.0 * (5 / 3)
        walking = 1.0 * 0.5 * (5 / 3)
        assert status.days_of_history == 3
        assert status.day_load == pytest.approx(walking)
        assert status.acute_load == pytest.approx((strength + walking) / 3)
        assert status.chronic_load == 0.0
        assert status.acr == 1.0
        assert status.zone == LoadZone.OPTIMAL

    def test_spike_after_steady_block(self, temp_db):
        day = date(2026, 3, 10)
        with temp_db.get_connection() as conn:
            for offset in range(14, 0, -1):
                self.log(
                    conn,
                    day - timedelta(days=offset),
                    TrainingSession(type="walking", duration_min=60, perceived_intensity=3),
                )
            self.log(
                conn,
                day,
                TrainingSession(type="walking", duration_min=60),
                actual=[TrainingSession(type="hiit", duration_min=90, perceived_intensity=9)],
            )
            status = diagnostics.get_training_load(conn, day)
        assert status.day_load == pytest.approx(5.0 * 1.5 * 3)
        assert status.overloaded
        assert status.zone == LoadZone.OVERLOAD

    def test_no_logs(self, temp_db):
        with temp_db.get_connection() as conn:
            status = diagnostics.get_training_load(conn, date(2026, 3, 10))
        assert status.day_load == 0.0
        assert status.days_of_history == 1

    def test_training_types_with_overrides(self):
        settings = Settings()
        settings.training.overrides = {"run": {"met": 10.5, "load_score": 3.5}}
        types = {t.type: t for t in diagnostics.get_training_types(settings)}
        assert types[TrainingType.RUN].met == 10.5
        assert types[TrainingType.RUN].load_score == 3.5
        assert types[TrainingType.ROW].met == 7.0
