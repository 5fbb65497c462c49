"""Tests for dual-track plan analysis."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.plans.analyzer import (
    actual_weight_on,
    analyze_plan,
    classify_plan_status,
    is_trend_diverging,
    planned_weight_on,
)
from adaptrack.plans.models import LandingPointProjection, PlanHealth, build_plan
from adaptrack.plans.recalibration import RecalibrationType
from adaptrack.results import Computed, InsufficientData, NotRequired, Pending
from adaptrack.tracking.trend import WeightSample

START = date(2026, 1, 5)


def loss_plan(**overrides):
    values = dict(
        name="Cut",
        start_date=START,
        start_weight_kg=75.0,
        goal_weight_kg=70.0,
        duration_weeks=10,
        kcal_factor_override=30.0,
    )
    values.update(overrides)
    return build_plan(**values)


def samples(days, start_weight=75.0, weekly_change=-0.5):
    return [
        WeightSample(START + timedelta(days=i), start_weight + weekly_change * i / 7)
        for i in range(days)
    ]


def landing(offset, goal=40.0):
    return LandingPointProjection(
        weight_kg=goal + offset,
        landing_date=START + timedelta(weeks=12),
        offset_from_goal_kg=offset,
        goal_weight_kg=goal,
    )


class TestClassification:
    """Tests for classify_plan_status on a 75 -> 40 kg, 12-week plan."""

    @pytest.mark.parametrize(
        "offset,status",
        [
            (0.99, PlanHealth.ON_TRACK),
            (1.0, PlanHealth.AT_RISK),
            (3.0, PlanHealth.AT_RISK),
            (3.01, PlanHealth.OFF_TRACK),
            (-3.01, PlanHealth.OFF_TRACK),
        ],
    )
    def test_landing_variance_bands(self, offset, status):
        assert classify_plan_status(False, landing(offset)) == status

    def test_diverging_is_critical(self):
        assert classify_plan_status(True, landing(0.0)) == PlanHealth.CRITICAL
        assert classify_plan_status(True, None) == PlanHealth.CRITICAL

    def test_no_landing_is_on_track(self):
        assert classify_plan_status(False, None) == PlanHealth.ON_TRACK

    def test_divergence(self):
        assert is_trend_diverging(0.2, -0.5)
        assert is_trend_diverging(-0.2, 0.5)
        assert not is_trend_diverging(-0.2, -0.5)
        assert not is_trend_diverging(0.0, -0.5)


class TestWeights:
    """Tests for planned and actual weight lookups."""

    def test_planned_weight_interpolates(self):
        plan = loss_plan()
        assert planned_weight_on(plan, START) == pytest.approx(75.0)
        assert planned_weight_on(plan, START + timedelta(days=7)) == pytest.approx(74.5)
        assert planned_weight_on(plan, START + timedelta(days=10)) == pytest.approx(74.5 - 0.5 * 3 / 7)

    def test_planned_weight_clamped_after_end(self):
        plan = loss_plan()
        assert planned_weight_on(plan, START + timedelta(weeks=20)) == pytest.approx(70.0)

    def test_actual_weight_latest_at_or_before(self):
        data = samples(10)
        assert actual_weight_on(data, START + timedelta(days=4), 99.0) == pytest.approx(
            75.0 - 0.5 * 4 / 7
        )

    def test_actual_weight_fallback(self):
        assert actual_weight_on([], START, 75.0) == 75.0

    def test_actual_weight_averages_same_day(self):
        data = [WeightSample(START, 75.0), WeightSample(START, 76.0)]
        assert actual_weight_on(data, START, 0.0) == pytest.approx(75.5)


class TestAnalyzePlan:
    """Tests for analyze_plan."""

    def test_on_plan(self):
        day = START + timedelta(days=28)
        analysis = analyze_plan(loss_plan(), samples(29), day)
        assert analysis.current_week == 5
        assert analysis.planned_weight_kg == pytest.approx(73.0)
        assert analysis.actual_weight_kg == pytest.approx(73.0)
        assert analysis.variance_kg == pytest.approx(0.0, abs=1e-9)
        assert not analysis.tolerance_exceeded
        assert not analysis.trend_diverging
        assert analysis.landing_point.weight_kg == pytest.approx(70.0)
        assert analysis.status == PlanHealth.ON_TRACK
        assert isinstance(analysis.recalibration, NotRequired)
        assert not analysis.recalibration_needed

    def test_diverging_plan(self):
        day = START + timedelta(days=28)
        analysis = analyze_plan(loss_plan(), samples(29, weekly_change=0.3), day)
        assert analysis.trend_diverging
        assert "moving away" in analysis.trend_message
        assert analysis.status == PlanHealth.CRITICAL
        assert analysis.tolerance_exceeded
        assert analysis.landing_point.weight_kg == pytest.approx(78.0)
        assert analysis.recalibration_needed
        types = [o.type for o in analysis.options]
        assert types == [
            RecalibrationType.INCREASE_DEFICIT,
            RecalibrationType.EXTEND_TIMELINE,
            RecalibrationType.REVISE_GOAL,
        ]

    def test_diverging_trend_within_tolerance(self):
        # On the planned weight at week 4 but the trend has turned slightly upward
        plan = loss_plan(start_weight_kg=80.0, duration_weeks=20)
        day = START + timedelta(days=28)
        data = [
            WeightSample(START + timedelta(days=i), 78.0 + 0.05 * (i - 28) / 7)
            for i in range(29)
        ]
        analysis = analyze_plan(plan, data, day)
        assert analysis.planned_weight_kg == pytest.approx(78.0)
        assert analysis.variance_kg == pytest.approx(0.0, abs=1e-9)
        assert not analysis.tolerance_exceeded
        assert analysis.trend.value.weekly_change_kg == pytest.approx(0.05)
        assert analysis.trend_diverging
        assert analysis.status == PlanHealth.CRITICAL
        assert analysis.recalibration_needed
        assert isinstance(analysis.recalibration, Computed)
        assert analysis.options

    def test_variance_percent_uses_total_change(self):
        day = START + timedelta(days=28)
        data = samples(29) + [WeightSample(day, 73.5)]
        analysis = analyze_plan(loss_plan(), data, day)
        # Same-day samples average: (73.0 + 73.5) / 2
        assert analysis.variance_kg == pytest.approx(0.25)
        assert analysis.variance_percent == pytest.approx(5.0)
        assert analysis.tolerance_exceeded

    def test_maintenance_plan_uses_planned_weight(self):
        plan = loss_plan(goal_weight_kg=75.0)
        day = START + timedelta(days=14)
        data = [WeightSample(day, 76.5)]
        analysis = analyze_plan(plan, data, day)
        assert analysis.variance_percent == pytest.approx(1.5 / 75.0 * 100)

    def test_tolerance_boundary_is_inclusive(self):
        day = START + timedelta(days=28)
        data = samples(28) + [WeightSample(day, 73.25)]
        analysis = analyze_plan(loss_plan(), data, day, tolerance_percent=5.0)
        assert analysis.variance_percent == pytest.approx(5.0)
        assert analysis.tolerance_exceeded
        assert analysis.tolerance_percent == 5.0

    def test_insufficient_trend(self):
        day = START + timedelta(days=3)
        analysis = analyze_plan(loss_plan(), samples(3), day)
        assert isinstance(analysis.trend, InsufficientData)
        assert isinstance(analysis.landing, InsufficientData)
        assert analysis.landing_point is None
        assert analysis.status == PlanHealth.ON_TRACK

    def test_pending_when_triggered_without_landing(self):
        day = START + timedelta(days=3)
        data = [WeightSample(day, 77.0)]
        analysis = analyze_plan(loss_plan(), data, day)
        assert analysis.tolerance_exceeded
        assert isinstance(analysis.recalibration, Pending)
        assert analysis.options == []

    def test_before_start_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            analyze_plan(loss_plan(), [], START - timedelta(days=1))
        assert exc_info.value.code == errors.ANALYSIS_BEFORE_PLAN_START

    def test_trend_window_excludes_old_samples(self):
        day = START + timedelta(days=59)
        # Gaining for the first month, then losing on plan
        early = samples(30, weekly_change=0.5)
        late = [
            WeightSample(START + timedelta(days=30 + i), 77.0 - 0.5 * i / 7) for i in range(30)
        ]
        analysis = analyze_plan(loss_plan(), early + late, day)
        assert isinstance(analysis.trend, Computed)
        assert analysis.trend.value.weekly_change_kg == pytest.approx(-0.5)
        assert not analysis.trend_diverging

    def test_to_dict(self):
        day = START + timedelta(days=28)
        data = analyze_plan(loss_plan(), samples(29, weekly_change=0.3), day).to_dict()
        assert data["status"] == "critical"
        assert data["recalibration"]["state"] == "computed"
        assert len(data["recalibration"]["options"]) == 3
        assert data["landing_point"]["state"] == "computed"
        assert data["plan_points"][0] == {"date": "2026-01-05", "weight_kg": 75.0}
