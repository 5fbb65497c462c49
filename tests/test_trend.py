"""Tests for least-squares weight trends."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from adaptrack.results import Computed, InsufficientData
from adaptrack.tracking.trend import (
    WeightSample,
    average_by_day,
    fit_weight_trend,
    samples_in_window,
)

START = date(2026, 2, 2)


def linear_samples(days: int, start_weight: float, weekly_change: float) -> list[WeightSample]:
    return [
        WeightSample(START + timedelta(days=i), start_weight + weekly_change * i / 7)
        for i in range(days)
    ]


class TestFitWeightTrend:
    """Tests for fit_weight_trend."""

    def test_recovers_linear_slope(self):
        result = fit_weight_trend(linear_samples(21, 90.0, -0.7))
        assert isinstance(result, Computed)
        trend = result.value
        assert trend.weekly_change_kg == pytest.approx(-0.7)
        assert trend.r_squared == pytest.approx(1.0)
        assert trend.days_used == 21
        assert trend.daily_change_kg == pytest.approx(-0.1)

    def test_flat_series_has_perfect_fit(self):
        result = fit_weight_trend(linear_samples(10, 75.0, 0.0))
        assert isinstance(result, Computed)
        assert result.value.weekly_change_kg == pytest.approx(0.0)
        assert result.value.r_squared == 1.0

    def test_too_few_days(self):
        result = fit_weight_trend(linear_samples(4, 80.0, -0.5))
        assert isinstance(result, InsufficientData)
        assert result.required == 5
        assert result.available == 4

    def test_same_day_samples_count_once(self):
        samples = [WeightSample(START, 80.0), WeightSample(START, 81.0)] * 3
        result = fit_weight_trend(samples)
        assert isinstance(result, InsufficientData)
        assert result.available == 1

    def test_predict(self):
        trend = fit_weight_trend(linear_samples(14, 80.0, 0.35)).value
        assert trend.predict(START + timedelta(days=28)) == pytest.approx(81.4)

    def test_noise_lowers_r_squared(self):
        samples = linear_samples(14, 80.0, -0.5)
        noisy = [
            WeightSample(s.sample_date, s.weight_kg + (0.8 if i % 2 else -0.8))
            for i, s in enumerate(samples)
        ]
        trend = fit_weight_trend(noisy).value
        assert trend.r_squared < 0.9
        assert trend.weekly_change_kg < 0


class TestHelpers:
    """Tests for day averaging and windowing."""

    def test_average_by_day(self):
        samples = [
            WeightSample(START + timedelta(days=1), 79.0),
            WeightSample(START, 80.0),
            WeightSample(START, 81.0),
        ]
        assert average_by_day(samples) == [
            (START, pytest.approx(80.5)),
            (START + timedelta(days=1), pytest.approx(79.0)),
        ]

    def test_samples_in_window_is_inclusive(self):
        samples = linear_samples(40, 80.0, -0.5)
        end = START + timedelta(days=39)
        window = samples_in_window(samples, end, 30)
        assert len(window) == 30
        assert window[0].sample_date == end - timedelta(days=29)
