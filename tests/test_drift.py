"""Tests for metabolic drift detection and dismissal."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from adaptrack.tracking.drift import (
    DismissalRecord,
    DriftDirection,
    detect_drift,
    drift_notification,
    weekly_buckets,
)
from adaptrack.tracking.metabolic import DailyTDEEEstimate

MONDAY = date(2026, 1, 5)
BASELINE = 2500.0


def week(start: date, difference: float, days: int = 7, confidence: float = 0.6):
    return [
        DailyTDEEEstimate(
            day=start + timedelta(days=i),
            tdee=BASELINE + difference,
            formula_tdee=BASELINE,
            observed_tdee=None,
            confidence=confidence,
        )
        for i in range(days)
    ]


def weeks(*differences: float, start: date = MONDAY):
    series = []
    for index, difference in enumerate(differences):
        series.extend(week(start + timedelta(weeks=index), difference))
    return series


def last_day(series) -> date:
    return series[-1].day


class TestWeeklyBuckets:
    """Tests for ISO-week bucketing."""

    def test_buckets_start_on_monday(self):
        series = week(MONDAY + timedelta(days=3), 100.0, days=7)
        buckets = weekly_buckets(series, last_day(series))
        # Thu-Sun falls in one week (4 days), Mon-Wed in the next (3 days, dropped)
        assert [b.week_start for b in buckets] == [MONDAY]
        assert buckets[0].days == 4

    def test_low_confidence_days_excluded(self):
        series = week(MONDAY, 400.0, confidence=0.2)
        assert weekly_buckets(series, last_day(series)) == []

    def test_weekly_kg(self):
        series = week(MONDAY, 275.0)
        bucket = weekly_buckets(series, last_day(series))[0]
        assert round(bucket.weekly_kg, 6) == 0.25

    def test_difference_uses_each_days_formula(self):
        # Formula TDEE falls 5 kcal/day as weight comes off; adaptive tracks it
        series = [
            DailyTDEEEstimate(
                day=MONDAY + timedelta(days=i),
                tdee=2700.0 - 5 * i + 50.0,
                formula_tdee=2700.0 - 5 * i,
                observed_tdee=None,
                confidence=0.6,
            )
            for i in range(56)
        ]
        buckets = weekly_buckets(series, last_day(series))
        assert len(buckets) == 8
        assert all(round(b.mean_difference_kcal, 6) == 50.0 for b in buckets)
        assert detect_drift(series, last_day(series)) is None


class TestDetectDrift:
    """Tests for detect_drift."""

    def test_no_drift_within_tolerance(self):
        series = weeks(100.0, 150.0, -200.0)
        assert detect_drift(series, last_day(series)) is None

    def test_two_weeks_higher(self):
        series = weeks(400.0, 400.0)
        episode = detect_drift(series, last_day(series))
        assert episode is not None
        assert episode.direction == DriftDirection.HIGHER
        assert episode.started_on == MONDAY
        assert episode.band == 4
        assert episode.episode_id == "higher:2026-01-05"
        assert episode.weeks == 2

    def test_two_weeks_lower(self):
        series = weeks(-350.0, -450.0)
        episode = detect_drift(series, last_day(series))
        assert episode.direction == DriftDirection.LOWER
        assert round(episode.magnitude_kcal) == -400

    def test_one_week_is_not_enough(self):
        series = weeks(0.0, 400.0)
        assert detect_drift(series, last_day(series)) is None

    def test_mixed_directions(self):
        series = weeks(400.0, -400.0)
        assert detect_drift(series, last_day(series)) is None

    def test_run_start_is_first_week_of_run(self):
        series = weeks(0.0, 400.0, 420.0, 410.0)
        episode = detect_drift(series, last_day(series))
        assert episode.started_on == MONDAY + timedelta(weeks=1)
        assert episode.weeks == 3

    def test_episode_id_stable_as_run_grows(self):
        series = weeks(400.0, 400.0)
        longer = weeks(400.0, 400.0, 400.0)
        first = detect_drift(series, last_day(series))
        second = detect_drift(longer, last_day(longer))
        assert first.episode_id == second.episode_id

    def test_days_after_as_of_ignored(self):
        series = weeks(400.0, 400.0)
        assert detect_drift(series, MONDAY + timedelta(days=6)) is None


class TestDismissal:
    """Tests for dismissal suppression."""

    def test_notification_without_dismissal(self):
        series = weeks(400.0, 400.0)
        notification = drift_notification(detect_drift(series, last_day(series)))
        assert notification is not None
        assert notification.message.startswith("You are burning more than the formula predicts")
        assert "below the formula projection" in notification.message
        assert notification.to_dict()["direction"] == "higher"

    def test_lower_message(self):
        series = weeks(-400.0, -400.0)
        notification = drift_notification(detect_drift(series, last_day(series)))
        assert notification.message.startswith("You are burning less than the formula predicts")
        assert "400 kcal/day below" in notification.message

    def test_no_episode_no_notification(self):
        assert drift_notification(None) is None

    def test_dismissal_suppresses_same_episode(self):
        series = weeks(400.0, 400.0)
        episode = detect_drift(series, last_day(series))
        dismissal = DismissalRecord.for_episode(episode, datetime(2026, 1, 19, 8, 0))
        assert drift_notification(episode, dismissal) is None

        # Next week, same run, same band: still silent
        longer = weeks(400.0, 400.0, 430.0)
        later = detect_drift(longer, last_day(longer))
        assert drift_notification(later, dismissal) is None

    def test_worsened_band_renotifies(self):
        series = weeks(400.0, 400.0)
        episode = detect_drift(series, last_day(series))
        dismissal = DismissalRecord.for_episode(episode, datetime(2026, 1, 19, 8, 0))

        worse = weeks(400.0, 400.0, 650.0)
        worsened = detect_drift(worse, last_day(worse))
        assert worsened.band > dismissal.band
        assert drift_notification(worsened, dismissal) is not None

    def test_new_episode_renotifies(self):
        series = weeks(400.0, 400.0)
        episode = detect_drift(series, last_day(series))
        dismissal = DismissalRecord.for_episode(episode, datetime(2026, 1, 19, 8, 0))

        # Drift ends, then a new run starts two weeks later
        renewed = weeks(400.0, 400.0, 0.0, 400.0, 400.0)
        new_episode = detect_drift(renewed, last_day(renewed))
        assert new_episode.episode_id != episode.episode_id
        assert drift_notification(new_episode, dismissal) is not None

    def test_direction_flip_renotifies(self):
        series = weeks(400.0, 400.0)
        episode = detect_drift(series, last_day(series))
        dismissal = DismissalRecord.for_episode(episode, datetime(2026, 1, 19, 8, 0))

        flipped = weeks(-400.0, -400.0)
        assert drift_notification(
            detect_drift(flipped, last_day(flipped)), dismissal
        ) is not None
