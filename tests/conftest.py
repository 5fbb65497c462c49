"""Pytest fixtures for adaptrack tests."""

from __future__ import annotations

import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest

from adaptrack.config import Settings, set_settings
from adaptrack.db import set_db
from adaptrack.db.connection import DatabaseConnection
from adaptrack.profiles.body_calc import UserProfile
from adaptrack.tracking.models import DailyLogSnapshot
from adaptrack.tracking.queries import DailyLogQueries, ProfileQueries


@pytest.fixture(autouse=True)
def default_settings():
    """Isolate every test from ~/.adaptrack/config.yaml."""
    settings = Settings()
    set_settings(settings)
    yield settings
    set_settings(None)


@pytest.fixture
def temp_db():
    """Create a temporary database with schema and make it the global one."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    db = DatabaseConnection(db_path)
    db.initialize_schema()
    set_db(db)

    yield db

    # Cleanup
    set_db(None)
    db_path.unlink(missing_ok=True)


@pytest.fixture
def profile() -> UserProfile:
    """A 35-year-old moderately active male, 80 kg."""
    return UserProfile(
        age=35,
        sex="male",
        height_cm=178,
        weight_kg=80.0,
        activity_level="moderate",
        goal="lose_weight",
    )


@pytest.fixture
def stored_profile(temp_db, profile):
    with temp_db.get_connection() as conn:
        ProfileQueries.save_profile(conn, profile)
    return profile


def make_logs(
    start: date,
    days: int,
    start_weight: float,
    weekly_change: float,
    intake: float,
):
    """Linear-weight daily logs with constant intake."""
    return [
        DailyLogSnapshot(
            log_date=start + timedelta(days=i),
            weight_kg=round(start_weight + weekly_change * i / 7, 2),
            intake_kcal=intake,
        )
        for i in range(days)
    ]


@pytest.fixture
def log_history(temp_db, stored_profile):
    """Five weeks of logs losing 0.5 kg/week on 2200 kcal/day."""
    logs = make_logs(date(2026, 1, 5), 35, 82.0, -0.5, 2200.0)
    with temp_db.get_connection() as conn:
        for log in logs:
            DailyLogQueries.insert_log(conn, log)
    return logs
