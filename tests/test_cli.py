"""Tests for CLI commands."""

from __future__ import annotations

import json
from datetime import date, timedelta

import pytest
from typer.testing import CliRunner

from adaptrack.cli import app, parse_sessions
from adaptrack.db import DatabaseConnection, set_db
from adaptrack.db.schema import SCHEMA_VERSION
from adaptrack.training.catalog import TrainingType

runner = CliRunner()

PROFILE_ARGS = [
    "profile", "set",
    "--age", "35",
    "--sex", "male",
    "--height", "178",
    "--weight", "80",
    "--activity", "moderate",
    "--goal", "lose_weight",
]


def invoke_json(args):
    result = runner.invoke(app, [*args, "--json"])
    return result, json.loads(result.stdout)


@pytest.fixture
def cli_profile(temp_db):
    result = runner.invoke(app, PROFILE_ARGS)
    assert result.exit_code == 0
    return temp_db


class TestMainCommands:
    """Tests for main CLI commands."""

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "tdee" in result.output.lower()

    @pytest.mark.parametrize("group", ["profile", "plan", "log", "metabolic", "training"])
    def test_group_help(self, group):
        result = runner.invoke(app, [group, "--help"])
        assert result.exit_code == 0

    def test_log_add_requires_weight(self, temp_db):
        result = runner.invoke(app, ["log", "add"])
        assert result.exit_code != 0

    def test_parse_sessions(self):
        sessions = parse_sessions(["strength:60:8", "walking:30", "rest"])
        assert [s.type for s in sessions] == [
            TrainingType.STRENGTH,
            TrainingType.WALKING,
            TrainingType.REST,
        ]
        assert sessions[0].perceived_intensity == 8
        assert sessions[1].perceived_intensity is None
        assert sessions[2].duration_min == 0


class TestProfileCommands:
    """Tests for profile subcommands."""

    def test_set_and_show(self, temp_db):
        result, payload = invoke_json(PROFILE_ARGS)
        assert result.exit_code == 0
        assert payload["success"] is True
        assert payload["data"]["formula_tdee"] == 2701

        result, payload = invoke_json(["profile", "show"])
        assert result.exit_code == 0
        assert payload["data"]["sex"] == "male"
        assert payload["data"]["bmr"] == 1742

    def test_show_without_profile(self, temp_db):
        result, payload = invoke_json(["profile", "show"])
        assert result.exit_code == 1
        assert payload["success"] is False

    def test_invalid_profile(self, temp_db):
        result, payload = invoke_json([*PROFILE_ARGS[:3], "5", *PROFILE_ARGS[4:]])
        assert result.exit_code == 1
        assert payload["error_code"] == "invalid_profile"


class TestLogCommands:
    """Tests for log subcommands."""

    def test_add_and_show(self, cli_profile):
        result, payload = invoke_json(
            ["log", "add", "80.2", "--date", "2026-03-02", "--intake", "2100",
             "--planned", "strength:60:7"]
        )
        assert result.exit_code == 0
        data = payload["data"]
        assert data["weight_kg"] == 80.2
        assert data["tdee_source"] == "formula"
        assert data["training_summary"]["session_count"] == 1

        result, payload = invoke_json(["log", "show", "--date", "2026-03-02"])
        assert result.exit_code == 0
        assert payload["data"]["planned_sessions"][0]["type"] == "strength"

    def test_duplicate_day(self, cli_profile):
        runner.invoke(app, ["log", "add", "80.2", "--date", "2026-03-02"])
        result, payload = invoke_json(["log", "add", "80.0", "--date", "2026-03-02"])
        assert result.exit_code == 1
        assert payload["error_code"] == "duplicate_log"

    def test_unknown_session_type(self, cli_profile):
        result, payload = invoke_json(
            ["log", "add", "80.2", "--date", "2026-03-02", "--planned", "curling:30"]
        )
        assert result.exit_code == 1
        assert payload["error_code"] == "invalid_training_type"

    @pytest.mark.parametrize(
        "session,code",
        [("run:abc", "invalid_training_duration"), ("run:30:hard", "invalid_rpe")],
    )
    def test_malformed_session_numbers(self, cli_profile, session, code):
        result, payload = invoke_json(
            ["log", "add", "80", "--date", "2026-01-05", "--actual", session]
        )
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        assert payload["success"] is False
        assert payload["error_code"] == code

    def test_malformed_session_in_sessions_command(self, cli_profile):
        runner.invoke(app, ["log", "add", "80", "--date", "2026-01-05"])
        result, payload = invoke_json(["log", "sessions", "run:x", "--date", "2026-01-05"])
        assert result.exit_code == 1
        assert payload["error_code"] == "invalid_training_duration"

    def test_update_sessions_and_sync(self, cli_profile):
        runner.invoke(app, ["log", "add", "80.2", "--date", "2026-03-02"])
        result, payload = invoke_json(["log", "sessions", "run:40:6", "--date", "2026-03-02"])
        assert result.exit_code == 0
        assert payload["data"]["training_summary"]["source"] == "actual"

        result, payload = invoke_json(["log", "sync", "--date", "2026-03-02", "--steps", "9000"])
        assert payload["data"]["steps"] == 9000

        result, payload = invoke_json(["log", "update", "--date", "2026-03-02", "--weight", "80.0"])
        assert payload["data"]["weight_kg"] == 80.0

    def test_list_and_delete(self, cli_profile):
        today = date.today()
        for offset in range(3):
            day = (today - timedelta(days=offset)).isoformat()
            runner.invoke(app, ["log", "add", "80.0", "--date", day])
        result, payload = invoke_json(["log", "list", "--days", "7"])
        assert result.exit_code == 0
        assert len(payload["data"]["entries"]) == 3

        result = runner.invoke(app, ["log", "delete", "--date", today.isoformat()])
        assert result.exit_code == 0
        result, payload = invoke_json(["log", "list", "--days", "7"])
        assert len(payload["data"]["entries"]) == 2


class TestPlanCommands:
    """Tests for plan subcommands."""

    def create_args(self):
        return [
            "plan", "create",
            "--name", "Spring cut",
            "--start-weight", "82",
            "--goal-weight", "78",
            "--weeks", "8",
        ]

    def test_create_show_list(self, cli_profile):
        result, payload = invoke_json(self.create_args())
        assert result.exit_code == 0
        plan_id = payload["data"]["plan_id"]
        assert len(payload["data"]["weekly_targets"]) == 8

        result, payload = invoke_json(["plan", "show"])
        assert payload["data"]["plan_id"] == plan_id

        result, payload = invoke_json(["plan", "list"])
        assert [p["plan_id"] for p in payload["data"]["plans"]] == [plan_id]

    def test_second_plan_conflicts(self, cli_profile):
        runner.invoke(app, self.create_args())
        result, payload = invoke_json(self.create_args())
        assert result.exit_code == 1
        assert payload["error_code"] == "active_plan_exists"

    def test_aggressive_plan_rejected(self, cli_profile):
        args = self.create_args()
        args[args.index("78")] = "70"
        result, payload = invoke_json(args)
        assert result.exit_code == 1
        assert payload["error_code"] == "deficit_too_aggressive"

    def test_analyze(self, cli_profile):
        runner.invoke(app, self.create_args())
        runner.invoke(app, ["log", "add", "82.5"])
        result, payload = invoke_json(["plan", "analyze"])
        assert result.exit_code == 0
        data = payload["data"]
        assert data["current_week"] == 1
        assert data["tolerance_exceeded"] is True
        assert data["trend"]["state"] == "insufficient_data"
        assert data["recalibration"]["state"] == "pending"

    def test_analyze_without_plan(self, cli_profile):
        result, payload = invoke_json(["plan", "analyze"])
        assert result.exit_code == 1
        assert payload["error_code"] == "no_active_plan"

    def test_lifecycle(self, cli_profile):
        _, payload = invoke_json(self.create_args())
        plan_id = str(payload["data"]["plan_id"])

        result, payload = invoke_json(["plan", "pause", plan_id])
        assert payload["data"]["status"] == "paused"
        result, payload = invoke_json(["plan", "resume", plan_id])
        assert payload["data"]["status"] == "active"
        result, payload = invoke_json(["plan", "abandon", plan_id])
        assert payload["data"]["status"] == "abandoned"
        result, payload = invoke_json(["plan", "resume", plan_id])
        assert result.exit_code == 1
        assert payload["error_code"] == "invalid_plan_transition"

    def test_recalibrate_unknown_option(self, cli_profile):
        runner.invoke(app, self.create_args())
        result, payload = invoke_json(["plan", "recalibrate", "eat_less"])
        assert result.exit_code == 1
        assert payload["error_code"] == "invalid_recalibration_option"


class TestMetabolicAndTraining:
    """Tests for metabolic and training subcommands."""

    def test_tdee_insufficient(self, cli_profile):
        runner.invoke(app, ["log", "add", "80.0", "--intake", "2200"])
        result, payload = invoke_json(["metabolic", "tdee"])
        assert result.exit_code == 0
        assert payload["data"]["state"] == "insufficient_data"

    def test_tdee_without_profile(self, temp_db):
        result, payload = invoke_json(["metabolic", "tdee"])
        assert result.exit_code == 1
        assert payload["error_code"] == "profile_not_found"

    def test_drift_none(self, cli_profile):
        result, payload = invoke_json(["metabolic", "drift"])
        assert result.exit_code == 0
        assert payload["data"] is None

    def test_dismiss_unknown(self, cli_profile):
        result, payload = invoke_json(["metabolic", "dismiss", "higher:2026-01-05"])
        assert result.exit_code == 1
        assert payload["error_code"] == "notification_not_found"

    def test_training_types(self, temp_db):
        result, payload = invoke_json(["training", "types"])
        assert result.exit_code == 0
        names = [t["type"] for t in payload["data"]["types"]]
        assert "strength" in names
        assert len(names) == len(TrainingType)

    def test_training_load(self, cli_profile):
        runner.invoke(app, ["log", "add", "80.0", "--actual", "strength:60"])
        result, payload = invoke_json(["training", "load"])
        assert result.exit_code == 0
        assert payload["data"]["zone"] == "optimal"
        assert payload["data"]["days_of_history"] == 1

    def test_training_types_table(self, temp_db):
        result = runner.invoke(app, ["training", "types"])
        assert result.exit_code == 0
        assert "hiit" in result.output


class TestSchemaBootstrap:
    """Tests for creating the schema on first use."""

    def test_fresh_database_file(self, tmp_path):
        db = DatabaseConnection(tmp_path / "fresh.db")
        assert db.schema_version() == 0
        set_db(db)
        try:
            result = runner.invoke(app, PROFILE_ARGS)
            assert result.exit_code == 0
            assert db.missing_tables() == []
            assert db.schema_version() == SCHEMA_VERSION
        finally:
            set_db(None)
