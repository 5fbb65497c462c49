"""Database queries for profiles, daily logs and drift dismissals."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Optional

from adaptrack import errors
from adaptrack.errors import ConflictError, NotFoundError
from adaptrack.profiles.body_calc import UserProfile
from adaptrack.tracking.drift import DismissalRecord, DriftDirection
from adaptrack.tracking.models import DailyLogSnapshot, TrainingSession

_PROFILE_COLUMNS = """
    profile_id, age, sex, height_cm, weight_kg, activity_level, goal,
    bmr_equation, body_fat_percent, tolerance_percent
"""

_LOG_COLUMNS = """
    log_id, log_date, weight_kg, body_fat_percent, resting_heart_rate,
    sleep_hours, intake_kcal, steps, active_calories, notes, created_at
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ProfileQueries:
    """Database queries for the user profile."""

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> UserProfile:
        return UserProfile(
            profile_id=row["profile_id"],
            age=row["age"],
            sex=row["sex"],
            height_cm=row["height_cm"],
            weight_kg=row["weight_kg"],
            activity_level=row["activity_level"],
            goal=row["goal"],
            bmr_equation=row["bmr_equation"],
            body_fat_percent=row["body_fat_percent"],
            tolerance_percent=row["tolerance_percent"],
        )

    @staticmethod
    def save_profile(conn: sqlite3.Connection, profile: UserProfile) -> int:
        """Insert the profile, or update the existing one. Returns profile_id."""
        values = (
            profile.age,
            profile.sex.value,
            profile.height_cm,
            profile.weight_kg,
            profile.activity_level.value,
            profile.goal.value,
            profile.bmr_equation.value,
            profile.body_fat_percent,
            profile.tolerance_percent,
        )
        existing = ProfileQueries.get_profile(conn)
        if existing is None:
            cursor = conn.execute(
                """
                INSERT INTO user_profiles (age, sex, height_cm, weight_kg, activity_level,
                                           goal, bmr_equation, body_fat_percent,
                                           tolerance_percent)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
            return cursor.lastrowid or 0

        conn.execute(
            """
            UPDATE user_profiles
            SET age = ?, sex = ?, height_cm = ?, weight_kg = ?, activity_level = ?,
                goal = ?, bmr_equation = ?, body_fat_percent = ?, tolerance_percent = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE profile_id = ?
            """,
            (*values, existing.profile_id),
        )
        return existing.profile_id or 0

    @staticmethod
    def get_profile(conn: sqlite3.Connection) -> Optional[UserProfile]:
        """Get the (single) user profile."""
        row = conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM user_profiles ORDER BY profile_id LIMIT 1"
        ).fetchone()
        if row is None:
            return None
        return ProfileQueries._row_to_profile(row)

    @staticmethod
    def require_profile(conn: sqlite3.Connection) -> UserProfile:
        profile = ProfileQueries.get_profile(conn)
        if profile is None:
            raise NotFoundError(errors.PROFILE_NOT_FOUND, "no user profile found")
        return profile


class DailyLogQueries:
    """Database queries for daily logs and their training sessions."""

    @staticmethod
    def _load_sessions(
        conn: sqlite3.Connection, log_id: int
    ) -> tuple[tuple[TrainingSession, ...], tuple[TrainingSession, ...]]:
        rows = conn.execute(
            """
            SELECT kind, training_type, duration_min, perceived_intensity, notes
            FROM training_sessions WHERE log_id = ?
            ORDER BY kind, position
            """,
            (log_id,),
        ).fetchall()
        planned: list[TrainingSession] = []
        actual: list[TrainingSession] = []
        for row in rows:
            session = TrainingSession(
                type=row["training_type"],
                duration_min=row["duration_min"],
                perceived_intensity=row["perceived_intensity"],
                notes=row["notes"],
            )
            (planned if row["kind"] == "planned" else actual).append(session)
        return tuple(planned), tuple(actual)

    @staticmethod
    def _row_to_log(conn: sqlite3.Connection, row: sqlite3.Row) -> DailyLogSnapshot:
        planned, actual = DailyLogQueries._load_sessions(conn, row["log_id"])
        return DailyLogSnapshot(
            log_id=row["log_id"],
            log_date=row["log_date"],
            weight_kg=row["weight_kg"],
            body_fat_percent=row["body_fat_percent"],
            resting_heart_rate=row["resting_heart_rate"],
            sleep_hours=row["sleep_hours"],
            intake_kcal=row["intake_kcal"],
            steps=row["steps"],
            active_calories=row["active_calories"],
            notes=row["notes"],
            planned_sessions=planned,
            actual_sessions=actual,
            created_at=_parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def replace_sessions(
        conn: sqlite3.Connection,
        log_id: int,
        kind: str,
        sessions: tuple[TrainingSession, ...],
    ) -> None:
        """Replace the planned or actual sessions of a log, keeping order."""
        conn.execute(
            "DELETE FROM training_sessions WHERE log_id = ? AND kind = ?", (log_id, kind)
        )
        conn.executemany(
            """
            INSERT INTO training_sessions (log_id, kind, position, training_type,
                                           duration_min, perceived_intensity, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    log_id,
                    kind,
                    position,
                    session.type.value,
                    session.duration_min,
                    session.perceived_intensity,
                    session.notes,
                )
                for position, session in enumerate(sessions)
            ],
        )

    @staticmethod
    def insert_log(conn: sqlite3.Connection, log: DailyLogSnapshot) -> int:
        """Insert a new daily log. Raises ConflictError if the date exists."""
        try:
            cursor = conn.execute(
                """
                INSERT INTO daily_logs (log_date, weight_kg, body_fat_percent,
                                        resting_heart_rate, sleep_hours, intake_kcal,
                                        steps, active_calories, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.log_date.isoformat(),
                    log.weight_kg,
                    log.body_fat_percent,
                    log.resting_heart_rate,
                    log.sleep_hours,
                    log.intake_kcal,
                    log.steps,
                    log.active_calories,
                    log.notes,
                ),
            )
        except sqlite3.IntegrityError:
            raise ConflictError(
                errors.DUPLICATE_LOG, f"a log for {log.log_date.isoformat()} already exists"
            ) from None
        log_id = cursor.lastrowid or 0
        DailyLogQueries.replace_sessions(conn, log_id, "planned", log.planned_sessions)
        DailyLogQueries.replace_sessions(conn, log_id, "actual", log.actual_sessions)
        return log_id

    @staticmethod
    def update_log(conn: sqlite3.Connection, log: DailyLogSnapshot) -> None:
        """Overwrite a stored log (and its sessions) with ``log``."""
        if log.log_id is None:
            raise ValueError("Cannot update log without log_id")
        conn.execute(
            """
            UPDATE daily_logs
            SET weight_kg = ?, body_fat_percent = ?, resting_heart_rate = ?,
                sleep_hours = ?, intake_kcal = ?, steps = ?, active_calories = ?,
                notes = ?, updated_at = CURRENT_TIMESTAMP
            WHERE log_id = ?
            """,
            (
                log.weight_kg,
                log.body_fat_percent,
                log.resting_heart_rate,
                log.sleep_hours,
                log.intake_kcal,
                log.steps,
                log.active_calories,
                log.notes,
                log.log_id,
            ),
        )
        DailyLogQueries.replace_sessions(conn, log.log_id, "planned", log.planned_sessions)
        DailyLogQueries.replace_sessions(conn, log.log_id, "actual", log.actual_sessions)

    @staticmethod
    def get_log(conn: sqlite3.Connection, log_date: date) -> Optional[DailyLogSnapshot]:
        row = conn.execute(
            f"SELECT {_LOG_COLUMNS} FROM daily_logs WHERE log_date = ?",
            (log_date.isoformat(),),
        ).fetchone()
        if row is None:
            return None
        return DailyLogQueries._row_to_log(conn, row)

    @staticmethod
    def require_log(conn: sqlite3.Connection, log_date: date) -> DailyLogSnapshot:
        log = DailyLogQueries.get_log(conn, log_date)
        if log is None:
            raise NotFoundError(errors.LOG_NOT_FOUND, f"no log for {log_date.isoformat()}")
        return log

    @staticmethod
    def list_logs(
        conn: sqlite3.Connection,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[DailyLogSnapshot]:
        """Logs between ``start`` and ``end`` inclusive, oldest first."""
        clauses = []
        params: list[str] = []
        if start is not None:
            clauses.append("log_date >= ?")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("log_date <= ?")
            params.append(end.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = conn.execute(
            f"SELECT {_LOG_COLUMNS} FROM daily_logs {where} ORDER BY log_date",
            tuple(params),
        ).fetchall()
        return [DailyLogQueries._row_to_log(conn, row) for row in rows]

    @staticmethod
    def delete_log(conn: sqlite3.Connection, log_date: date) -> bool:
        cursor = conn.execute("DELETE FROM daily_logs WHERE log_date = ?", (log_date.isoformat(),))
        return cursor.rowcount > 0


class DismissalQueries:
    """Database queries for drift notification dismissals."""

    @staticmethod
    def add_dismissal(conn: sqlite3.Connection, record: DismissalRecord) -> int:
        cursor = conn.execute(
            """
            INSERT INTO drift_dismissals (episode_id, direction, started_on, band, dismissed_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.episode_id,
                record.direction.value,
                record.started_on.isoformat(),
                record.band,
                record.dismissed_at.isoformat(),
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def latest_dismissal(conn: sqlite3.Connection) -> Optional[DismissalRecord]:
        row = conn.execute(
            """
            SELECT episode_id, direction, started_on, band, dismissed_at
            FROM drift_dismissals ORDER BY dismissed_at DESC, dismissal_id DESC LIMIT 1
            """
        ).fetchone()
        if row is None:
            return None
        return DismissalRecord(
            episode_id=row["episode_id"],
            direction=DriftDirection(row["direction"]),
            started_on=date.fromisoformat(row["started_on"]),
            band=row["band"],
            dismissed_at=datetime.fromisoformat(row["dismissed_at"]),
        )
