"""Database queries for nutrition plans and recalibration history."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from adaptrack import errors
from adaptrack.errors import ConflictError, NotFoundError
from adaptrack.plans.models import NutritionPlan, PlanStatus, WeeklyTarget
from adaptrack.plans.recalibration import RecalibrationOption

_PLAN_COLUMNS = """
    plan_id, name, start_date, start_weight_kg, goal_weight_kg, duration_weeks,
    status, kcal_factor_override, tolerance_percent, created_at, last_recalibrated_at
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class PlanQueries:
    """Database queries for nutrition plans."""

    @staticmethod
    def _load_targets(conn: sqlite3.Connection, plan_id: int) -> tuple[WeeklyTarget, ...]:
        rows = conn.execute(
            """
            SELECT week_number, start_date, end_date, projected_weight_kg, projected_tdee,
                   target_intake_kcal, daily_balance_kcal, actual_weight_kg,
                   actual_intake_kcal, days_logged
            FROM weekly_targets WHERE plan_id = ? ORDER BY week_number
            """,
            (plan_id,),
        ).fetchall()
        return tuple(
            WeeklyTarget(
                week_number=row["week_number"],
                start_date=date.fromisoformat(row["start_date"]),
                end_date=date.fromisoformat(row["end_date"]),
                projected_weight_kg=row["projected_weight_kg"],
                projected_tdee=row["projected_tdee"],
                target_intake_kcal=row["target_intake_kcal"],
                daily_balance_kcal=row["daily_balance_kcal"],
                actual_weight_kg=row["actual_weight_kg"],
                actual_intake_kcal=row["actual_intake_kcal"],
                days_logged=row["days_logged"],
            )
            for row in rows
        )

    @staticmethod
    def _row_to_plan(conn: sqlite3.Connection, row: sqlite3.Row) -> NutritionPlan:
        return NutritionPlan(
            plan_id=row["plan_id"],
            name=row["name"],
            start_date=date.fromisoformat(row["start_date"]),
            start_weight_kg=row["start_weight_kg"],
            goal_weight_kg=row["goal_weight_kg"],
            duration_weeks=row["duration_weeks"],
            status=PlanStatus(row["status"]),
            weekly_targets=PlanQueries._load_targets(conn, row["plan_id"]),
            kcal_factor_override=row["kcal_factor_override"],
            tolerance_percent=row["tolerance_percent"],
            created_at=_parse_timestamp(row["created_at"]),
            last_recalibrated_at=_parse_timestamp(row["last_recalibrated_at"]),
        )

    @staticmethod
    def _write_targets(conn: sqlite3.Connection, plan_id: int, targets) -> None:
        conn.execute("DELETE FROM weekly_targets WHERE plan_id = ?", (plan_id,))
        conn.executemany(
            """
            INSERT INTO weekly_targets (plan_id, week_number, start_date, end_date,
                                        projected_weight_kg, projected_tdee,
                                        target_intake_kcal, daily_balance_kcal,
                                        actual_weight_kg, actual_intake_kcal, days_logged)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    plan_id,
                    t.week_number,
                    t.start_date.isoformat(),
                    t.end_date.isoformat(),
                    t.projected_weight_kg,
                    t.projected_tdee,
                    t.target_intake_kcal,
                    t.daily_balance_kcal,
                    t.actual_weight_kg,
                    t.actual_intake_kcal,
                    t.days_logged,
                )
                for t in targets
            ],
        )

    @staticmethod
    def insert_plan(conn: sqlite3.Connection, plan: NutritionPlan) -> NutritionPlan:
        """Insert a plan with its weekly targets and return it with its id."""
        try:
            cursor = conn.execute(
                """
                INSERT INTO nutrition_plans (name, start_date, start_weight_kg, goal_weight_kg,
                                             duration_weeks, status, kcal_factor_override,
                                             tolerance_percent)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    plan.name,
                    plan.start_date.isoformat(),
                    plan.start_weight_kg,
                    plan.goal_weight_kg,
                    plan.duration_weeks,
                    plan.status.value,
                    plan.kcal_factor_override,
                    plan.tolerance_percent,
                ),
            )
        except sqlite3.IntegrityError:
            raise ConflictError(errors.ACTIVE_PLAN_EXISTS, "an active plan already exists") from None
        plan_id = cursor.lastrowid or 0
        PlanQueries._write_targets(conn, plan_id, plan.weekly_targets)
        return replace(plan, plan_id=plan_id)

    @staticmethod
    def update_plan(conn: sqlite3.Connection, plan: NutritionPlan) -> None:
        """Persist status, goal, duration, targets and recalibration time."""
        if plan.plan_id is None:
            raise ValueError("Cannot update plan without plan_id")
        try:
            conn.execute(
                """
                UPDATE nutrition_plans
                SET name = ?, goal_weight_kg = ?, duration_weeks = ?, status = ?,
                    kcal_factor_override = ?, tolerance_percent = ?, last_recalibrated_at = ?
                WHERE plan_id = ?
                """,
                (
                    plan.name,
                    plan.goal_weight_kg,
                    plan.duration_weeks,
                    plan.status.value,
                    plan.kcal_factor_override,
                    plan.tolerance_percent,
                    plan.last_recalibrated_at.isoformat() if plan.last_recalibrated_at else None,
                    plan.plan_id,
                ),
            )
        except sqlite3.IntegrityError:
            raise ConflictError(errors.ACTIVE_PLAN_EXISTS, "an active plan already exists") from None
        PlanQueries._write_targets(conn, plan.plan_id, plan.weekly_targets)

    @staticmethod
    def get_plan(conn: sqlite3.Connection, plan_id: int) -> Optional[NutritionPlan]:
        row = conn.execute(
            f"SELECT {_PLAN_COLUMNS} FROM nutrition_plans WHERE plan_id = ?", (plan_id,)
        ).fetchone()
        if row is None:
            return None
        return PlanQueries._row_to_plan(conn, row)

    @staticmethod
    def require_plan(conn: sqlite3.Connection, plan_id: int) -> NutritionPlan:
        plan = PlanQueries.get_plan(conn, plan_id)
        if plan is None:
            raise NotFoundError(errors.PLAN_NOT_FOUND, f"plan {plan_id} not found")
        return plan

    @staticmethod
    def get_active_plan(conn: sqlite3.Connection) -> Optional[NutritionPlan]:
        row = conn.execute(
            f"SELECT {_PLAN_COLUMNS} FROM nutrition_plans WHERE status = 'active' LIMIT 1"
        ).fetchone()
        if row is None:
            return None
        return PlanQueries._row_to_plan(conn, row)

    @staticmethod
    def list_plans(
        conn: sqlite3.Connection, status: Optional[PlanStatus] = None
    ) -> list[NutritionPlan]:
        if status is None:
            rows = conn.execute(
                f"SELECT {_PLAN_COLUMNS} FROM nutrition_plans ORDER BY start_date DESC, plan_id DESC"
            ).fetchall()
        else:
            rows = conn.execute(
                f"""
                SELECT {_PLAN_COLUMNS} FROM nutrition_plans WHERE status = ?
                ORDER BY start_date DESC, plan_id DESC
                """,
                (PlanStatus(status).value,),
            ).fetchall()
        return [PlanQueries._row_to_plan(conn, row) for row in rows]

    @staticmethod
    def delete_plan(conn: sqlite3.Connection, plan_id: int) -> bool:
        cursor = conn.execute("DELETE FROM nutrition_plans WHERE plan_id = ?", (plan_id,))
        return cursor.rowcount > 0


class RecalibrationQueries:
    """Database queries for applied recalibrations."""

    @staticmethod
    def record(
        conn: sqlite3.Connection,
        previous: NutritionPlan,
        option: RecalibrationOption,
        applied_at: datetime,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO plan_recalibrations (plan_id, option_type, feasibility, new_parameter,
                                             impact, previous_goal_weight_kg,
                                             previous_duration_weeks, applied_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                previous.plan_id,
                option.type.value,
                option.feasibility.value,
                option.new_parameter,
                option.impact,
                previous.goal_weight_kg,
                previous.duration_weeks,
                applied_at.isoformat(),
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def list_for_plan(conn: sqlite3.Connection, plan_id: int) -> list[dict]:
        rows = conn.execute(
            """
            SELECT recalibration_id, option_type, feasibility, new_parameter, impact,
                   previous_goal_weight_kg, previous_duration_weeks, applied_at
            FROM plan_recalibrations WHERE plan_id = ?
            ORDER BY applied_at, recalibration_id
            """,
            (plan_id,),
        ).fetchall()
        return [dict(row) for row in rows]
