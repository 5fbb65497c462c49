"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from adaptrack.db import get_db
from adaptrack.db.schema import SCHEMA_VERSION
from adaptrack.errors import AdaptrackError
from adaptrack.results import Computed

app = typer.Typer(
    help="Adaptive TDEE, plan tracking and training load analytics",
    no_args_is_help=True,
)
console = Console()

profile_app = typer.Typer(help="Manage the user profile")
plan_app = typer.Typer(help="Create, analyze and recalibrate nutrition plans")
log_app = typer.Typer(help="Daily weight, intake and training logs")
metabolic_app = typer.Typer(help="Adaptive TDEE, metabolic chart and drift alerts")
training_app = typer.Typer(help="Training catalog and load status")

app.add_typer(profile_app, name="profile")
app.add_typer(plan_app, name="plan")
app.add_typer(log_app, name="log")
app.add_typer(metabolic_app, name="metabolic")
app.add_typer(training_app, name="training")


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2, default=str)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def ensure_tables() -> None:
    """Create the schema on a fresh or outdated database file."""
    db = get_db()
    if db.missing_tables() or db.schema_version() != SCHEMA_VERSION:
        db.initialize_schema()


def fail(command: str, exc: AdaptrackError, json_output: bool) -> None:
    """Report a domain error and exit with status 1."""
    if json_output:
        output_json({
            "success": False,
            "command": command,
            "error_code": exc.code,
            "errors": [exc.message],
        })
    else:
        console.print(f"[red]{exc.message}[/red] ({exc.code})")
    raise typer.Exit(1)


def parse_day(value: Optional[str]) -> date:
    from adaptrack.tracking.models import parse_date

    return parse_date(value) if value else date.today()


def parse_sessions(specs: Optional[list[str]]) -> list:
    """Parse "type[:minutes[:rpe]]" specs into TrainingSession objects.

    Raises:
        ValidationError: minutes or rpe is not an integer
    """
    from adaptrack import errors
    from adaptrack.errors import ValidationError
    from adaptrack.tracking.models import TrainingSession

    sessions = []
    for spec in specs or []:
        parts = spec.split(":")
        try:
            duration = int(parts[1]) if len(parts) > 1 and parts[1] else 0
        except ValueError:
            raise ValidationError(
                errors.INVALID_TRAINING_DURATION,
                f"session minutes must be a whole number, got '{parts[1]}' in '{spec}'",
            ) from None
        try:
            rpe = int(parts[2]) if len(parts) > 2 and parts[2] else None
        except ValueError:
            raise ValidationError(
                errors.INVALID_RPE,
                f"session rpe must be a whole number 1-10, got '{parts[2]}' in '{spec}'",
            ) from None
        sessions.append(
            TrainingSession(type=parts[0], duration_min=duration, perceived_intensity=rpe)
        )
    return sessions


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Adaptive nutrition and training analytics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@profile_app.callback()
def profile_callback() -> None:
    """Ensure tables exist before any profile command."""
    ensure_tables()


@plan_app.callback()
def plan_callback() -> None:
    """Ensure tables exist before any plan command."""
    ensure_tables()


@log_app.callback()
def log_callback() -> None:
    """Ensure tables exist before any log command."""
    ensure_tables()


@metabolic_app.callback()
def metabolic_callback() -> None:
    """Ensure tables exist before any metabolic command."""
    ensure_tables()


@training_app.callback()
def training_callback() -> None:
    """Ensure tables exist before any training command."""
    ensure_tables()


# ============================================================================
# Profile Commands
# ============================================================================


@profile_app.command("set")
def profile_set(
    age: int = typer.Option(..., "--age", help="Age in years"),
    sex: str = typer.Option(..., "--sex", help="Sex (male/female)"),
    height: float = typer.Option(..., "--height", help="Height in cm"),
    weight: float = typer.Option(..., "--weight", help="Current weight in kg"),
    activity: str = typer.Option(
        "sedentary",
        "--activity",
        help="Activity level (sedentary/light/moderate/active/very_active)",
    ),
    goal: str = typer.Option("maintain", "--goal", help="lose_weight/maintain/gain_weight"),
    equation: str = typer.Option(
        "mifflin_st_jeor",
        "--equation",
        help="BMR equation (mifflin_st_jeor/katch_mcardle/oxford_henry/harris_benedict)",
    ),
    body_fat: Optional[float] = typer.Option(None, "--body-fat", help="Body fat %"),
    tolerance: float = typer.Option(3.0, "--tolerance", help="Plan variance tolerance %"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create or replace the user profile."""
    from adaptrack.profiles.body_calc import UserProfile, formula_tdee
    from adaptrack.tracking.queries import ProfileQueries

    try:
        profile = UserProfile(
            age=age,
            sex=sex,
            height_cm=height,
            weight_kg=weight,
            activity_level=activity,
            goal=goal,
            bmr_equation=equation,
            body_fat_percent=body_fat,
            tolerance_percent=tolerance,
        )
        with get_db().get_connection() as conn:
            profile_id = ProfileQueries.save_profile(conn, profile)
    except AdaptrackError as exc:
        fail("profile set", exc, json_output)
        return

    tdee = formula_tdee(profile)
    if json_output:
        output_json({
            "success": True,
            "command": "profile set",
            "data": {**profile.to_dict(), "profile_id": profile_id, "formula_tdee": round(tdee)},
            "human_summary": f"Saved profile (formula TDEE {tdee:.0f} kcal/day)",
        })
    else:
        console.print(f"[green]Saved profile[/green] (formula TDEE {tdee:.0f} kcal/day)")


@profile_app.command("show")
def profile_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the user profile."""
    from adaptrack.profiles.body_calc import calculate_bmr, formula_tdee
    from adaptrack.tracking.queries import ProfileQueries

    with get_db().get_connection() as conn:
        profile = ProfileQueries.get_profile(conn)

    if profile is None:
        if json_output:
            output_json({
                "success": False,
                "command": "profile show",
                "errors": ["No user profile found"],
                "suggestions": [
                    "Create one with: adaptrack profile set --age 35 --sex male --height 178 --weight 82"
                ],
            })
        else:
            console.print("[red]No user profile found[/red]")
            console.print(
                "Create one with: adaptrack profile set --age 35 --sex male --height 178 --weight 82"
            )
        raise typer.Exit(1)

    bmr = calculate_bmr(profile)
    tdee = formula_tdee(profile)
    if json_output:
        output_json({
            "success": True,
            "command": "profile show",
            "data": {**profile.to_dict(), "bmr": round(bmr), "formula_tdee": round(tdee)},
        })
    else:
        console.print("[bold]User Profile[/bold]")
        console.print(f"  Age: {profile.age}")
        console.print(f"  Sex: {profile.sex.value}")
        console.print(f"  Height: {profile.height_cm} cm")
        console.print(f"  Weight: {profile.weight_kg} kg")
        console.print(f"  Activity: {profile.activity_level.value}")
        console.print(f"  Goal: {profile.goal.value}")
        console.print(f"  BMR ({profile.bmr_equation.value}): {bmr:.0f} kcal/day")
        console.print(f"  Formula TDEE: {tdee:.0f} kcal/day")


# ============================================================================
# Plan Commands
# ============================================================================


def _print_plan(plan) -> None:
    console.print(f"[bold]{plan.name}[/bold] (ID: {plan.plan_id}, {plan.status.value})")
    console.print(
        f"  {plan.start_weight_kg:.1f} kg -> {plan.goal_weight_kg:.1f} kg over "
        f"{plan.duration_weeks} weeks ({plan.start_date} to {plan.end_date})"
    )
    console.print(
        f"  Pace: {plan.required_weekly_change_kg:+.2f} kg/week "
        f"({plan.required_daily_deficit_kcal:+.0f} kcal/day)"
    )


@plan_app.command("create")
def plan_create(
    name: str = typer.Option(..., "--name", help="Plan name"),
    start_weight: float = typer.Option(..., "--start-weight", help="Start weight in kg"),
    goal_weight: float = typer.Option(..., "--goal-weight", help="Goal weight in kg"),
    weeks: int = typer.Option(..., "--weeks", help="Duration in weeks (4-104)"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date (default: today)"),
    kcal_factor: Optional[float] = typer.Option(
        None, "--kcal-factor", help="Override projected TDEE as kg x factor"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create a new active plan."""
    from adaptrack.plans import service

    try:
        with get_db().get_connection() as conn:
            plan = service.create_plan(
                conn,
                name,
                parse_day(start),
                start_weight,
                goal_weight,
                weeks,
                now=date.today(),
                kcal_factor_override=kcal_factor,
            )
    except AdaptrackError as exc:
        fail("plan create", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "plan create",
            "data": plan.to_dict(),
            "human_summary": f"Created plan {plan.plan_id}: {plan.name}",
        })
    else:
        console.print(f"[green]Created plan {plan.plan_id}[/green]")
        _print_plan(plan)


@plan_app.command("show")
def plan_show(
    plan_id: Optional[int] = typer.Option(None, "--id", help="Plan ID (default: active plan)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show a plan with its weekly targets."""
    from adaptrack import errors
    from adaptrack.errors import NotFoundError
    from adaptrack.plans import service

    try:
        with get_db().get_connection() as conn:
            plan = service.get_plan(conn, plan_id) if plan_id else service.get_active_plan(conn)
            if plan is None:
                raise NotFoundError(errors.NO_ACTIVE_PLAN, "no active plan")
    except AdaptrackError as exc:
        fail("plan show", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "plan show", "data": plan.to_dict()})
        return

    _print_plan(plan)
    if plan.weekly_targets:
        table = Table(title="Weekly Targets")
        table.add_column("Week", justify="right")
        table.add_column("Ends", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("TDEE", justify="right")
        table.add_column("Intake", justify="right", style="blue")
        for target in plan.weekly_targets:
            table.add_row(
                str(target.week_number),
                target.end_date.isoformat(),
                f"{target.projected_weight_kg:.1f}",
                str(target.projected_tdee),
                str(target.target_intake_kcal),
            )
        console.print(table)


@plan_app.command("list")
def plan_list(
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List plans."""
    from adaptrack.plans import service
    from adaptrack.plans.models import PlanStatus

    with get_db().get_connection() as conn:
        plans = service.list_plans(conn, PlanStatus(status) if status else None)

    if json_output:
        output_json({
            "success": True,
            "command": "plan list",
            "data": {"plans": [p.to_dict(include_targets=False) for p in plans]},
            "human_summary": f"{len(plans)} plans",
        })
        return

    if not plans:
        console.print("No plans found")
        return
    table = Table(title="Plans")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Start", style="cyan")
    table.add_column("Goal", justify="right")
    table.add_column("Weeks", justify="right")
    for plan in plans:
        table.add_row(
            str(plan.plan_id),
            plan.name,
            plan.status.value,
            plan.start_date.isoformat(),
            f"{plan.goal_weight_kg:.1f}",
            str(plan.duration_weeks),
        )
    console.print(table)


@plan_app.command("analyze")
def plan_analyze(
    plan_id: Optional[int] = typer.Option(None, "--id", help="Plan ID (default: active plan)"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Analysis date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Compare planned and actual weight and suggest recalibrations."""
    from adaptrack.plans import service

    try:
        with get_db().get_connection() as conn:
            analysis = service.analyze(conn, parse_day(on), plan_id)
    except AdaptrackError as exc:
        fail("plan analyze", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "plan analyze",
            "data": analysis.to_dict(),
            "human_summary": f"Plan status: {analysis.status.value}",
        })
        return

    colors = {"on_track": "green", "at_risk": "yellow", "off_track": "red", "critical": "red"}
    color = colors[analysis.status.value]
    console.print(f"[bold]Week {analysis.current_week}[/bold] ({analysis.analysis_date})")
    console.print(f"  Planned: {analysis.planned_weight_kg:.1f} kg")
    console.print(
        f"  Actual:  {analysis.actual_weight_kg:.1f} kg "
        f"({analysis.variance_kg:+.1f} kg, {analysis.variance_percent:+.1f}%)"
    )
    if analysis.trend_message:
        console.print(f"  [red]{analysis.trend_message}[/red]")
    landing = analysis.landing_point
    if landing is not None:
        console.print(
            f"  Landing: {landing.weight_kg:.1f} kg on {landing.landing_date} "
            f"({landing.offset_from_goal_kg:+.1f} kg from goal)"
        )
    else:
        console.print("  Landing: not enough weigh-ins for a trend yet")
    console.print(f"  Status: [{color}]{analysis.status.value}[/{color}]")

    if analysis.options:
        table = Table(title="Recalibration Options")
        table.add_column("Option", style="cyan")
        table.add_column("Change")
        table.add_column("Feasibility")
        table.add_column("Impact")
        for option in analysis.options:
            table.add_row(
                option.type.value, option.new_parameter, option.feasibility.value, option.impact
            )
        console.print(table)


@plan_app.command("recalibrate")
def plan_recalibrate(
    option: str = typer.Argument(..., help="Option type (e.g. increase_deficit, extend_timeline)"),
    plan_id: Optional[int] = typer.Option(None, "--id", help="Plan ID (default: active plan)"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Analysis date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Apply a recalibration option to a plan."""
    from adaptrack import errors
    from adaptrack.errors import NotFoundError, ValidationError
    from adaptrack.plans import service
    from adaptrack.plans.recalibration import RecalibrationType

    try:
        try:
            option_type = RecalibrationType(option)
        except ValueError:
            raise ValidationError(
                errors.INVALID_RECALIBRATION_OPTION, f"unknown option '{option}'"
            ) from None
        with get_db().get_connection() as conn:
            if plan_id is None:
                active = service.get_active_plan(conn)
                if active is None:
                    raise NotFoundError(errors.NO_ACTIVE_PLAN, "no active plan")
                plan_id = active.plan_id
            plan = service.recalibrate_plan(
                conn, plan_id, option_type, parse_day(on), now=datetime.now()
            )
    except AdaptrackError as exc:
        fail("plan recalibrate", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "plan recalibrate",
            "data": plan.to_dict(),
            "human_summary": f"Applied {option} to plan {plan.plan_id}",
        })
    else:
        console.print(f"[green]Applied {option}[/green]")
        _print_plan(plan)


def _lifecycle(command: str, action, plan_id: int, json_output: bool) -> None:
    try:
        with get_db().get_connection() as conn:
            plan = action(conn, plan_id)
    except AdaptrackError as exc:
        fail(command, exc, json_output)
        return
    if json_output:
        output_json({
            "success": True,
            "command": command,
            "data": plan.to_dict(include_targets=False),
            "human_summary": f"Plan {plan_id} is now {plan.status.value}",
        })
    else:
        console.print(f"[green]Plan {plan_id} is now {plan.status.value}[/green]")


@plan_app.command("pause")
def plan_pause(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Pause an active plan."""
    from adaptrack.plans import service

    _lifecycle("plan pause", service.pause_plan, plan_id, json_output)


@plan_app.command("resume")
def plan_resume(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Resume a paused plan."""
    from adaptrack.plans import service

    _lifecycle("plan resume", service.resume_plan, plan_id, json_output)


@plan_app.command("complete")
def plan_complete(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Mark a plan completed."""
    from adaptrack.plans import service

    _lifecycle("plan complete", service.complete_plan, plan_id, json_output)


@plan_app.command("abandon")
def plan_abandon(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Abandon a plan."""
    from adaptrack.plans import service

    _lifecycle("plan abandon", service.abandon_plan, plan_id, json_output)


@plan_app.command("delete")
def plan_delete(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a plan and its targets."""
    from adaptrack.plans import service

    try:
        with get_db().get_connection() as conn:
            service.delete_plan(conn, plan_id)
    except AdaptrackError as exc:
        fail("plan delete", exc, json_output)
        return
    if json_output:
        output_json({"success": True, "command": "plan delete", "data": {"plan_id": plan_id}})
    else:
        console.print(f"[green]Deleted plan {plan_id}[/green]")


@plan_app.command("history")
def plan_history(
    plan_id: int = typer.Argument(..., help="Plan ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show applied recalibrations for a plan."""
    from adaptrack.plans import service

    try:
        with get_db().get_connection() as conn:
            entries = service.list_recalibrations(conn, plan_id)
    except AdaptrackError as exc:
        fail("plan history", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "plan history", "data": {"entries": entries}})
        return
    if not entries:
        console.print("No recalibrations applied")
        return
    table = Table(title=f"Recalibrations for plan {plan_id}")
    table.add_column("Applied", style="cyan")
    table.add_column("Option")
    table.add_column("Change")
    table.add_column("Feasibility")
    for entry in entries:
        table.add_row(
            str(entry["applied_at"]),
            entry["option_type"],
            entry["new_parameter"],
            entry["feasibility"],
        )
    console.print(table)


# ============================================================================
# Daily Log Commands
# ============================================================================


def _print_log(log) -> None:
    console.print(f"[bold]{log.log_date}[/bold]: {log.weight_kg:.1f} kg")
    if log.intake_kcal is not None:
        console.print(f"  Intake: {log.intake_kcal:.0f} kcal")
    if log.estimated_tdee is not None:
        console.print(
            f"  TDEE: {log.estimated_tdee:.0f} kcal ({log.tdee_source}, "
            f"confidence {log.confidence:.0%})"
        )
    targets = log.calculated_targets
    if targets is not None:
        console.print(
            f"  Targets: {targets.calories} kcal, P {targets.protein_g} g, "
            f"C {targets.carbs_g} g, F {targets.fat_g} g"
        )
    summary = log.training_summary
    if summary is not None and summary.session_count:
        console.print(
            f"  Training ({summary.source}): {summary.session_count} sessions, "
            f"{summary.total_duration_min} min, load {summary.load:.1f}"
        )


@log_app.command("add")
def log_add(
    weight: float = typer.Argument(..., help="Weight in kg"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD, default: today)"),
    intake: Optional[float] = typer.Option(None, "--intake", help="Calories eaten"),
    body_fat: Optional[float] = typer.Option(None, "--body-fat", help="Body fat %"),
    resting_hr: Optional[int] = typer.Option(None, "--resting-hr", help="Resting heart rate"),
    sleep: Optional[float] = typer.Option(None, "--sleep", help="Hours slept"),
    planned: Optional[list[str]] = typer.Option(
        None, "--planned", "-p", help="Planned session as type[:minutes[:rpe]] (repeatable)"
    ),
    actual: Optional[list[str]] = typer.Option(
        None, "--actual", "-a", help="Completed session as type[:minutes[:rpe]] (repeatable)"
    ),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Optional notes"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log a day (weight is required)."""
    from adaptrack.tracking.logs import create_daily_log
    from adaptrack.tracking.models import DailyLogSnapshot

    try:
        log = DailyLogSnapshot(
            log_date=parse_day(on),
            weight_kg=weight,
            intake_kcal=intake,
            body_fat_percent=body_fat,
            resting_heart_rate=resting_hr,
            sleep_hours=sleep,
            planned_sessions=tuple(parse_sessions(planned)),
            actual_sessions=tuple(parse_sessions(actual)),
            notes=notes,
        )
        with get_db().get_connection() as conn:
            stored = create_daily_log(conn, log)
    except AdaptrackError as exc:
        fail("log add", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "log add",
            "data": stored.to_dict(),
            "human_summary": f"Logged {weight:.1f} kg on {stored.log_date}",
        })
    else:
        console.print("[green]Logged[/green]")
        _print_log(stored)


@log_app.command("show")
def log_show(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show a day's log with computed targets."""
    from adaptrack.tracking.logs import get_daily_log

    try:
        with get_db().get_connection() as conn:
            log = get_daily_log(conn, parse_day(on))
    except AdaptrackError as exc:
        fail("log show", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "log show", "data": log.to_dict()})
    else:
        _print_log(log)


@log_app.command("list")
def log_list(
    days: int = typer.Option(30, "--days", help="Number of days to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List recent logs with the smoothed weight trend."""
    from datetime import timedelta

    from adaptrack.tracking.ema import calculate_trend
    from adaptrack.tracking.logs import list_daily_logs

    end = date.today()
    with get_db().get_connection() as conn:
        logs = list_daily_logs(conn, end - timedelta(days=days - 1), end)

    trends = calculate_trend([(log.log_date, log.weight_kg) for log in logs])
    if json_output:
        output_json({
            "success": True,
            "command": "log list",
            "data": {
                "entries": [
                    {**log.to_dict(), "trend_kg": round(trend, 2)}
                    for log, trend in zip(logs, trends)
                ]
            },
            "human_summary": f"{len(logs)} entries over {days} days",
        })
        return

    if not logs:
        console.print("No logs found")
        return
    table = Table(title=f"Daily Logs (last {days} days)")
    table.add_column("Date", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Trend", justify="right", style="blue")
    table.add_column("Intake", justify="right")
    for log, trend in zip(logs, trends):
        table.add_row(
            log.log_date.isoformat(),
            f"{log.weight_kg:.1f}",
            f"{trend:.1f}",
            f"{log.intake_kcal:.0f}" if log.intake_kcal is not None else "-",
        )
    console.print(table)


@log_app.command("update")
def log_update(
    on: str = typer.Option(..., "--date", "-d", help="Date of the log"),
    weight: Optional[float] = typer.Option(None, "--weight", help="Weight in kg"),
    intake: Optional[float] = typer.Option(None, "--intake", help="Calories eaten"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Notes"),
    planned: Optional[list[str]] = typer.Option(
        None, "--planned", "-p", help="Replace planned sessions (repeatable)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Edit a day's log."""
    from adaptrack.tracking.logs import update_daily_log

    changes: dict = {}
    if weight is not None:
        changes["weight_kg"] = weight
    if intake is not None:
        changes["intake_kcal"] = intake
    if notes is not None:
        changes["notes"] = notes
    try:
        if planned:
            changes["planned_sessions"] = parse_sessions(planned)
        with get_db().get_connection() as conn:
            log = update_daily_log(conn, parse_day(on), **changes)
    except AdaptrackError as exc:
        fail("log update", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "log update", "data": log.to_dict()})
    else:
        console.print("[green]Updated[/green]")
        _print_log(log)


@log_app.command("sessions")
def log_sessions(
    sessions: list[str] = typer.Argument(..., help="Completed sessions as type[:minutes[:rpe]]"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Record the sessions actually done on a day."""
    from adaptrack.tracking.logs import update_actual_sessions

    try:
        parsed = parse_sessions(sessions)
        with get_db().get_connection() as conn:
            log = update_actual_sessions(conn, parse_day(on), parsed)
    except AdaptrackError as exc:
        fail("log sessions", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "log sessions", "data": log.to_dict()})
    else:
        _print_log(log)


@log_app.command("sync")
def log_sync(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date (default: today)"),
    steps: Optional[int] = typer.Option(None, "--steps", help="Step count"),
    active_calories: Optional[float] = typer.Option(None, "--active-calories", help="Active kcal"),
    resting_hr: Optional[int] = typer.Option(None, "--resting-hr", help="Resting heart rate"),
    sleep: Optional[float] = typer.Option(None, "--sleep", help="Hours slept"),
    weight: Optional[float] = typer.Option(None, "--weight", help="Weight in kg"),
    body_fat: Optional[float] = typer.Option(None, "--body-fat", help="Body fat %"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Merge device metrics into a day's log (omitted values are kept)."""
    from adaptrack.tracking.logs import apply_synced_metrics
    from adaptrack.tracking.models import SyncMetrics

    try:
        metrics = SyncMetrics(
            steps=steps,
            active_calories=active_calories,
            resting_heart_rate=resting_hr,
            sleep_hours=sleep,
            weight_kg=weight,
            body_fat_percent=body_fat,
        )
        with get_db().get_connection() as conn:
            log = apply_synced_metrics(conn, parse_day(on), metrics)
    except AdaptrackError as exc:
        fail("log sync", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "log sync", "data": log.to_dict()})
    else:
        console.print("[green]Synced[/green]")
        _print_log(log)


@log_app.command("delete")
def log_delete(
    on: str = typer.Option(..., "--date", "-d", help="Date of the log"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a day's log."""
    from adaptrack.tracking.logs import delete_daily_log

    try:
        with get_db().get_connection() as conn:
            delete_daily_log(conn, parse_day(on))
    except AdaptrackError as exc:
        fail("log delete", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "log delete", "data": {"date": on}})
    else:
        console.print(f"[green]Deleted log for {on}[/green]")


# ============================================================================
# Metabolic Commands
# ============================================================================


@metabolic_app.command("tdee")
def metabolic_tdee(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="As-of date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the adaptive TDEE estimate."""
    from adaptrack.results import describe
    from adaptrack.tracking.diagnostics import get_adaptive_tdee

    try:
        with get_db().get_connection() as conn:
            result = get_adaptive_tdee(conn, parse_day(on))
    except AdaptrackError as exc:
        fail("metabolic tdee", exc, json_output)
        return

    if json_output:
        data = (
            {"state": "computed", **result.value.to_dict()}
            if isinstance(result, Computed)
            else describe(result)
        )
        output_json({"success": True, "command": "metabolic tdee", "data": data})
        return

    if not isinstance(result, Computed):
        console.print(f"[yellow]Not enough data:[/yellow] {result.reason}")
        return
    estimate = result.value
    console.print(
        f"[bold]Adaptive TDEE:[/bold] {estimate.tdee:.0f} ± {estimate.uncertainty_kcal:.0f} kcal/day"
    )
    console.print(f"  Formula TDEE: {estimate.formula_tdee:.0f} kcal/day ({estimate.bias:+.0f})")
    console.print(f"  Confidence: {estimate.confidence:.0%} from {estimate.data_points_used} days")
    if estimate.outliers_clipped:
        console.print(f"  Outlier days capped: {estimate.outliers_clipped}")


@metabolic_app.command("chart")
def metabolic_chart(
    weeks: int = typer.Option(4, "--weeks", "-w", help="Weeks to show"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="As-of date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Daily TDEE and weight trend with a metabolic trend insight."""
    from adaptrack.tracking.diagnostics import get_chart_data

    try:
        with get_db().get_connection() as conn:
            chart = get_chart_data(conn, parse_day(on), weeks=weeks)
    except AdaptrackError as exc:
        fail("metabolic chart", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "metabolic chart",
            "data": chart.to_dict(),
            "human_summary": chart.insight,
        })
        return

    if chart.points:
        table = Table(title=f"Metabolism (last {weeks} weeks)")
        table.add_column("Date", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Trend", justify="right", style="blue")
        table.add_column("TDEE", justify="right")
        table.add_column("Formula", justify="right")
        table.add_column("Conf.", justify="right")
        for point in chart.points:
            table.add_row(
                point.day.isoformat(),
                f"{point.weight_kg:.1f}",
                f"{point.weight_trend_kg:.1f}",
                f"{point.tdee:.0f}",
                f"{point.formula_tdee:.0f}",
                f"{point.confidence:.0%}",
            )
        console.print(table)
    console.print(chart.insight)


@metabolic_app.command("drift")
def metabolic_drift(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="As-of date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the current drift notification, if any."""
    from adaptrack.tracking.diagnostics import get_drift_notification

    try:
        with get_db().get_connection() as conn:
            notification = get_drift_notification(conn, parse_day(on))
    except AdaptrackError as exc:
        fail("metabolic drift", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "metabolic drift",
            "data": notification.to_dict() if notification else None,
        })
    elif notification is None:
        console.print("No drift detected")
    else:
        console.print(f"[yellow]{notification.message}[/yellow]")
        console.print(f"Dismiss with: adaptrack metabolic dismiss {notification.episode_id}")


@metabolic_app.command("dismiss")
def metabolic_dismiss(
    episode_id: str = typer.Argument(..., help="Episode ID from 'metabolic drift'"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="As-of date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Dismiss the current drift notification."""
    from adaptrack.tracking.diagnostics import dismiss_drift_notification

    try:
        with get_db().get_connection() as conn:
            record = dismiss_drift_notification(conn, episode_id, parse_day(on), datetime.now())
    except AdaptrackError as exc:
        fail("metabolic dismiss", exc, json_output)
        return

    if json_output:
        output_json({
            "success": True,
            "command": "metabolic dismiss",
            "data": {"episode_id": record.episode_id, "band": record.band},
        })
    else:
        console.print(f"[green]Dismissed {record.episode_id}[/green]")


# ============================================================================
# Training Commands
# ============================================================================


@training_app.command("types")
def training_types(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List training types with MET, load score and category."""
    from adaptrack.tracking.diagnostics import get_training_types

    types = get_training_types()
    if json_output:
        output_json({
            "success": True,
            "command": "training types",
            "data": {"types": [t.to_dict() for t in types]},
        })
        return

    table = Table(title="Training Types")
    table.add_column("Type", style="cyan")
    table.add_column("MET", justify="right")
    table.add_column("Load score", justify="right")
    table.add_column("Category")
    for entry in types:
        table.add_row(entry.type.value, f"{entry.met:g}", f"{entry.load_score:g}", entry.category.value)
    console.print(table)


@training_app.command("load")
def training_load(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="As-of date (default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Acute/chronic load, ACR and zone."""
    from adaptrack.tracking.diagnostics import get_training_load

    try:
        with get_db().get_connection() as conn:
            status = get_training_load(conn, parse_day(on))
    except AdaptrackError as exc:
        fail("training load", exc, json_output)
        return

    if json_output:
        output_json({"success": True, "command": "training load", "data": status.to_dict()})
        return
    console.print(f"[bold]Today's load:[/bold] {status.day_load:.1f}")
    console.print(f"  Acute (7d): {status.acute_load:.1f}")
    console.print(f"  Chronic (28d): {status.chronic_load:.1f}")
    console.print(f"  ACR: {status.acr:.2f} ({status.zone.value})")
    if status.overloaded:
        console.print("  [red]Today exceeds 1.5x chronic load[/red]")


if __name__ == "__main__":
    app()
