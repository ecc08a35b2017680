"""
Typer CLI for the LingoFriends adaptive core.

Commands:
    lingo health            - Show tree health for a refresh age and gifts
    lingo level             - Calibrate difficulty (i and i+1) for a profile
    lingo replay            - Replay a recorded session through the engine
    lingo info              - Show configuration

Usage:
    lingo --help
    lingo health --days 12 --grant water_drop
    lingo level --chunks 650 --confidence 0.7 --risk 0.2
    lingo replay session.json --seed 7
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
from datetime import timedelta
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from lingo_core.adaptive.adaptations import AdaptationSeverity, MessagePicker
from lingo_core.adaptive.difficulty import calibrate_difficulty, level_to_cefr_label
from lingo_core.adaptive.session import (
    create_session_context,
    finish_session,
    report_activity_completion,
    should_end_session,
    summarize_session,
)
from lingo_core.core.models import ActivityResult, LearnerProfile, utc_now
from lingo_core.engagement.decay import (
    EngagementRecord,
    describe_health,
    grant_for,
    health_indicator,
    record_health,
)
from lingo_core.services.collaborators import InMemoryContentService, InMemoryProfileService

app = typer.Typer(
    help="LingoFriends adaptive core: affective filter, i+1 calibration and tree health",
    no_args_is_help=True,
)
console = Console()

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"

SEVERITY_STYLES = {
    AdaptationSeverity.NONE: "dim",
    AdaptationSeverity.INFO: "cyan",
    AdaptationSeverity.SUCCESS: "green",
    AdaptationSeverity.WARNING: "yellow",
    AdaptationSeverity.CRITICAL: "bold red",
}


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine decisions"),
) -> None:
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else get_settings().log_level)


@app.command("health")
def show_health(
    days: int = typer.Option(0, "--days", "-d", help="Days since the tree was last refreshed"),
    grant: list[str] = typer.Option(
        [], "--grant", "-g", help="Unused gift kind on the tree (repeatable)"
    ),
) -> None:
    """Show the health bucket of a tree."""
    settings = get_settings()
    now = utc_now()
    record = EngagementRecord(
        id="cli",
        last_refresh_at=now - timedelta(days=days),
        grants=tuple(
            grant_for(kind, settings.grant_buffer_days, f"grant-{i}")
            for i, kind in enumerate(grant)
        ),
    )
    health = record_health(record, now)
    indicator = health_indicator(health)

    table = Table(title="Tree Health")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Days since refresh", str(days))
    table.add_row("Buffer days", str(sum(g.buffer_days for g in record.grants)))
    table.add_row("Health", f"[{indicator.color}]{health}%[/{indicator.color}]")
    table.add_row("Status", f"{indicator.icon} {indicator.label}")
    console.print(table)
    rprint(describe_health(record, now))


@app.command("level")
def show_level(
    chunks: int = typer.Option(0, "--chunks", "-c", help="Chunks acquired"),
    confidence: float = typer.Option(0.5, "--confidence", help="Average confidence (0-1)"),
    risk: float = typer.Option(0.0, "--risk", help="Filter risk score (0-1)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
) -> None:
    """Calibrate difficulty for a learner profile."""
    profile = LearnerProfile.from_record(
        {"chunks_acquired": chunks, "average_confidence": confidence, "filter_risk_score": risk}
    )
    calibration = calibrate_difficulty(profile, settings=get_settings().calibration_settings())

    if as_json:
        typer.echo(
            json.dumps(
                {
                    "current_level": round(calibration.current_level, 3),
                    "target_level": round(calibration.target_level, 3),
                    "cefr": calibration.cefr_label,
                    "should_drop_back": calibration.should_drop_back,
                    "reasoning": calibration.reasoning,
                }
            )
        )
        return

    table = Table(title="Difficulty Calibration")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row(
        "Current level (i)",
        f"{calibration.current_level:.2f} ({level_to_cefr_label(calibration.current_level)})",
    )
    table.add_row("Target level", f"{calibration.target_level:.2f} ({calibration.cefr_label})")
    table.add_row("Drop back", "yes" if calibration.should_drop_back else "no")
    for name, value in calibration.factors.items():
        table.add_row(name.replace("_", " ").capitalize(), f"{value:+.2f}")
    console.print(table)
    rprint(f"[dim]{calibration.reasoning}[/dim]")


def _load_replay(path: Path) -> tuple[LearnerProfile, list[ActivityResult]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = {"activities": data}
    profile = LearnerProfile.from_record({"user_id": "replay", **data.get("profile", {})})
    activities = [ActivityResult.from_dict(item) for item in data.get("activities", [])]
    return profile, activities


async def _replay(
    profile: LearnerProfile,
    activities: list[ActivityResult],
    topic: str,
    target_level: float,
    duration: float | None,
    seed: int | None,
) -> None:
    settings = get_settings()
    thresholds = settings.filter_thresholds()
    session_settings = settings.session_settings()
    picker = MessagePicker(random.Random(seed))
    profiles = InMemoryProfileService({profile.user_id: profile})
    content = InMemoryContentService()

    context = create_session_context("replay", profile.user_id, topic, target_level)

    table = Table(title=f"Session Replay: {topic}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Activity")
    table.add_column("Result")
    table.add_column("Signals", style="magenta")
    table.add_column("Adaptation")
    table.add_column("Target", justify="right")

    end_reason = ""
    for index, activity in enumerate(activities, start=1):
        signal_count = len(context.filter_signals)
        context, adaptation = await report_activity_completion(
            profile.user_id,
            activity,
            context,
            profile_service=profiles,
            content_service=content,
            thresholds=thresholds,
            picker=picker,
        )
        new_signals = ", ".join(s.type.value for s in context.filter_signals[signal_count:])
        style = SEVERITY_STYLES[adaptation.severity]
        table.add_row(
            str(index),
            activity.activity_type,
            "[green]correct[/green]" if activity.correct else "[red]wrong[/red]",
            new_signals or "-",
            f"[{style}]{adaptation.type.value}[/{style}]",
            f"{context.current_target_level:.1f}",
        )

        decision = should_end_session(context, duration, session_settings)
        if decision.should_end:
            end_reason = decision.reason
            break

    console.print(table)

    final_profile = await profiles.get_profile(profile.user_id) or profile
    context, score = await finish_session(
        context, final_profile, profiles, thresholds, reason=end_reason
    )
    summary = summarize_session(context)

    rprint(
        f"[bold]Accuracy:[/bold] {summary.accuracy:.0%} "
        f"({summary.correct_first_try}/{summary.total_activities} first try), "
        f"best streak {summary.max_correct_streak}"
    )
    rprint(f"[bold]Session filter score:[/bold] {score:.2f}")
    if end_reason:
        rprint(f"[yellow]{end_reason}[/yellow]")
    for tip in summary.tips:
        rprint(f"  • {tip}")


@app.command("replay")
def replay_session(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Session JSON file"),
    topic: str = typer.Option("practice", "--topic", help="Session topic"),
    target_level: float = typer.Option(2.0, "--level", help="Initial target level"),
    duration: float | None = typer.Option(None, "--duration", help="Session length in minutes"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for message selection"),
) -> None:
    """Replay recorded activities through the engine."""
    try:
        profile, activities = _load_replay(path)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        rprint(f"[red]✗[/red] Could not read {path}: {e}")
        raise typer.Exit(code=1) from e

    if not activities:
        rprint("[yellow]⚠[/yellow] No activities to replay")
        raise typer.Exit(code=0)

    asyncio.run(_replay(profile, activities, topic, target_level, duration, seed))


@app.command("info")
def show_info() -> None:
    """Show configuration."""
    settings = get_settings()

    table = Table(title="LingoFriends Core Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.filter_thresholds().model_dump().items():
        table.add_row(name, str(value))
    table.add_row("default_session_duration", str(settings.default_session_duration))
    table.add_row("profile_service_url", settings.profile_service_url)
    table.add_row(
        "profile_service_api_key", "***" if settings.has_profile_service_auth() else "Not set"
    )
    table.add_row("log_level", settings.log_level)

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
