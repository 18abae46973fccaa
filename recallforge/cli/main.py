"""
recallforge CLI - inspect and drive the scheduling engine from the terminal.

Every command reads a JSON export of pages (a list of pages, or a mapping
with a ``pages`` key) and works against an explicit clock.

Usage:
    recallforge page export.json                    # Lock status per page
    recallforge session export.json --item q1       # Adaptive session for a concept group
    recallforge forecast export.json                # 7-day workload + weekly retro
    recallforge missions export.json                # Remediation missions
    recallforge review export.json --item q1 --correct
    recallforge --advance-days 3 forecast export.json   # Time travel
"""

from __future__ import annotations

import json
import random
import sys
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from recallforge.adaptive import (
    MissionPlanner,
    PageLifecycleManager,
    aggregate,
    cycle_phase,
)
from recallforge.core import (
    IngestError,
    Item,
    MasteryLevel,
    Page,
    Telemetry,
    dump_record,
    ingest_pages,
)
from recallforge.core.mastery import ensure_utc
from recallforge.study import (
    ReviewCommitter,
    SessionPlanner,
    build_forecast,
    build_progress,
    weekly_status,
)

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="recallforge",
    help="Memory scheduling and session triage for spaced repetition",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass
class Clock:
    """The moment every command evaluates against."""

    now: datetime


def _clock(ctx: typer.Context) -> datetime:
    if isinstance(ctx.obj, Clock):
        return ctx.obj.now
    return datetime.now(UTC)


def _load_pages(path: Path, now: datetime) -> list[Page]:
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        raise typer.Exit(1)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e}[/]")
        raise typer.Exit(1) from e
    try:
        return ingest_pages(raw, now)
    except IngestError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1) from e


def _find_item(pages: list[Page], item_id: str) -> tuple[Page, Item, Item] | None:
    """Locate an item by id; returns (page, group root, item)."""
    for page in pages:
        for root in page.items:
            if root.id == item_id:
                return page, root, root
            for variant in root.variants:
                if variant.id == item_id:
                    return page, root, variant
    return None


def _fmt_time(moment: datetime | None) -> str:
    return moment.strftime("%Y-%m-%d %H:%M") if moment is not None else "-"


# =============================================================================
# Commands
# =============================================================================


@app.command()
def page(
    ctx: typer.Context,
    export: Annotated[Path, typer.Argument(help="JSON pages export")],
) -> None:
    """
    Show lifecycle status and cycle phase of every page.
    """
    now = _clock(ctx)
    pages = _load_pages(export, now)
    manager = PageLifecycleManager.from_settings()

    table = Table(title=f"Pages @ {_fmt_time(now)}")
    table.add_column("Page", style="cyan")
    table.add_column("Status")
    table.add_column("Next review")
    table.add_column("Phase")
    table.add_column("Chapter", justify="right")

    for p in pages:
        lifecycle = manager.evaluate(p.items, now)
        status_style = "green" if lifecycle.is_active else "yellow"
        table.add_row(
            p.title,
            f"[{status_style}]{lifecycle.status.value}[/]",
            _fmt_time(lifecycle.next_review),
            cycle_phase(p.cycle, now).value,
            str(p.cycle.chapter if p.cycle else 1),
        )
    console.print(table)


@app.command()
def session(
    ctx: typer.Context,
    export: Annotated[Path, typer.Argument(help="JSON pages export")],
    item: Annotated[str, typer.Option("--item", "-i", help="Id of any item in the concept group")],
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", help="Maximum session length")
    ] = None,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Seed for the interleave shuffle")
    ] = None,
) -> None:
    """
    Build an adaptive session for a concept group.
    """
    from config import get_settings

    now = _clock(ctx)
    found = _find_item(_load_pages(export, now), item)
    if found is None:
        console.print(f"[red]Item not found: {item}[/]")
        raise typer.Exit(1)
    _, root, _ = found

    settings = get_settings()
    planner = SessionPlanner.from_settings(settings, rng=random.Random(seed))
    plan = planner.plan(root, now, limit=limit if limit is not None else settings.session_limit)

    health = aggregate(root, root.variants)
    if health is not None:
        level = MasteryLevel.from_score(health.mastery_score)
        console.print(
            Panel(
                f"Mastery: [{level.color}]{health.mastery_score}% ({level.display_name})[/]\n"
                f"Weakest stability: {health.stability:.1f} days\n"
                f"Next due: {_fmt_time(health.due_at)}",
                title=root.id,
                border_style="cyan",
            )
        )

    console.print(f"[bold]{plan.strategy.value}[/] - {plan.reason}")
    if not plan.queue:
        console.print("[yellow]Nothing to study.[/]")
        return

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Item", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("Stability", justify="right")
    table.add_column("Due")
    for position, queued in enumerate(plan.queue, start=1):
        record = queued.record
        table.add_row(
            str(position),
            queued.id,
            str(record.level),
            f"{record.stability:.1f}",
            _fmt_time(record.due_at),
        )
    console.print(table)


@app.command()
def forecast(
    ctx: typer.Context,
    export: Annotated[Path, typer.Argument(help="JSON pages export")],
) -> None:
    """
    Show the 7-day review forecast, weekly retro, weekly review gate and progress.
    """
    from config import get_settings

    now = _clock(ctx)
    pages = _load_pages(export, now)
    result = build_forecast(pages, now)

    table = Table(title="Review Forecast")
    table.add_column("Day")
    table.add_column("Items", justify="right")
    table.add_column("Minutes", justify="right")
    for offset, (count, minutes) in enumerate(zip(result.counts, result.minutes)):
        label = "Now" if offset == 0 else WEEKDAY_LABELS[(now + timedelta(days=offset)).weekday()]
        table.add_row(label, str(count), str(minutes))
    console.print(table)

    retro = result.retro
    status = weekly_status(now, retro.reviewed_count, target=get_settings().weekly_review_target)
    gate_style = "green" if status.is_unlocked else "yellow"
    console.print(
        Panel(
            f"Reviews this week: {retro.reviewed_count}\n"
            f"Average mastery: {retro.mastery_avg}%\n"
            f"Concepts touched: {len(retro.concepts)}\n"
            f"Most active: {retro.top_concept}\n"
            f"Weekly review: [{gate_style}]{status.message}[/]",
            title="Weekly Retro",
            border_style="cyan",
        )
    )

    progress = build_progress(pages, now)

    realms = Table(title="Realms")
    realms.add_column("Realm", style="cyan")
    realms.add_column("Level", justify="right")
    realms.add_column("Light", justify="right")
    realms.add_column("Mastered", justify="right")
    for realm in progress.realms:
        light_style = "green" if realm.light_level >= 50 else "red"
        realms.add_row(
            realm.name,
            str(realm.level),
            f"[{light_style}]{realm.light_level}%[/]",
            f"{realm.mastered}/{realm.total}",
        )
    console.print(realms)

    badges = "\n".join(
        f"{'[green]✓[/]' if a.is_unlocked else '[dim]·[/]'} {a.title}: {a.progress}/{a.max_progress}"
        for a in progress.achievements
    )
    console.print(
        Panel(
            f"Review streak: {progress.streak_days} days\n"
            f"Total reviews: {progress.total_reviews}\n"
            f"Badges: {progress.badges_unlocked}/{len(progress.achievements)}\n{badges}",
            title="Progress",
            border_style="magenta",
        )
    )


@app.command()
def missions(
    ctx: typer.Context,
    export: Annotated[Path, typer.Argument(help="JSON pages export")],
) -> None:
    """
    Cluster overdue concepts into remediation missions.
    """
    now = _clock(ctx)
    result = build_forecast(_load_pages(export, now), now)
    plan = MissionPlanner.from_settings().plan(result.overdue_items)

    if plan.is_empty:
        console.print("[green]Nothing overdue.[/]")
        return

    table = Table(title="Missions")
    table.add_column("Priority", justify="right")
    table.add_column("Type")
    table.add_column("Title", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Reason")
    for mission in plan.missions:
        table.add_row(
            str(mission.priority),
            mission.type.value,
            mission.title,
            str(len(mission.target_item_ids)),
            mission.reason,
        )
    console.print(table)

    if plan.orphans:
        orphan_ids = ", ".join(o.item.id for o in plan.orphans)
        console.print(f"[dim]Orphans ({len(plan.orphans)}): {orphan_ids}[/]")


@app.command()
def review(
    ctx: typer.Context,
    export: Annotated[Path, typer.Argument(help="JSON pages export")],
    item: Annotated[str, typer.Option("--item", "-i", help="Id of the reviewed item")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Whether the answer was correct")
    ] = True,
    attempts: Annotated[int, typer.Option("--attempts", "-a", min=1)] = 1,
    hints: Annotated[
        int | None, typer.Option("--hints", help="Hints used (enables telemetry rating)")
    ] = None,
    time_ms: Annotated[
        float | None, typer.Option("--time-ms", help="Time spent in ms (enables telemetry rating)")
    ] = None,
) -> None:
    """
    Commit one review and print the updated record as JSON.
    """
    now = _clock(ctx)
    found = _find_item(_load_pages(export, now), item)
    if found is None:
        console.print(f"[red]Item not found: {item}[/]")
        raise typer.Exit(1)
    _, _, reviewed = found

    telemetry = None
    if hints is not None or time_ms is not None:
        telemetry = Telemetry(
            hints_used=hints or 0,
            time_spent_ms=time_ms or 0.0,
            item_type=reviewed.item_type,
        )

    committer = ReviewCommitter.from_settings()
    updated = committer.commit(reviewed.record, correct, attempts, now, telemetry=telemetry)
    typer.echo(json.dumps(dump_record(updated), indent=2))


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def global_options(
    ctx: typer.Context,
    now: Annotated[
        datetime | None, typer.Option("--now", help="Evaluate at this time (ISO, default: current time)")
    ] = None,
    advance_days: Annotated[
        float, typer.Option("--advance-days", help="Shift the clock forward by N days")
    ] = 0.0,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Debug logging")
    ] = False,
) -> None:
    """
    recallforge - memory scheduling and session triage.

    \b
    All commands take a JSON pages export and evaluate it at --now
    (shifted by --advance-days).
    """
    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG", format="<level>{message}</level>")

    moment = ensure_utc(now) if now is not None else datetime.now(UTC)
    ctx.obj = Clock(now=moment + timedelta(days=advance_days))


def main() -> None:
    """CLI entry point."""
    from config import get_settings

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
