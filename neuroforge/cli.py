"""
NeuroForge CLI.

Commands:
    neuroforge init-db                       - Create review/completion tables
    neuroforge due LEARNER                   - Show the next review batch
    neuroforge grade LEARNER ITEM GRADE      - Record a 0-5 recall grade
    neuroforge complete LEARNER UNIT         - Mark a unit completed
    neuroforge plan LEARNER                  - Recommended units to study next
    neuroforge layers                        - Curriculum in prerequisite layers

The curriculum is read from a JSON file (--curriculum); review and completion
records live in the configured database (NEUROFORGE_DATABASE_URL or --db).
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from neuroforge.config import get_settings
from neuroforge.curriculum.planner import PathPlanner
from neuroforge.curriculum.store import load_curriculum
from neuroforge.db import SqlCompletionStore, SqlReviewStore, create_db_engine, create_session_factory, init_db
from neuroforge.delivery.cache import RecommendationCache
from neuroforge.delivery.orchestrator import ReviewSessionOrchestrator
from neuroforge.errors import NeuroForgeError
from neuroforge.srs.models import DueBucket
from neuroforge.srs.scheduler import SM2Scheduler

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="neuroforge",
    help="NeuroForge: spaced repetition and learning-path planning",
    no_args_is_help=True,
)
console = Console()

BUCKET_STYLES = {
    DueBucket.DUE_NOW: "[yellow]due[/yellow]",
    DueBucket.LAPSED: "[red]lapsed[/red]",
    DueBucket.UPCOMING: "[green]upcoming[/green]",
    DueBucket.NEW: "[cyan]new[/cyan]",
}

DbOption = typer.Option(None, "--db", help="Database URL (overrides NEUROFORGE_DATABASE_URL)")
CurriculumOption = typer.Option(
    Path("curriculum.json"), "--curriculum", "-c", help="Curriculum JSON file"
)


def build_orchestrator(curriculum: Path, db_url: str | None) -> ReviewSessionOrchestrator:
    """Wire the core against the SQL stores and a curriculum file."""
    settings = get_settings()
    factory = create_session_factory(create_db_engine(db_url))
    return ReviewSessionOrchestrator(
        review_store=SqlReviewStore(factory),
        graph_store=load_curriculum(curriculum),
        completion_store=SqlCompletionStore(factory),
        scheduler=SM2Scheduler(settings.sm2_config()),
        planner=PathPlanner(settings.planner_config()),
        cache=RecommendationCache(settings.recommendation_cache_size),
        max_conflict_retries=settings.max_conflict_retries,
    )


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@app.command("init-db")
def init_db_command(db: Optional[str] = DbOption) -> None:
    """Create the database tables."""
    init_db(create_db_engine(db))
    console.print("[green]Database initialized[/green]")


@app.command()
def due(
    learner: str = typer.Argument(..., help="Learner id"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum items"),
    curriculum: Path = CurriculumOption,
    db: Optional[str] = DbOption,
) -> None:
    """Show items due for review, most overdue first."""
    try:
        orchestrator = build_orchestrator(curriculum, db)
        session = orchestrator.start_session(learner, limit or get_settings().session_max_items)
    except (NeuroForgeError, FileNotFoundError) as e:
        _fail(e)

    if not session.items:
        console.print("[green]Nothing due. Come back later![/green]")
        return

    table = Table(title=f"Due reviews for {learner}")
    table.add_column("Item")
    table.add_column("Due")
    table.add_column("EF", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("Status")

    for state in session.items:
        table.add_row(
            state.item_id,
            f"{state.next_review_date:%Y-%m-%d %H:%M}",
            f"{state.easiness_factor:.2f}",
            str(state.repetitions),
            BUCKET_STYLES[session.buckets[state.item_id]],
        )
    console.print(table)


@app.command()
def grade(
    learner: str = typer.Argument(..., help="Learner id"),
    item: str = typer.Argument(..., help="Item id"),
    score: int = typer.Argument(..., help="Recall grade 0-5"),
    curriculum: Path = CurriculumOption,
    db: Optional[str] = DbOption,
) -> None:
    """Record a recall grade for an item."""
    try:
        state = build_orchestrator(curriculum, db).submit_grade(learner, item, score)
    except (NeuroForgeError, FileNotFoundError) as e:
        _fail(e)

    style = "bold green" if score >= 3 else "bold red"
    console.print(
        f"[{style}]{item}[/{style}]: next review {state.next_review_date:%Y-%m-%d} "
        f"(interval {state.interval_days:g}d, EF {state.easiness_factor:.2f}, {state.status.value})"
    )


@app.command()
def complete(
    learner: str = typer.Argument(..., help="Learner id"),
    unit: str = typer.Argument(..., help="Unit id"),
    curriculum: Path = CurriculumOption,
    db: Optional[str] = DbOption,
) -> None:
    """Mark a unit completed."""
    try:
        result = build_orchestrator(curriculum, db).complete_unit(learner, unit)
    except (NeuroForgeError, FileNotFoundError) as e:
        _fail(e)

    if result.newly_completed:
        console.print(f"[green]Completed {unit}[/green]")
    else:
        console.print(f"[dim]{unit} was already completed[/dim]")
    if result.seeded_items:
        console.print(f"Scheduled for review: {', '.join(result.seeded_items)}")


@app.command()
def plan(
    learner: str = typer.Argument(..., help="Learner id"),
    only: Optional[list[str]] = typer.Option(None, "--only", help="Confine the plan to these units"),
    curriculum: Path = CurriculumOption,
    db: Optional[str] = DbOption,
) -> None:
    """Show the recommended units to study next."""
    try:
        orchestrator = build_orchestrator(curriculum, db)
        unit_ids = orchestrator.recommend(learner, only or None)
    except (NeuroForgeError, FileNotFoundError) as e:
        _fail(e)

    if not unit_ids:
        console.print("[green]Nothing left to unlock. All available units completed![/green]")
        return

    table = Table(title=f"Next units for {learner}")
    table.add_column("#", justify="right")
    table.add_column("Unit")
    table.add_column("Title")
    for rank, unit_id in enumerate(unit_ids, start=1):
        unit = orchestrator.graph_store.get_unit(unit_id)
        table.add_row(str(rank), unit_id, unit.title if unit else "")
    console.print(table)


@app.command()
def layers(curriculum: Path = CurriculumOption) -> None:
    """Show the curriculum grouped in prerequisite layers."""
    try:
        store = load_curriculum(curriculum)
        result = PathPlanner().layers(store.graph())
    except (NeuroForgeError, FileNotFoundError) as e:
        _fail(e)

    for depth, layer in enumerate(result):
        console.print(f"[bold cyan]Layer {depth}[/bold cyan]: {', '.join(layer)}")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level="WARNING",
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")

    app()


if __name__ == "__main__":
    main()
