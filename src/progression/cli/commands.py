"""CLI commands for the progression engine.

Commands:
- init-db: Create the SQLite schema
- load-catalog: Load students, units and exercises from YAML
- track: Show a subject track with lock state
- unit-progress: Show a student's progress on one unit
- practice: Interactive practice over a unit's exercises
- wrong-answers: List the student's error book
- serve: Run the Web API with uvicorn
"""

import uuid
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from progression.config.app_config import load_app_config
from progression.core.errors import NotFoundError, ProgressionError
from progression.core.models import Exercise, SessionContext
from progression.core.practice import PracticeSession
from progression.core.progress_aggregator import ProgressAggregator
from progression.core.unlock_gate import track_access
from progression.db.answer_records import list_wrong_exercises
from progression.db.catalog_repository import (
    CatalogLoadError,
    get_student,
    get_unit,
    list_unit_exercises,
    load_catalog_file,
)
from progression.db.database import current_db_path, init_db

app = typer.Typer(
    name="progress",
    help="Learning progression engine: grading, progress tracking and unit unlocks.",
    no_args_is_help=True,
)

console = Console()


def _open_db() -> None:
    """Point the database layer at the configured SQLite file."""
    config = load_app_config()
    init_db(Path(config.database.path), busy_timeout=config.database.busy_timeout_seconds)


def _require_student(student_id: str) -> None:
    if get_student(student_id) is None:
        console.print(f"[red]✗ Student not found: {student_id}[/red]")
        raise typer.Exit(code=1)


def _stars(count: int) -> str:
    return "★" * count + "☆" * (3 - count)


# =============================================================================
# SETUP COMMANDS
# =============================================================================


@app.command(name="init-db")
def init_db_command() -> None:
    """Create the database schema."""
    _open_db()
    console.print(f"[green]✓ Database ready:[/green] {current_db_path()}")


@app.command(name="load-catalog")
def load_catalog(
    path: Path = typer.Argument(..., help="YAML catalog with students, units and exercises"),
) -> None:
    """Load (upsert) a catalog file."""
    if not path.exists():
        console.print(f"[red]✗ File not found: {path}[/red]")
        raise typer.Exit(code=1)

    _open_db()
    try:
        counts = load_catalog_file(path)
    except CatalogLoadError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Catalog loaded from {path}[/green]")
    console.print(f"  [dim]students:[/dim]  {counts['students']}")
    console.print(f"  [dim]units:[/dim]     {counts['units']}")
    console.print(f"  [dim]exercises:[/dim] {counts['exercises']}")


# =============================================================================
# PROGRESS COMMANDS
# =============================================================================


@app.command()
def track(
    subject_code: str = typer.Argument(..., help="Subject code"),
    student: str = typer.Option(..., "--student", "-s", help="Student ID"),
) -> None:
    """Show a subject track and which units are open."""
    _open_db()
    _require_student(student)

    try:
        decisions = track_access(student, subject_code)
    except NotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold", title=f"Track {subject_code}")
    table.add_column("#", justify="right", width=3)
    table.add_column("Unit", style="cyan")
    table.add_column("Level", justify="center")
    table.add_column("Stars", justify="center")
    table.add_column("Access", justify="center")
    table.add_column("Reason", style="dim")

    for d in decisions:
        stars = d.progress.stars if d.progress else 0
        access = "[green]open[/green]" if d.accessible else "[red]locked[/red]"
        table.add_row(
            str(d.index + 1),
            f"{d.unit.unit_id} {d.unit.title}".strip(),
            str(d.unit.level),
            _stars(stars),
            access,
            d.reason,
        )

    console.print(table)


@app.command(name="unit-progress")
def unit_progress(
    unit_id: str = typer.Argument(..., help="Unit ID"),
    student: str = typer.Option(..., "--student", "-s", help="Student ID"),
) -> None:
    """Show a student's progress on one unit."""
    _open_db()
    _require_student(student)

    try:
        progress = ProgressAggregator().get_unit_progress(student, unit_id)
    except NotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    status = "[green]COMPLETED[/green]" if progress.completed else "[yellow]IN PROGRESS[/yellow]"
    body = (
        f"{status}  {_stars(progress.stars)}\n"
        f"Completed: {progress.completed_exercises}/{progress.total_exercises} "
        f"({progress.completion_rate:.0%})\n"
        f"Correct: {progress.correct_count} | Incorrect: {progress.incorrect_count} | "
        f"Answers: {progress.total_answer_count}\n"
        f"Mastery: {progress.mastery_level:.2f} | Next unit unlocked: "
        f"{'yes' if progress.unlock_next else 'no'}"
        + (" | Opened by placement test" if progress.unlocked else "")
    )
    console.print(Panel(body, title=f"[bold]{unit_id}[/bold]", expand=False))


@app.command(name="wrong-answers")
def wrong_answers(
    student: str = typer.Option(..., "--student", "-s", help="Student ID"),
    unit_id: str | None = typer.Option(None, "--unit", "-u", help="Filter by unit"),
) -> None:
    """List exercises whose latest answer is still wrong."""
    _open_db()
    _require_student(student)

    records = list_wrong_exercises(student, unit_id=unit_id)
    if not records:
        console.print("[green]✓ No pending wrong answers[/green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Exercise", style="cyan")
    table.add_column("Unit")
    table.add_column("Mode", style="dim")
    table.add_column("When", style="dim")
    for r in records:
        table.add_row(r.exercise_id, r.unit_id, r.practice_mode, r.created_at)
    console.print(table)


# =============================================================================
# PRACTICE COMMAND - Interactive loop
# =============================================================================


def _ask_choice(exercise: Exercise) -> int:
    """Ask a choice question and loop until a valid option index."""
    n_options = len(exercise.options)
    for idx, opt in enumerate(exercise.options):
        console.print(f"  {idx}. {opt}")

    while True:
        raw = typer.prompt(f"Choose an option (0-{n_options - 1})")
        try:
            choice = int(raw.strip())
            if 0 <= choice < n_options:
                return choice
            console.print(f"[yellow]⚠ Must be 0-{n_options - 1}[/yellow]")
        except ValueError:
            console.print("[yellow]⚠ Enter a number[/yellow]")


def _ask_blanks(exercise: Exercise) -> list[str]:
    raw = typer.prompt("Answer (separate blanks with |)")
    return [part.strip() for part in raw.split("|")]


def _ask_matching(exercise: Exercise) -> dict[str, str]:
    """Pairs typed as `left:right` separated by commas, e.g. 0:1, 1:0."""
    for idx, opt in enumerate(exercise.options):
        console.print(f"  {idx}. {opt}")

    while True:
        raw = typer.prompt("Pairs (left:right, comma separated)")
        pairs = {}
        try:
            for chunk in raw.split(","):
                left, right = chunk.split(":")
                pairs[left.strip()] = right.strip()
            return pairs
        except ValueError:
            console.print("[yellow]⚠ Use the form 0:1, 1:0[/yellow]")


def _ask(exercise: Exercise):
    if exercise.type == "choice":
        return _ask_choice(exercise)
    if exercise.type == "fill_blank":
        return _ask_blanks(exercise)
    if exercise.type == "matching":
        return _ask_matching(exercise)
    return typer.prompt("Answer")


@app.command()
def practice(
    unit_id: str = typer.Argument(..., help="Unit ID"),
    student: str = typer.Option(..., "--student", "-s", help="Student ID"),
    mode: str = typer.Option("normal", "--mode", "-m", help="normal, review, wrong_redo, test"),
) -> None:
    """Practice a unit's exercises with one retry per exercise."""
    _open_db()
    _require_student(student)

    unit = get_unit(unit_id)
    if unit is None:
        console.print(f"[red]✗ Unit not found: {unit_id}[/red]")
        raise typer.Exit(code=1)

    exercises = list_unit_exercises(unit_id)
    if not exercises:
        console.print(f"[yellow]⚠ Unit {unit_id} has no exercises[/yellow]")
        raise typer.Exit(code=1)

    session = PracticeSession(
        context=SessionContext(session_id=str(uuid.uuid4()), student_id=student, practice_mode=mode)
    )
    console.print(Panel(f"{unit.title or unit_id}: {len(exercises)} exercises", expand=False))

    outcome = None
    for n, exercise in enumerate(exercises, start=1):
        console.print(f"\n[bold]{n}/{len(exercises)}[/bold] {exercise.question}")

        while True:
            answer = _ask(exercise)
            try:
                outcome = session.submit(exercise.exercise_id, unit_id, answer)
            except ProgressionError as e:
                console.print(f"[red]✗ {e}[/red]")
                raise typer.Exit(code=1)

            if outcome.transition.retry_allowed:
                console.print("[yellow]✗ Not quite. One more try.[/yellow]")
                continue
            break

        if not outcome.transition.graded:
            console.print("[blue]• Answer saved for review[/blue]")
        elif outcome.is_correct:
            console.print("[green]✓ Correct[/green]")
        else:
            console.print("[red]✗ Incorrect[/red]")
        if outcome.transition.reveal_explanation and exercise.explanation:
            console.print(f"  [dim]{exercise.explanation}[/dim]")

    if outcome is not None:
        p = outcome.progress
        console.print(
            f"\n[bold]{_stars(p.stars)}[/bold] "
            f"{p.completed_exercises}/{p.total_exercises} completed, "
            f"mastery {p.mastery_level:.2f}"
        )


# =============================================================================
# SERVER
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
) -> None:
    """Run the Web API."""
    import uvicorn

    uvicorn.run("progression.web.api:app", host=host, port=port)


if __name__ == "__main__":
    app()
