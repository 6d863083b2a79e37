"""
Practice CLI: terminal front end for the adaptive practice engine.

Commands:
- practice run BANK            -> interactive session over a JSON question bank
- practice recover             -> resume an interrupted session
- practice history             -> archived sessions
- practice analytics           -> streaks, trends and per-type breakdown
- practice recommend           -> suggested next sessions
- practice goal [N]            -> show or set the daily session goal

While answering, type :skip, :flag, :prev or :quit instead of an answer.
"""
from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from config import Settings, get_settings
from src.core.errors import PracticeError
from src.core.types import (
    ContentType,
    DifficultyFilter,
    FocusStrategy,
    PracticeMode,
    SessionConfig,
    SessionStatus,
)
from src.manager.session_manager import SessionManager
from src.manager.types import HistoryFilter
from src.persistence.stores import DurableStore, create_store
from src.practice.evaluation import Evaluator, KeywordEvaluator
from src.practice.http_evaluator import HttpEvaluator
from src.practice.question_pool import InMemoryQuestionPool, JsonQuestionPool, QuestionPoolProvider
from src.practice.session_store import PracticeSessionStore

app = typer.Typer(
    help="Adaptive practice sessions with analytics and recommendations",
    no_args_is_help=True,
)

console = Console()

STATUS_STYLES = {
    "completed": "green",
    "failed": "red",
    "evaluating": "yellow",
    "pending": "dim",
}


def _build_evaluator(settings: Settings) -> Evaluator:
    if settings.has_remote_evaluation():
        return HttpEvaluator(
            base_url=settings.evaluation_url,
            api_key=settings.evaluation_api_key,
            timeout_seconds=settings.evaluation_timeout_seconds,
            retry_attempts=settings.evaluation_retry_attempts,
        )
    return KeywordEvaluator(ideal_words=settings.ideal_answer_words)


def _open_store(settings: Settings) -> DurableStore:
    try:
        return create_store(settings)
    except PracticeError as e:
        console.print(f"[red]Cannot open session storage: {e}[/red]")
        raise typer.Exit(1)


def _build_session_store(
    content_type: ContentType,
    pool: QuestionPoolProvider,
    evaluator: Evaluator,
    store: DurableStore,
    settings: Settings,
) -> PracticeSessionStore:
    return PracticeSessionStore(
        content_type,
        pool=pool,
        evaluator=evaluator,
        durable_store=store,
        settings=settings,
    )


# =============================================================================
# Interactive loop
# =============================================================================


def _show_question(session: PracticeSessionStore) -> None:
    question = session.get_current_question()
    if question is None:
        return
    index = session.progress.current_index
    flagged = " [magenta]⚑[/magenta]" if question.id in session.progress.flagged_questions else ""
    body = question.content
    if question.options:
        body += "\n\n" + "\n".join(f"  - {option}" for option in question.options)

    remaining = session.remaining_time_ms()
    subtitle = f"{question.difficulty.value} · {question.topic or 'general'}"
    if remaining is not None:
        subtitle += f" · {remaining // 60000}m {remaining // 1000 % 60}s left"

    console.print(
        Panel(
            body,
            title=f"Question {index + 1}/{len(session.questions)}{flagged}",
            subtitle=subtitle,
            border_style="cyan",
        )
    )


def _show_feedback(session: PracticeSessionStore, question_id: str) -> None:
    answer = session.progress.find_answer(question_id)
    if answer is None or answer.is_blank:
        return
    style = STATUS_STYLES.get(answer.evaluation_status.value, "white")
    score = f"{answer.score:.0%}" if answer.score is not None else "-"
    console.print(f"[{style}]Score: {score}[/{style}]  {answer.feedback or ''}")
    for suggestion in answer.suggestions:
        console.print(f"  [dim]• {suggestion}[/dim]")


def _show_summary(session: PracticeSessionStore) -> None:
    performance = session.performance
    stats = session.get_session_stats()

    table = Table(title="Session Summary", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Answered", str(stats.questions_answered))
    table.add_row("Skipped", str(session.progress.skipped_count))
    table.add_row("Overall score", f"{performance.overall_score:.0%}")
    table.add_row("Consistency", f"{performance.consistency_score:.2f}")
    table.add_row("Avg words", f"{performance.average_word_count:.0f}")
    table.add_row("Vocabulary diversity", f"{performance.writing_metrics.vocabulary_diversity:.2f}")
    console.print(table)

    low = session.get_low_scoring_answers()
    if low:
        console.print(f"[yellow]{len(low)} answer(s) scored low; consider reviewing them.[/yellow]")


async def _record_answer(session: PracticeSessionStore, question_id: str, text: str, elapsed_ms: int) -> None:
    """Submit first answers and answers replacing a skip with their measured time; edit real answers."""
    existing = session.progress.find_answer(question_id)
    if existing is not None and not existing.is_blank:
        await session.edit_answer(question_id, text)
    else:
        await session.submit_answer(question_id, text, elapsed_ms)


async def _drive_session(session: PracticeSessionStore, manager: SessionManager) -> None:
    """Prompt for answers until the session completes or the learner quits."""
    while session.status == SessionStatus.ACTIVE:
        if await session.check_time_limit():
            console.print("[yellow]Time is up.[/yellow]")
            break

        question = session.get_current_question()
        if question is None:
            break
        _show_question(session)

        started = time.monotonic()
        text = Prompt.ask("[bold cyan]Answer[/bold cyan]", default=session.current_answer or "")
        elapsed_ms = int((time.monotonic() - started) * 1000)
        command = text.strip().lower()

        if command == ":quit":
            session.pause_session()
            manager.pause_session(session.session_id)
            console.print("[yellow]Session paused. Run 'practice recover' to continue.[/yellow]")
            return
        if command == ":flag":
            session.flag_question(question.id)
            continue
        if command == ":prev":
            session.move_to_previous_question()
            continue
        if command == ":skip":
            await session.skip_question()
        else:
            await _record_answer(session, question.id, text, elapsed_ms)
            _show_feedback(session, question.id)
            await session.move_to_next_question()

        manager.update_session_progress(
            session.session_id, session.progress.current_index, session.progress.total_questions
        )

    if session.status == SessionStatus.COMPLETED:
        manager.end_session(session.session_id, session.build_final_stats())
        _show_summary(session)


# =============================================================================
# Commands
# =============================================================================


@app.command("run")
def run_session(
    bank: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON question bank"),
    content_type: ContentType = typer.Option(
        ContentType.OPEN_QUESTIONS, "--type", "-t", help="Session content type"
    ),
    num: Optional[int] = typer.Option(None, "--num", "-n", min=1, help="Number of questions"),
    difficulty: DifficultyFilter = typer.Option(DifficultyFilter.MIXED, "--difficulty", "-d"),
    focus: FocusStrategy = typer.Option(FocusStrategy.COMPREHENSIVE, "--focus", "-f"),
    week: Optional[list[str]] = typer.Option(None, "--week", "-w", help="Week filter (repeatable)"),
    exam_minutes: Optional[float] = typer.Option(
        None, "--exam-minutes", help="Run in exam mode with this time limit"
    ),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip evaluation and use a neutral score"),
):
    """
    Run an interactive practice session.

    Examples:
        practice run bank.json --num 5 --focus weak-areas
        practice run bank.json --type multiple-choice --exam-minutes 10
    """
    settings = get_settings()
    try:
        pool = JsonQuestionPool(bank)
    except PracticeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    config = SessionConfig(
        num_questions=num or settings.default_num_questions,
        difficulty=difficulty,
        focus=focus,
        weeks=week or [],
        practice_mode=PracticeMode.EXAM if exam_minutes else PracticeMode.PRACTICE,
        time_limit_minutes=exam_minutes,
        enable_ai_evaluation=not no_ai,
    )
    asyncio.run(_run(content_type, pool, config, settings))


async def _run(
    content_type: ContentType,
    pool: QuestionPoolProvider,
    config: SessionConfig,
    settings: Settings,
) -> None:
    store = _open_store(settings)
    evaluator = _build_evaluator(settings)
    session = _build_session_store(content_type, pool, evaluator, store, settings)
    manager = SessionManager(durable_store=store, settings=settings)

    try:
        session_id = await session.start_session(config)
    except PracticeError as e:
        console.print(f"[red]Could not start session: {e}[/red]")
        raise typer.Exit(1)

    manager.start_session(content_type, config, session_id=session_id)
    manager.update_session_progress(session_id, 0, session.progress.total_questions)
    try:
        await _drive_session(session, manager)
    finally:
        if isinstance(evaluator, HttpEvaluator):
            await evaluator.close()


@app.command("recover")
def recover_session():
    """Resume the last interrupted session."""
    settings = get_settings()
    store = _open_store(settings)
    manager = SessionManager(durable_store=store, settings=settings)

    active = manager.recover_session()
    if active is None:
        console.print("[dim]No interrupted session to recover.[/dim]")
        return
    asyncio.run(_recover(active.id, active.type, store, manager, settings))


async def _recover(
    session_id: str,
    content_type: ContentType,
    store: DurableStore,
    manager: SessionManager,
    settings: Settings,
) -> None:
    evaluator = _build_evaluator(settings)
    session = _build_session_store(content_type, InMemoryQuestionPool([]), evaluator, store, settings)
    if not session.restore_from_store(session_id):
        console.print(f"[red]Session {session_id} could not be restored.[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Recovered {content_type.value} session "
        f"({session.progress.answered_count}/{session.progress.total_questions} answered)[/green]"
    )
    if session.status == SessionStatus.PAUSED:
        session.resume_session()
        manager.resume_session(session_id)
    try:
        await _drive_session(session, manager)
    finally:
        if isinstance(evaluator, HttpEvaluator):
            await evaluator.close()


@app.command("history")
def show_history(
    content_type: Optional[ContentType] = typer.Option(None, "--type", "-t"),
    limit: int = typer.Option(20, "--limit", "-l", help="Entries to show"),
):
    """List archived sessions, most recent first."""
    settings = get_settings()
    manager = SessionManager(durable_store=_open_store(settings), settings=settings)
    entries = manager.get_session_history(HistoryFilter(type=content_type))[:limit]

    if not entries:
        console.print("[dim]No sessions yet.[/dim]")
        return

    table = Table(title="Session History", box=box.ROUNDED)
    table.add_column("Started", style="cyan")
    table.add_column("Type")
    table.add_column("Items", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Weak topics", max_width=40)
    for entry in entries:
        table.add_row(
            entry.started_at.strftime("%Y-%m-%d %H:%M"),
            entry.type.value,
            str(entry.final_stats.items_completed),
            f"{entry.final_stats.accuracy:.0f}%",
            f"{entry.final_stats.total_time_ms / 60000:.1f}",
            ", ".join(entry.performance.weaknesses),
        )
    console.print(table)


@app.command("analytics")
def show_analytics():
    """Show streaks, goals and per-type performance."""
    settings = get_settings()
    manager = SessionManager(durable_store=_open_store(settings), settings=settings)
    analytics = manager.calculate_analytics()
    goals = analytics.goals
    patterns = analytics.learning_patterns

    console.print(
        Panel(
            f"Sessions: {analytics.total_sessions}   "
            f"Avg length: {analytics.average_session_length:.1f} min\n"
            f"Current streak: {goals.current_streak} day(s)   "
            f"Longest: {goals.longest_streak} day(s)\n"
            f"Weekly progress: {goals.weekly_progress:.0f}% of {goals.daily_session_target * 7} sessions\n"
            f"Most productive hour: {patterns.most_productive_hour:02d}:00   "
            f"Trend: {patterns.improvement_trend:+.2f}",
            title="Analytics",
            border_style="cyan",
        )
    )

    table = Table(box=box.SIMPLE)
    table.add_column("Type", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Difficulty")
    for name, stats in analytics.session_type_breakdown.items():
        table.add_row(
            name,
            str(stats.count),
            f"{stats.average_accuracy:.0f}%",
            f"{stats.average_score:.0f}",
            stats.preferred_difficulty,
        )
    console.print(table)

    if patterns.weakest_topics:
        console.print(f"[yellow]Weakest topics:[/yellow] {', '.join(patterns.weakest_topics)}")
    if patterns.strongest_topics:
        console.print(f"[green]Strongest topics:[/green] {', '.join(patterns.strongest_topics)}")


@app.command("recommend")
def show_recommendations():
    """Suggest what to practice next."""
    settings = get_settings()
    manager = SessionManager(durable_store=_open_store(settings), settings=settings)
    recommendations = manager.generate_recommendations()

    if not recommendations:
        console.print("[dim]No recommendations right now.[/dim]")
        return

    for rec in recommendations:
        style = "red" if rec.priority.value == "high" else "yellow"
        console.print(
            Panel(
                f"{rec.reason}\n\n"
                f"[dim]focus={rec.config.focus.value} difficulty={rec.config.difficulty.value} "
                f"~{rec.estimated_duration} min[/dim]\n"
                + "\n".join(f"• {benefit}" for benefit in rec.benefits),
                title=f"{rec.type.value} [{style}]({rec.priority.value})[/{style}]",
                border_style=style,
            )
        )


@app.command("goal")
def daily_goal(
    sessions: Optional[int] = typer.Argument(None, help="New daily session goal"),
):
    """Show today's goal progress, or set a new daily goal."""
    settings = get_settings()
    manager = SessionManager(durable_store=_open_store(settings), settings=settings)

    if sessions is not None:
        try:
            manager.set_daily_goal(sessions)
        except PracticeError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]Daily goal set to {sessions} session(s).[/green]")

    progress = manager.check_goal_progress()
    console.print(
        f"Today: {progress.completed}/{progress.target} sessions ({progress.percentage:.0f}%)"
    )


def main() -> None:
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    app()


if __name__ == "__main__":
    main()
