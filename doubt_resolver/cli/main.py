"""
CLI interface for the doubt resolver.

Provides command-line access to classification, resolution and the
usage ledger.
"""

import base64
import sqlite3
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from doubt_resolver.config.loader import ResolverConfig, load_resolver_config
from doubt_resolver.core.complexity import classify_complexity
from doubt_resolver.core.cost_tracker import CostTracker
from doubt_resolver.core.errors import RateLimited
from doubt_resolver.core.orchestrator import DoubtResolver, ResolutionResult
from doubt_resolver.core.rate_limit import RateLimiter
from doubt_resolver.core.router import ModelRouter
from doubt_resolver.core.topics import classify_topic
from doubt_resolver.logging_config import configure_logging
from doubt_resolver.sdk.providers import build_default_adapters
from doubt_resolver.storage.repository import (
    UsageRepository,
    fetch_recent_usage_records,
    initialize_schema
)

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1
EXIT_CODE_RATE_LIMITED = 2

_state = {"config_path": None}


def _load_config() -> ResolverConfig:
    return load_resolver_config(_state["config_path"])


def build_resolver(config: ResolverConfig) -> DoubtResolver:
    """Wire a resolver from configuration."""
    return DoubtResolver(
        adapters=build_default_adapters(timeout_seconds=config.provider.timeout_seconds),
        router=ModelRouter(config.models),
        cost_tracker=CostTracker(UsageRepository(config.database_path))
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Minimum log level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON logs")
):
    """Doubt Resolver CLI."""
    _state["config_path"] = config
    configure_logging(json_logs=json_logs, log_level=log_level)
    if ctx.invoked_subcommand is None:
        console.print("Doubt Resolver - Use --help to see available commands")


@app.command()
def init():
    """Initialize the usage ledger database."""
    try:
        initialize_schema(_load_config().database_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def classify(question: str = typer.Argument(..., help="Question text")):
    """Show complexity and topic classification without calling a model."""
    complexity = classify_complexity(question)
    topic = classify_topic(question)
    route = ModelRouter(_load_config().models).select_model(complexity.level)

    table = Table(title="Classification")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Complexity", complexity.level.value)
    table.add_row("Score", str(complexity.score))
    table.add_row("Subject", topic.subject)
    table.add_row("Topic", topic.topic)
    table.add_row("Confidence", f"{topic.confidence:.2f}")
    table.add_row("Model", f"{route.model_id} (tier {route.tier}, {route.provider.value})")
    console.print(table)

    for reason in complexity.reasons:
        console.print(f"[dim]- {reason}[/]")


@app.command()
def ask(
    question: str = typer.Argument("", help="Question text"),
    actor: Optional[str] = typer.Option(None, "--actor", "-a", help="Actor id for accounting"),
    context: Optional[str] = typer.Option(None, "--context", help="Previous question, for follow-ups"),
    image: Optional[Path] = typer.Option(None, "--image", "-i", help="Image file to attach"),
):
    """Resolve one question through the tiered model pipeline.

    Each invocation is its own process, so no rate limit applies here;
    use `batch` to resolve several questions under the configured window.
    """
    config = _load_config()

    image_payload = None
    if image is not None:
        try:
            image_payload = base64.b64encode(image.read_bytes()).decode("ascii")
        except OSError as e:
            console.print(f"[red]Cannot read image:[/] {e}")
            sys.exit(EXIT_CODE_FAIL)

    try:
        result = build_resolver(config).resolve(
            question,
            actor_id=actor,
            prior_context=context,
            image=image_payload
        )
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_result(result)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def batch(
    questions_file: Path = typer.Argument(..., help="Text file with one question per line"),
    actor: Optional[str] = typer.Option(None, "--actor", "-a", help="Actor id for rate limiting and accounting"),
):
    """Resolve a file of questions, gated by the configured rate limit."""
    config = _load_config()
    try:
        lines = questions_file.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        console.print(f"[red]Cannot read questions:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    questions = [line.strip() for line in lines if line.strip()]
    if not questions:
        console.print("[red]Error:[/] no questions found")
        sys.exit(EXIT_CODE_FAIL)

    limiter = RateLimiter()
    resolver = build_resolver(config)
    key = f"doubt:{actor or 'anonymous'}"
    for index, question in enumerate(questions, start=1):
        try:
            limiter.check(key, config.rate_limit.limit, config.rate_limit.window_ms)
        except RateLimited as e:
            unresolved = len(questions) - index + 1
            console.print(f"\n[red]{e}[/] - {unresolved} question(s) not resolved")
            sys.exit(EXIT_CODE_RATE_LIMITED)

        console.print(f"\n[bold]Question {index}:[/bold] {escape(question)}")
        _display_result(resolver.resolve(question, actor_id=actor))

    sys.exit(EXIT_CODE_PASS)


@app.command()
def usage(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records to show"),
    actor: Optional[str] = typer.Option(None, "--actor", "-a", help="Filter by actor id"),
):
    """List the most recent usage records."""
    try:
        records = fetch_recent_usage_records(
            actor_id=actor, limit=limit, db_path=_load_config().database_path
        )
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage data found[/]")
            console.print("Run `doubt-resolver init` to initialize the database\n")
            sys.exit(EXIT_CODE_PASS)
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not records:
        console.print("\n[dim]No usage records yet.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Recent AI Usage")
    for column in ("Time", "Service", "Model", "Tokens", "Cost (USD)", "Actor"):
        table.add_column(column)
    for record in records:
        table.add_row(
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.service,
            record.model_id,
            f"{record.total_tokens:,}",
            _format_currency(record.cost_usd),
            record.actor_id or "-"
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount) -> str:
    """Format a micro-dollar amount."""
    return f"${amount:,.6f}"


def _display_result(result: ResolutionResult):
    """Display a resolution result with its routing details."""
    topic = result.topic_classification
    console.print(f"\n[bold]Model:[/bold] {result.model_used}")
    console.print(
        f"[bold]Complexity:[/bold] {result.complexity_level.value} "
        f"(score {result.difficulty_score})"
    )
    console.print(
        f"[bold]Topic:[/bold] {topic.subject} / {topic.topic} "
        f"(confidence {result.topic_confidence_proxy:.2f})"
    )
    if result.is_offline:
        console.print("[yellow]Offline response - no model was reachable[/]")
    else:
        console.print(
            f"[bold]Tokens:[/bold] {result.token_usage.input_tokens} in, "
            f"{result.token_usage.output_tokens} out"
        )
    console.print()
    console.print(result.response_text, markup=False)


if __name__ == "__main__":
    app()
