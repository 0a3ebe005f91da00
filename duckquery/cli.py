"""
DuckQuery CLI

Command-line interface for asking questions about local data.

Usage:
    duckquery chat --csv sales.csv               # Interactive REPL mode
    duckquery chat --sample                      # REPL over the demo table
    duckquery ask "Top 5 products?" --csv s.csv  # Single question
    duckquery ask "Top 5 products?" --run        # ...and execute the SQL
    duckquery schema --csv sales.csv --details   # Show the schema snapshot
    duckquery config show                        # Show AI configuration
    duckquery config set --model gpt-4o          # Update AI configuration
"""

import asyncio
import logging
import sys
from collections.abc import Callable, Iterable

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from duckquery import __version__
from duckquery.agents.orchestrator import PromptOrchestrator
from duckquery.config import Settings, get_settings
from duckquery.engine.base import EngineError
from duckquery.errors import DuckQueryError, format_error_for_display
from duckquery.models.chat import ChatMessage, QueryResult
from duckquery.models.schema import DatabaseSnapshot
from duckquery.pipeline.discovery import DataDiscovery
from duckquery.pipeline.session import ChatSession, SessionStateError
from duckquery.pipeline.workspace import DataWorkspace
from duckquery.schema.serializer import serialize
from duckquery.settings_store import AIConfigManager, JsonConfigStore

console = Console()

MAX_DISPLAY_ROWS = 20
EXIT_COMMANDS = {"exit", "quit", "/quit", "/exit"}

CHAT_HELP = (
    "/run       run the latest generated SQL\n"
    "/fix       ask the model to repair the latest failed SQL\n"
    "/tables    list loaded tables\n"
    "/schema    show the schema sent to the model\n"
    "/suggest   suggest questions about the data\n"
    "/discover  profile the most recently loaded table\n"
    "/quit      leave"
)


def configure_cli_logging(verbose: bool = False) -> None:
    """Quiet library loggers unless verbose output was requested."""
    if verbose:
        get_settings().logging.configure()
        return
    logging.basicConfig(level=logging.CRITICAL)
    for logger_name in ("duckquery", "httpx", "httpcore", "asyncio"):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)


# ============================================================================
# Construction helpers
# ============================================================================


def get_config_manager(settings: Settings | None = None) -> AIConfigManager:
    settings = settings or get_settings()
    return AIConfigManager(JsonConfigStore(), defaults=settings.ai.to_ai_config())


def build_orchestrator(settings: Settings | None = None) -> PromptOrchestrator:
    """Orchestrator for the stored AI configuration."""
    settings = settings or get_settings()
    config = get_config_manager(settings).get()
    return PromptOrchestrator(
        config,
        history_limit=settings.ai.history_limit,
        timeout=settings.ai.timeout,
    )


async def open_workspace(
    database: str | None,
    csv_paths: Iterable[str],
    sample: bool,
    settings: Settings | None = None,
) -> DataWorkspace:
    """Open the engine and load the requested data."""
    settings = settings or get_settings()
    engine_settings = settings.engine
    if database:
        engine_settings = engine_settings.model_copy(update={"database": database})

    workspace = DataWorkspace.from_settings(engine_settings)
    await workspace.open()
    try:
        for path in csv_paths:
            name = await workspace.import_csv(path)
            console.print(f"[green]✓ Loaded {path} as table {name}[/green]")
        if sample:
            name = await workspace.load_sample_data()
            console.print(f"[green]✓ Loaded sample data as table {name}[/green]")
    except Exception:
        await workspace.close()
        raise
    return workspace


def data_options(func: Callable) -> Callable:
    """Shared options selecting the database and the data to load."""

    func = click.option("--sample", is_flag=True, help="Load the demo sales_data table")(func)
    func = click.option(
        "--csv",
        "csv_paths",
        multiple=True,
        type=click.Path(exists=True, dir_okay=False),
        help="CSV file to load as a table (repeatable)",
    )(func)
    func = click.option(
        "--database", "-d", default=None, help="DuckDB database file (default: in-memory)"
    )(func)
    return func


# ============================================================================
# Output helpers
# ============================================================================


def print_result(result: QueryResult) -> None:
    """Render up to MAX_DISPLAY_ROWS rows as a table."""
    table = Table(show_header=True, header_style="bold cyan")
    for column in result.columns:
        table.add_column(column)
    for row in result.rows[:MAX_DISPLAY_ROWS]:
        table.add_row(*["" if row.get(col) is None else str(row.get(col)) for col in result.columns])
    console.print(table)
    if result.row_count > MAX_DISPLAY_ROWS:
        console.print(f"[dim]Showing {MAX_DISPLAY_ROWS} of {result.row_count} rows[/dim]")


def print_message(message: ChatMessage, show_technical: bool = False) -> None:
    """Display an assistant message in its current state."""
    if message.sql:
        console.print(Panel(escape(message.sql), title="SQL", border_style="cyan", highlight=True))

    if message.status == "failed" or message.error_detail:
        detail = message.error_detail
        text = format_error_for_display(detail, show_technical) if detail else message.error
        console.print(f"[red]{escape(message.content)}: {escape(text or '')}[/red]")
        if message.status == "failed":
            console.print("[dim]Type /fix to let the model repair the query.[/dim]")
        return

    console.print(f"[bold green]Assistant:[/bold green] {escape(message.content)}")
    if message.results is not None:
        print_result(message.results)
    if message.insight:
        console.print(Panel(escape(message.insight), title="Insight", border_style="green"))
    if message.status == "generated":
        console.print("[dim]Type /run to execute it.[/dim]")


def print_schema(snapshot: DatabaseSnapshot, details: bool = False) -> None:
    if snapshot.is_empty:
        console.print("[yellow]No tables loaded.[/yellow]")
        return
    if details:
        console.print(serialize(snapshot), markup=False, highlight=False)
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    table.add_column("Columns")
    for name, info in snapshot.items():
        columns = ", ".join(f"{column.name} ({column.type})" for column in info.columns)
        table.add_row(name, str(info.row_count), columns)
    console.print(table)


def _latest(session: ChatSession, predicate: Callable[[ChatMessage], bool]) -> ChatMessage | None:
    for message in reversed(session.messages):
        if predicate(message):
            return message
    return None


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="DuckQuery")
@click.option("--verbose", "-v", is_flag=True, help="Show library log output")
def cli(verbose: bool):
    """DuckQuery - Ask questions about your data in plain language."""
    configure_cli_logging(verbose)


@cli.command()
@data_options
def chat(database: str | None, csv_paths: tuple[str, ...], sample: bool):
    """Interactive REPL mode for conversations."""
    console.print(
        Panel.fit(
            "[bold green]DuckQuery Interactive Mode[/bold green]\n"
            "Ask questions in natural language. Type /help for commands, /quit to leave.",
            border_style="green",
        )
    )

    async def run_chat() -> int:
        try:
            workspace = await open_workspace(database, csv_paths, sample)
        except (EngineError, OSError) as e:
            console.print(f"[red]Failed to open database: {escape(str(e))}[/red]")
            return 1

        orchestrator = build_orchestrator()
        session = ChatSession(orchestrator, workspace.builder, workspace.engine)
        discovery = DataDiscovery(orchestrator, workspace.engine)

        try:
            while True:
                try:
                    line = console.input("[bold cyan]You:[/bold cyan] ").strip()
                except EOFError:
                    break

                if not line:
                    continue
                command = line.lower()

                try:
                    if command in EXIT_COMMANDS:
                        break
                    if command == "/help":
                        console.print(CHAT_HELP)
                    elif command == "/tables":
                        print_schema(workspace.snapshot)
                    elif command == "/schema":
                        print_schema(workspace.snapshot, details=True)
                    elif command == "/run":
                        target = _latest(session, lambda m: m.sql is not None)
                        if target is None:
                            console.print("[yellow]No SQL to run yet.[/yellow]")
                            continue
                        with console.status("[cyan]Executing query...[/cyan]", spinner="dots"):
                            message = await session.run_sql(target.id)
                        print_message(message)
                    elif command == "/fix":
                        target = _latest(session, lambda m: m.status == "failed")
                        if target is None:
                            console.print("[yellow]No failed query to fix.[/yellow]")
                            continue
                        with console.status("[cyan]Fixing query...[/cyan]", spinner="dots"):
                            message = await session.fix_sql(target.id)
                        print_message(message)
                    elif command == "/suggest":
                        with console.status("[cyan]Thinking...[/cyan]", spinner="dots"):
                            suggestions = await orchestrator.generate_suggestions(workspace.snapshot)
                        for suggestion in suggestions:
                            console.print(f"- {escape(suggestion)}")
                    elif command == "/discover":
                        with console.status("[cyan]Profiling data...[/cyan]", spinner="dots"):
                            insight = await discovery.discover(workspace.snapshot)
                        if insight is None:
                            console.print("[yellow]No tables loaded.[/yellow]")
                        else:
                            console.print(Panel(escape(insight), title="Discovery", border_style="green"))
                    else:
                        with console.status("[cyan]Processing...[/cyan]", spinner="dots"):
                            message = await session.ask(line)
                        print_message(message)

                except KeyboardInterrupt:
                    console.print("\n[yellow]Interrupted. Type /quit to leave.[/yellow]")
                except (DuckQueryError, SessionStateError) as e:
                    console.print(f"[red]Error: {escape(str(e))}[/red]")

            console.print("\n[yellow]Goodbye![/yellow]")
            return 0
        finally:
            await orchestrator.aclose()
            await workspace.close()

    sys.exit(asyncio.run(run_chat()))


@cli.command()
@click.argument("question")
@click.option("--run", "run_query", is_flag=True, help="Execute the generated SQL")
@data_options
def ask(question: str, run_query: bool, database: str | None, csv_paths: tuple[str, ...], sample: bool):
    """Ask a single question and print the generated SQL."""

    async def run_once() -> int:
        try:
            workspace = await open_workspace(database, csv_paths, sample)
        except (EngineError, OSError) as e:
            console.print(f"[red]Failed to open database: {escape(str(e))}[/red]")
            return 1

        orchestrator = build_orchestrator()
        session = ChatSession(orchestrator, workspace.builder, workspace.engine)
        try:
            with console.status("[cyan]Processing query...[/cyan]", spinner="dots"):
                message = await session.ask(question)
            if run_query and message.status == "generated":
                with console.status("[cyan]Executing query...[/cyan]", spinner="dots"):
                    message = await session.run_sql(message.id)
            print_message(message)
            return 1 if message.error_detail else 0
        finally:
            await orchestrator.aclose()
            await workspace.close()

    sys.exit(asyncio.run(run_once()))


@cli.command()
@click.option("--details", is_flag=True, help="Show samples and statistics as sent to the model")
@data_options
def schema(details: bool, database: str | None, csv_paths: tuple[str, ...], sample: bool):
    """Show the schema snapshot of the loaded data."""

    async def show() -> int:
        try:
            workspace = await open_workspace(database, csv_paths, sample)
        except (EngineError, OSError) as e:
            console.print(f"[red]Failed to open database: {escape(str(e))}[/red]")
            return 1
        try:
            print_schema(workspace.snapshot, details=details)
        finally:
            await workspace.close()
        return 0

    sys.exit(asyncio.run(show()))


@cli.group(name="config")
def config_group():
    """Manage the completion API configuration."""
    pass


@config_group.command(name="show")
def config_show():
    """Show the current AI configuration."""
    config = get_config_manager().get()
    table = Table(show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("API URL", config.api_url)
    table.add_row("Model", config.model)
    table.add_row("API key", config.masked_key() or "[red]not set[/red]")
    custom = config.custom_prompts
    overridden = [name for name, value in (custom.model_dump() if custom else {}).items() if value]
    table.add_row("Custom prompts", ", ".join(overridden) or "none")
    console.print(table)


@config_group.command(name="set")
@click.option("--api-key", default=None, help="Bearer credential for the completion API")
@click.option("--api-url", default=None, help="Chat completions endpoint URL")
@click.option("--model", default=None, help="Model name")
@click.option(
    "--prompt",
    "prompts",
    multiple=True,
    type=(click.Choice(["generate_sql", "interpret_results", "discover_data"]), click.Path(exists=True, dir_okay=False)),
    help="Override a system prompt with the contents of a file",
)
def config_set(api_key: str | None, api_url: str | None, model: str | None, prompts: tuple):
    """Update and persist the AI configuration."""
    manager = get_config_manager()
    updates: dict = {}
    if api_key is not None:
        updates["api_key"] = api_key
    if api_url is not None:
        if not api_url.startswith(("http://", "https://")):
            raise click.BadParameter("must start with http:// or https://", param_hint="--api-url")
        updates["api_url"] = api_url
    if model is not None:
        updates["model"] = model
    if prompts:
        current = manager.get().custom_prompts
        custom = current.model_dump() if current else {}
        for name, path in prompts:
            with open(path, "r", encoding="utf-8") as handle:
                custom[name] = handle.read().strip() or None
        updates["custom_prompts"] = custom

    if not updates:
        console.print("[yellow]Nothing to update.[/yellow]")
        return

    manager.set(**updates)
    console.print("[green]✓ Configuration saved[/green]")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
