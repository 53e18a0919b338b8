"""
Main CLI application for running multi-table extractions.
"""

import base64
import functools
import json
import sys
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tablesource import __version__
from tablesource.core.config import AppConfig, ConfigManager
from tablesource.core.exceptions import BaseCustomException
from tablesource.core.logging import setup_logging
from tablesource.database.connection import SourceDatabase
from tablesource.extraction.orchestrator import ExtractionOrchestrator
from tablesource.extraction.publisher import InMemoryArgumentStore, JsonFileArgumentStore, SchemaArgumentStore
from tablesource.extraction.resolver import TableResolver
from tablesource.extraction.runner import LocalSplitRunner, SplitResult
from .utils import console, create_progress_bar, display_table, format_error, mask_secret, validate_output_path


class CLIContext:
    """Context object to hold CLI state and configuration."""

    def __init__(self, debug=False, config_file=None):
        self.debug = debug
        self.config_file = config_file
        self.config: Optional[AppConfig] = None
        self._load_config()

    def _load_config(self):
        """Load configuration from file and environment variables."""
        try:
            self.config = ConfigManager(self.config_file).load_config()
        except BaseCustomException as e:
            console.print(f"[red]Error loading configuration: {e}[/red]")
            sys.exit(1)

        if self.debug:
            self.config.debug = True
            self.config.logging.level = "DEBUG"

        setup_logging(self.config.logging)

    def log(self, message, level="info"):
        """Print a message unless it is debug output outside debug mode."""
        if level == "debug" and not self.debug:
            return

        if level == "error":
            console.print(f"[red]{message}[/red]")
        elif level == "warning":
            console.print(f"[yellow]{message}[/yellow]")
        elif level == "success":
            console.print(f"[green]{message}[/green]")
        elif level == "debug":
            console.print(f"[dim]{message}[/dim]")
        else:
            console.print(message)

    def open_database(self) -> SourceDatabase:
        return SourceDatabase(self.config.database)

    def build_orchestrator(self, database: SourceDatabase, store: SchemaArgumentStore) -> ExtractionOrchestrator:
        return ExtractionOrchestrator(database, self.config.extraction, store)


pass_cli_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_exceptions(f):
    """Decorator to handle common CLI exceptions."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            sys.exit(1)
        except BaseCustomException as e:
            ctx = click.get_current_context(silent=True)
            debug = bool(ctx and getattr(ctx.obj, 'debug', False))
            console.print(format_error(e, show_traceback=debug))
            sys.exit(1)
        except Exception as e:
            console.print(f"[red]Unexpected error: {e}[/red]")
            ctx = click.get_current_context(silent=True)
            if ctx and getattr(ctx.obj, 'debug', False):
                import traceback
                console.print(traceback.format_exc())
            sys.exit(1)
    return wrapper


def _open_store(arguments: Optional[str]) -> InMemoryArgumentStore:
    """
    Staging store of a new run.

    Schemas are published in memory and reach the argument file only through
    ``_commit_arguments`` once planning succeeded; the previous run's file is
    removed up front so a failed run leaves none behind.
    """
    if arguments:
        JsonFileArgumentStore(validate_output_path(arguments)).clear()
    return InMemoryArgumentStore()


def _commit_arguments(store: SchemaArgumentStore, arguments: Optional[str]) -> None:
    if arguments:
        JsonFileArgumentStore(arguments).replace({key: store.get(key) for key in store.keys()})


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode('ascii')
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@click.group(context_settings={
    'help_option_names': ['-h', '--help'],
    'auto_envvar_prefix': 'TABLESOURCE'
})
@click.option('--debug/--no-debug', default=False, envvar='TABLESOURCE_DEBUG',
              help='Enable debug mode with verbose logging and error traces.')
@click.option('--config-file', type=click.Path(exists=True, dir_okay=False), envvar='TABLESOURCE_CONFIG',
              help='Path to YAML or JSON configuration file.')
@click.version_option(version=__version__, prog_name="Table Source CLI")
@click.pass_context
def cli(ctx, debug, config_file):
    """Table Source CLI - read many database tables as one input.

    Resolves the configured tables, publishes their schemas to an argument
    file, plans splits and reads them in parallel.

    Environment Variables:
        TABLESOURCE_DEBUG: Enable debug mode (true/false)
        TABLESOURCE_CONFIG: Path to configuration file
        DB_URL, DB_TYPE, DB_HOST, ...: Database settings
        EXTRACT_TABLES, EXTRACT_INCLUDE, ...: Table selection

    Examples:
        tablesource tables
        tablesource plan --arguments args.json
        tablesource extract --output rows.jsonl --workers 8
    """
    ctx.obj = CLIContext(debug=debug, config_file=config_file)

    if debug:
        console.print("[dim]Debug mode enabled[/dim]", highlight=False)


@cli.command()
@pass_cli_context
@handle_exceptions
def tables(ctx):
    """List the tables the configured selection resolves to."""
    extraction = ctx.config.extraction
    ctx.log(f"Resolving tables in {extraction.mode.value} mode", "debug")

    with ctx.open_database() as database:
        with database.connect() as conn:
            resolved = TableResolver(database).resolve(conn, extraction)

    display_table(
        [{"table": t.name, "schema": t.schema or ""} for t in resolved],
        title=f"Tables ({len(resolved)})",
    )


@cli.command()
@click.option('--arguments', type=click.Path(dir_okay=False),
              help='JSON file receiving the published table schemas.')
@pass_cli_context
@handle_exceptions
def plan(ctx, arguments):
    """Plan the extraction and print its splits.

    Runs table resolution, schema probing, schema publication and split
    planning without reading any rows.
    """
    store = _open_store(arguments)

    with ctx.open_database() as database:
        orchestrator = ctx.build_orchestrator(database, store)
        splits = orchestrator.plan()
        _commit_arguments(store, arguments)

    table = Table(title=f"Split plan ({len(splits)} splits)")
    table.add_column("Table", style="cyan")
    table.add_column("Split", justify="right")
    table.add_column("Range", style="yellow")
    table.add_column("Fields", justify="right")
    for planned in splits:
        table.add_row(
            planned.table.qualified_name,
            str(planned.split.index),
            planned.split.describe(),
            str(len(planned.schema)),
        )
    console.print(table)

    if arguments:
        ctx.log(f"Published {len(orchestrator.schemas)} schemas to {arguments}", "success")


@cli.command()
@click.option('--output', required=True, type=click.Path(dir_okay=False),
              help='JSON lines file receiving the records.')
@click.option('--workers', default=4, show_default=True, type=click.IntRange(min=1),
              help='Number of splits read in parallel.')
@click.option('--arguments', type=click.Path(dir_okay=False),
              help='JSON file receiving the published table schemas.')
@pass_cli_context
@handle_exceptions
def extract(ctx, output, workers, arguments):
    """Plan the extraction and read every split to a JSON lines file.

    Each record carries its source table name under the configured table
    name field. Exits with status 1 when any split fails.
    """
    output_path = validate_output_path(output)
    store = _open_store(arguments)
    table_name_field = ctx.config.extraction.table_name_field

    with ctx.open_database() as database:
        orchestrator = ctx.build_orchestrator(database, store)
        splits = orchestrator.plan()
        _commit_arguments(store, arguments)
        ctx.log(f"Reading {len(splits)} splits of {len(orchestrator.tables)} tables", "debug")

        with open(output_path, 'w', encoding='utf-8') as out, create_progress_bar() as progress:
            task = progress.add_task("Reading splits", total=len(splits))

            def write_record(record):
                out.write(json.dumps(record.to_dict(table_name_field), default=_json_default))
                out.write("\n")

            def split_done(result: SplitResult):
                progress.advance(task)

            results = LocalSplitRunner(orchestrator, max_workers=workers).run(write_record, split_done)

    rows = sum(r.rows for r in results)
    failed = [r for r in results if not r.succeeded]
    ctx.log(f"Wrote {rows} records from {len(results)} splits to {output_path}", "success" if not failed else "info")

    if failed:
        for result in failed:
            ctx.log(
                f"Split {result.split.split.index} of {result.split.table.qualified_name} failed "
                f"after {result.rows} rows: {escape(str(result.error))}",
                "error"
            )
        sys.exit(1)


@cli.command(name='show-config')
@pass_cli_context
@handle_exceptions
def show_config(ctx):
    """Show the effective configuration."""
    config = ctx.config
    db = config.database
    extraction = config.extraction

    if db.url:
        target = db.url.replace(db.password, '********') if db.password else db.url
    else:
        target = f"{db.database_type.value}://{db.user}@{db.host}:{db.port}/{db.name}"

    config_text = "[bold]Configuration[/bold]\n"
    config_text += f"Environment: {config.environment}\n"
    config_text += f"Debug: {config.debug}\n"
    config_text += f"Database: {target}\n"
    config_text += f"Database Password: {mask_secret(db.password)}\n"
    config_text += f"Selection: {extraction.mode.value}\n"
    if extraction.tables:
        config_text += f"Tables: {', '.join(extraction.tables)}\n"
    if extraction.include_patterns or extraction.exclude_patterns:
        config_text += (
            f"Patterns ({extraction.pattern_syntax.value}): include {escape(str(extraction.include_patterns))}, "
            f"exclude {escape(str(extraction.exclude_patterns))}\n"
        )
    config_text += f"Include views: {extraction.include_views}\n"
    config_text += f"Split size: {extraction.split_size or 'default'}\n"
    config_text += f"Argument prefix: {extraction.argument_prefix}\n"
    config_text += f"Log level: {config.logging.level}"

    console.print(Panel.fit(config_text, title=f"{config.app_name} Configuration"), highlight=False)


if __name__ == "__main__":
    cli()
