"""
Job Monitor CLI - operator commands for the CSV import pipeline.

Usage:
    jobmonitor --help             Show all commands
    jobmonitor import-now         Import every pending CSV file
    jobmonitor import-file PATH   Import and archive a single file
    jobmonitor watch              Run the hotfolder watcher in the foreground
    jobmonitor config             Show the effective import configuration
"""

import asyncio
from pathlib import Path

import typer

app = typer.Typer(
    name="jobmonitor",
    help="Job Monitor CLI - CSV import operations",
    no_args_is_help=True,
)


def _print_success(message: str) -> None:
    """Print a success message."""
    typer.echo(f"  ✅ {message}")


def _print_warning(message: str) -> None:
    """Print a warning message."""
    typer.echo(f"  ⚠️ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


@app.command("import-now")
def import_now():
    """Import all CSV files waiting in the drop directory."""
    from jobmonitor.core.logging import setup_logging
    from jobmonitor.importer.errors import ImportBatchError, ImportPipelineError
    from jobmonitor.jobs.csv_import import run_import_pass

    setup_logging()
    try:
        stats = asyncio.run(run_import_pass())
    except ImportBatchError as e:
        _print_error(f"Import failed: {e}")
        for name, error in sorted(e.failures.items()):
            _print_warning(f"{name}: {error}")
        typer.echo(f"  {e.imported} record(s) imported from the remaining files")
        raise typer.Exit(1) from e
    except ImportPipelineError as e:
        _print_error(f"Import failed: {e}")
        raise typer.Exit(1) from e

    _print_success(
        f"{stats['imported']} record(s) from {stats['files']} file(s), "
        f"{stats['notifications']} notification(s) sent"
    )


@app.command("import-file")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file to import"),
):
    """Import and archive a single CSV file."""
    from jobmonitor.core.logging import setup_logging
    from jobmonitor.importer.errors import ImportPipelineError
    from jobmonitor.jobs.csv_import import process_dropped_file

    setup_logging()
    try:
        result = asyncio.run(process_dropped_file(path))
    except ImportPipelineError as e:
        _print_error(f"Import failed: {e}")
        raise typer.Exit(1) from e

    if result.missing:
        _print_warning(f"{path.name} was already processed")
        return

    _print_success(
        f"{result.file_name}: {result.new_count} new, {result.updated_count} updated, "
        f"{result.skipped_lines} skipped"
    )


@app.command()
def watch():
    """Watch the drop directory and import files as they arrive (Ctrl+C to stop)."""
    from jobmonitor.config import get_config, get_settings
    from jobmonitor.core.logging import setup_logging
    from jobmonitor.importer.hotfolder import HotfolderWatcher
    from jobmonitor.jobs.csv_import import make_file_handler

    setup_logging()
    settings = get_settings()
    config = get_config().importer

    async def _watch() -> None:
        watcher = HotfolderWatcher(
            settings.import_directory,
            make_file_handler(),
            grace_period=config.grace_period_seconds,
            force_polling=config.force_polling,
        )
        await watcher.start()
        try:
            while watcher.is_running:
                await asyncio.sleep(1)
        finally:
            await watcher.stop()

    typer.echo(f"Watching {Path(settings.import_directory).resolve()}")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        typer.echo("Stopped")


@app.command()
def config():
    """Show the effective import configuration."""
    from jobmonitor.config import get_config, get_settings

    settings = get_settings()
    importer = get_config().importer
    notifications = get_config().notifications

    typer.echo(f"Config file:         {get_config().config_path.resolve()}")
    typer.echo(f"Drop directory:      {Path(settings.import_directory).resolve()}")
    typer.echo(f"Archive directory:   {Path(settings.processed_directory).resolve()}")
    typer.echo(f"Hotfolder enabled:   {settings.hotfolder_enabled}")
    typer.echo(f"Scheduler enabled:   {settings.scheduler_enabled}")
    typer.echo(f"Import interval:     {importer.interval_minutes} min")
    typer.echo(f"Hourly sweep:        {importer.hourly_sweep}")
    typer.echo(f"Grace period:        {importer.grace_period_seconds}s")
    typer.echo(f"Notifications:       {notifications.enabled}")
    typer.echo(f"Notification mock:   {notifications.mock_mode}")


if __name__ == "__main__":
    app()
