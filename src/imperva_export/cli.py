"""
Imperva export CLI.

Usage:
    imperva-export export --caid 12345
    imperva-export status --caid 12345 --handler <uuid>
    imperva-export download --caid 12345 --handler <uuid>
    imperva-export auto --caid 12345
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, NoReturn, TypeVar

import click
from rich.console import Console
from rich.markup import escape

from imperva_export.config import VERSION, ExportSettings, load_settings
from imperva_export.exceptions import ExportError
from imperva_export.logging import get_logger, setup_logging
from imperva_export.services.export import AsyncExportService, Deadline, ExportResult
from imperva_export.services.export._config import (
    DOWNLOAD_TIMEOUT,
    SUBMIT_TIMEOUT,
    WAIT_TIMEOUT,
)

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)
logger = get_logger("cli")

LOG_LEVEL_CHOICES = ["none", "debug", "info", "warn", "error"]


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="Config file (default is $HOME/.config/imperva-export-cli.yaml)",
)
@click.option("--api-id", help="API ID - prefer to use environment variable API_ID")
@click.option("--api-key", help="API Key - prefer to use environment variable API_KEY")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVEL_CHOICES, case_sensitive=False),
    help="Set the logging level (default: none)",
)
@click.option("--log-json", is_flag=True, help="Emit log lines as JSON")
@click.option("--output-dir", help="Directory to save exported files (default: .)")
@click.version_option(VERSION, prog_name="imperva-export-cli", message="%(prog)s version %(version)s")
@click.pass_context
def main(
    ctx: click.Context,
    config_file: str | None,
    api_id: str | None,
    api_key: str | None,
    log_level: str | None,
    log_json: bool,
    output_dir: str | None,
) -> None:
    """Imperva Export CLI.

    Export account configuration settings from the Imperva platform to a
    zip file in standard Terraform format.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["overrides"] = {
        "api_id": api_id,
        "api_key": api_key,
        "log_level": log_level,
        "log_json": True if log_json else None,
        "output_dir": output_dir,
    }


def get_settings(ctx: click.Context) -> ExportSettings:
    """Load settings, configure logging and check credentials."""
    obj = ctx.obj or {}
    try:
        settings = load_settings(obj.get("config_file"), **obj.get("overrides", {}))
        obj["plain_output"] = not setup_logging(settings.log_level, settings.log_json)
        settings.require_credentials()
    except ExportError as e:
        fail(e)
    return settings


def fail(error: Exception) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(str(error))}", soft_wrap=True)
    raise SystemExit(1)


def report(ctx: click.Context, message: str) -> None:
    """Log a message, or print it when logging is disabled."""
    logger.info(message)
    if (ctx.obj or {}).get("plain_output", True):
        console.print(escape(message), soft_wrap=True)


def execute(operation: Callable[[AsyncExportService], Awaitable[T]], settings: ExportSettings) -> T:
    """Run one service operation on a fresh event loop."""

    async def _run() -> T:
        async with AsyncExportService(settings) as service:
            return await operation(service)

    try:
        return asyncio.run(_run())
    except ExportError as e:
        logger.error(f"Error executing command: {e}")
        fail(e)


class ProgressDots:
    """Prints a header then one dot per pending poll."""

    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled
        self.started = False

    def __call__(self, attempt: int) -> None:
        if not self.enabled:
            return
        if not self.started:
            console.print("Waiting for export to complete", end="")
            self.started = True
        console.print(".", end="")

    def finish(self) -> None:
        if self.started:
            console.print()
            self.started = False


def progress_printer(ctx: click.Context) -> ProgressDots:
    """Dots are only printed when logging is disabled."""
    return ProgressDots((ctx.obj or {}).get("plain_output", True))


# =============================================================================
# Export Command
# =============================================================================


@main.command()
@click.option("--caid", type=int, required=True, help="The account ID to work on")
@click.pass_context
def export(ctx: click.Context, caid: int) -> None:
    """Initiate the export process.

    Starts the asynchronous export operation for an account and prints the
    handler ID used to track it.
    """
    settings = get_settings(ctx)
    handler = execute(
        lambda service: service.submit(caid, deadline=Deadline(SUBMIT_TIMEOUT)),
        settings,
    )
    report(ctx, f"Export initiated. Handler: {handler}")


# =============================================================================
# Status Command
# =============================================================================


@main.command()
@click.option("--caid", type=int, required=True, help="The account ID to work on")
@click.option("--handler", required=True, help="The handler received in the export response")
@click.pass_context
def status(ctx: click.Context, caid: int, handler: str) -> None:
    """Check the status of an export process.

    Polls the API until the export has completed and downloads the file
    once ready.
    """
    settings = get_settings(ctx)
    on_pending = progress_printer(ctx)
    try:
        result = execute(
            lambda service: service.wait(
                caid, handler, deadline=Deadline(WAIT_TIMEOUT), on_pending=on_pending
            ),
            settings,
        )
    finally:
        on_pending.finish()
    _report_result(ctx, result)


# =============================================================================
# Download Command
# =============================================================================


@main.command()
@click.option("--caid", type=int, required=True, help="The account ID to work on")
@click.option("--handler", required=True, help="The handler received in the export response")
@click.pass_context
def download(ctx: click.Context, caid: int, handler: str) -> None:
    """Download the exported zip file after a successful export.

    Retrieves the export file using the provided handler and CAID.
    """
    settings = get_settings(ctx)
    result = execute(
        lambda service: service.download(caid, handler, deadline=Deadline(DOWNLOAD_TIMEOUT)),
        settings,
    )
    _report_result(ctx, result)


# =============================================================================
# Auto Command
# =============================================================================


@main.command()
@click.option("--caid", type=int, required=True, help="The account ID to work on")
@click.pass_context
def auto(ctx: click.Context, caid: int) -> None:
    """Initiate the export and download the zip file once it is ready."""
    settings = get_settings(ctx)
    on_pending = progress_printer(ctx)
    try:
        result = execute(
            lambda service: service.run(
                caid,
                deadline=Deadline(WAIT_TIMEOUT),
                on_pending=on_pending,
                on_submitted=lambda handler: report(ctx, f"Export initiated. Handler ID: {handler}"),
            ),
            settings,
        )
    finally:
        on_pending.finish()
    _report_result(ctx, result)
    report(ctx, f"Export completed successfully. Handler ID: {result.handler}")


def _report_result(ctx: click.Context, result: ExportResult) -> None:
    report(ctx, str(result))


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    main()
