"""Command-line entry point for Autopilot Tenant Move.

Moves this Windows device out of its current Intune tenant and resets it so
it re-provisions into the tenant described by AutopilotConfigurationFile.json.

Example:
    autopilot-tenant-move --source-dir C:\\Temp\\TenantMove

Dry-run mode (no copy, no deletions, no log rewrite, no wipe):
    autopilot-tenant-move --dry-run
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from autopilot_tenant_move.config_manager import (
    LoggingConfig,
    create_config_from_env,
    setup_logging,
)
from autopilot_tenant_move.exceptions import ConfigurationError
from autopilot_tenant_move.logging_config import configure_logging
from autopilot_tenant_move.models import MigrationResult
from autopilot_tenant_move.runner import TenantMoveRunner

console = Console()
logger = logging.getLogger(__name__)


def _render_summary(result: MigrationResult) -> Table:
    table = Table(title="Autopilot Tenant Move")
    table.add_column("Step", style="cyan")
    table.add_column("Result")

    def mark(done: bool) -> str:
        return "[green]yes[/green]" if done else "[dim]no[/dim]"

    table.add_row("Device", Text(result.device_name))
    table.add_row("Config staged", mark(result.config_staged))
    table.add_row("Managed device deleted", mark(result.device_deleted))
    table.add_row("Autopilot registration deleted", mark(result.registration_deleted))
    table.add_row("Autopilot sync triggered", mark(result.sync_triggered))
    table.add_row("IME log lines removed", str(result.sanitized_lines))
    table.add_row("Remote wipe invoked", mark(result.wipe_invoked))
    status = (
        f"[green]{result.status.value}[/green]"
        if result.success
        else f"[red]{result.status.value}[/red]"
    )
    table.add_row("Status", status)
    if result.error:
        table.add_row("Error", Text(result.error, style="red"))
    return table


def _log_startup_failure(error: ConfigurationError) -> None:
    """Record a configuration failure in the run log, which is not set up yet."""
    try:
        logging_config = LoggingConfig()
    except ConfigurationError:
        logging_config = LoggingConfig(level="INFO")
    setup_logging(logging_config)
    logger.error(f"Configuration failed: {error}")


@click.command("autopilot-tenant-move")
@click.option(
    "--device-name",
    default=None,
    help="Intune device name to remove (default: this computer's name)",
)
@click.option(
    "--source-dir",
    type=click.Path(file_okay=False),
    default=None,
    help=(
        "Directory holding AutopilotConfigurationFile.json (default: the wrapper "
        "script's directory, or the working directory when run as a command)"
    ),
)
@click.option(
    "--settle-seconds",
    type=float,
    default=None,
    help="Wait after each Graph deletion (default: 3)",
)
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Resolve records and log every action without performing it",
)
def main(
    device_name: Optional[str],
    source_dir: Optional[str],
    settle_seconds: Optional[float],
    log_level: Optional[str],
    dry_run: bool,
) -> None:
    """Move this device to a new Intune tenant and factory reset it (DESTRUCTIVE)."""
    try:
        config = create_config_from_env(
            device_name=device_name,
            source_dir=source_dir,
            settle_seconds=settle_seconds,
            log_level=log_level.upper() if log_level else None,
            dry_run=dry_run,
        )
    except ConfigurationError as e:
        _log_startup_failure(e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setup_logging(config.logging)
    configure_logging()
    config.log_configuration_summary()

    result = TenantMoveRunner(config).run()
    console.print(_render_summary(result))
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
