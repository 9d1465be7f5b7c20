"""
admit migrate / admit status - Database schema commands.

PostgREST cannot execute DDL, so ``admit migrate`` prints the SQL of every
pending migration for psql or the Supabase SQL editor.
"""

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError as ConfigError
from rich.console import Console
from rich.table import Table

from ...config import AdmitConfig, load_config
from ...exceptions import AdmitError
from ...migrations.manager import MigrationManager
from ...utils.supabase import AdmitSupabaseClient

console = Console()
# stderr so `admit migrate > pending.sql` captures only SQL
err_console = Console(stderr=True)


def report_config_error(e: ConfigError) -> NoReturn:
    """Print a configuration error with the variables to set, then exit 1."""
    err_console.print(f"[red]Error loading configuration:[/red] {e}")
    err_console.print("\nSet [cyan]ADMIT_SUPABASE_URL[/cyan] and [cyan]ADMIT_SUPABASE_KEY[/cyan]")
    raise typer.Exit(1)


def _load_config() -> AdmitConfig:
    try:
        return load_config()
    except ConfigError as e:
        report_config_error(e)


async def _manager(config: AdmitConfig) -> MigrationManager:
    client = await AdmitSupabaseClient.create(config)
    return MigrationManager(client)


def migrate_command(
    target: Optional[str] = typer.Argument(
        None,
        help="Target migration version (default: latest)",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the SQL to this file instead of stdout"
    ),
) -> None:
    """
    Print the SQL of all pending migrations.

    Example:
        $ admit migrate | psql "$DATABASE_URL"
        $ admit migrate 001 -o pending.sql
    """
    config = _load_config()

    async def _render() -> str:
        manager = await _manager(config)
        return await manager.render_pending(target)

    try:
        sql = asyncio.run(_render())
    except AdmitError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not sql:
        err_console.print("[green]✓[/green] No pending migrations")
        return

    if output:
        output.write_text(sql)
        err_console.print(f"[green]✓[/green] Pending SQL written to {output}")
        err_console.print("Apply it with psql or the Supabase SQL editor")
        return

    # Plain print keeps rich markup out of the SQL
    print(sql)


def status_command() -> None:
    """
    Show migration status.

    Displays which migrations have been applied and which are pending.
    """
    config = _load_config()

    async def _status():
        manager = await _manager(config)
        return manager.discover_migrations(), await manager.get_applied_migrations()

    try:
        migrations, applied = asyncio.run(_status())
    except AdmitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Migration Status")
    table.add_column("Status", style="cyan", width=8)
    table.add_column("Version", style="magenta")
    table.add_column("Name", style="green")

    for migration in migrations:
        is_applied = migration.version in applied
        status_style = "green" if is_applied else "yellow"
        table.add_row(
            f"[{status_style}]{'✓' if is_applied else 'pending'}[/{status_style}]",
            migration.version,
            migration.name,
        )

    console.print(table)

    pending_count = len([m for m in migrations if m.version not in applied])
    console.print(f"\nTotal: {len(migrations)} migrations")
    console.print(f"[green]Applied: {len(migrations) - pending_count}[/green]")
    console.print(f"[yellow]Pending: {pending_count}[/yellow]\n")

    if pending_count > 0:
        console.print("Run [cyan]admit migrate[/cyan] to print the pending SQL\n")
