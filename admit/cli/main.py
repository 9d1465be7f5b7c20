"""
Admit CLI - Command-line interface for organization invitations.

Usage:
    admit migrate           Print pending database migrations
    admit status            Show migration status
    admit invites           Manage organization invitations
"""

import typer
from rich.console import Console

from .commands import invites, migrate

# Create the main Typer app
app = typer.Typer(
    name="admit",
    help="Organization invitations with Supabase",
    add_completion=False,
)

console = Console()

# Register top-level commands
app.command(name="migrate")(migrate.migrate_command)
app.command(name="status")(migrate.status_command)

# Add invites subcommand group
app.add_typer(invites.app, name="invites")


@app.callback()
def callback() -> None:
    """
    Admit - Organization invitations for Python.

    Invite people by email; they join by redeeming a single-use token.
    """
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
