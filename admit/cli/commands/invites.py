"""
CLI commands for invitation management.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import typer
from pydantic import ValidationError as ConfigError
from rich.console import Console
from rich.table import Table

from ...client import Admit
from ...exceptions import AdmitError
from ...invitations.models import ResolveAction, ResolveResult
from .migrate import report_config_error

console = Console()
app = typer.Typer(help="Manage organization invitations")

T = TypeVar("T")

STATUS_STYLES = {
    "pending": "yellow",
    "accepted": "green",
    "rejected": "red",
    "expired": "dim",
    "cancelled": "dim",
}


def parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Error:[/red] {label} must be a UUID, got {value!r}")
        raise typer.Exit(1)


def run_with_admit(action: Callable[[Admit], Awaitable[T]]) -> T:
    """Create a client, run ``action`` with it and report configuration and Admit errors."""

    async def _run() -> T:
        try:
            admit = await Admit.create()
        except ConfigError as e:
            report_config_error(e)
        async with admit:
            return await action(admit)

    try:
        return asyncio.run(_run())
    except AdmitError as e:
        console.print(f"[red]Error ({e.code}):[/red] {e.message}")
        raise typer.Exit(1)


def print_result(result: ResolveResult) -> None:
    console.print(f"[green]✓[/green] {result.message}")
    console.print(f"  Organization: {result.organization_id}")
    console.print(f"  Status: {result.status.value}")


@app.command("send")
def invites_send_command(
    email: str = typer.Argument(..., help="Email address to invite"),
    org_id: str = typer.Option(..., "--org", "-o", help="Organization ID"),
    inviter_id: str = typer.Option(..., "--inviter", "-i", help="User ID of the inviting owner or admin"),
    role: str = typer.Option("member", "--role", "-r", help="Role to grant (admin or member)"),
) -> None:
    """Send an invitation to join an organization."""
    organization_id = parse_uuid(org_id, "--org")
    inviter_user_id = parse_uuid(inviter_id, "--inviter")

    invite = run_with_admit(
        lambda admit: admit.invites.invite(organization_id, inviter_user_id, email, role)
    )

    console.print(f"[green]✓[/green] Invitation created for {invite.email}")
    console.print(f"  ID: {invite.id}")
    console.print(f"  Role: {invite.role.value}")
    console.print(f"  Token: {invite.token}")
    console.print(f"  Expires: {invite.expires_at}")


@app.command("list")
def invites_list_command(
    org_id: str = typer.Option(..., "--org", "-o", help="Organization ID"),
    user_id: str = typer.Option(..., "--user", "-u", help="User ID of an organization member"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Only this status"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum results"),
) -> None:
    """List invitations for an organization."""
    organization_id = parse_uuid(org_id, "--org")
    caller_user_id = parse_uuid(user_id, "--user")

    invites = run_with_admit(
        lambda admit: admit.invites.list_by_organization(
            organization_id, caller_user_id, status=status, limit=limit
        )
    )

    if not invites:
        console.print("[yellow]No invitations found[/yellow]")
        return

    table = Table(title="Invitations")
    table.add_column("Email", style="cyan")
    table.add_column("Role")
    table.add_column("Status")
    table.add_column("Expires", style="yellow")
    table.add_column("ID", style="dim")

    for invite in invites:
        style = STATUS_STYLES.get(invite.status.value, "white")
        table.add_row(
            invite.email,
            invite.role.value,
            f"[{style}]{invite.status.value}[/{style}]",
            invite.expires_at.strftime("%Y-%m-%d"),
            str(invite.id)[:8],
        )

    console.print(table)


@app.command("lookup")
def invites_lookup_command(
    token: str = typer.Argument(..., help="Invitation token"),
) -> None:
    """Show the pending invitation behind a token."""
    view = run_with_admit(lambda admit: admit.invites.lookup(token))

    console.print(f"[bold]{view.organization.name}[/bold] ({view.organization.id})")
    console.print(f"  Invited: {view.email}")
    console.print(f"  Role: {view.role.value}")
    console.print(f"  Expires: {view.expires_at}")


def _resolve(token: str, user_id: str, email: str, action: ResolveAction) -> None:
    caller_user_id = parse_uuid(user_id, "--user")
    result = run_with_admit(
        lambda admit: admit.invites.resolve(token, caller_user_id, email, action)
    )
    print_result(result)


@app.command("accept")
def invites_accept_command(
    token: str = typer.Argument(..., help="Invitation token"),
    user_id: str = typer.Option(..., "--user", "-u", help="User ID accepting"),
    email: str = typer.Option(..., "--email", "-e", help="Verified email of the user"),
) -> None:
    """Accept an invitation on behalf of a user."""
    _resolve(token, user_id, email, ResolveAction.ACCEPT)


@app.command("reject")
def invites_reject_command(
    token: str = typer.Argument(..., help="Invitation token"),
    user_id: str = typer.Option(..., "--user", "-u", help="User ID rejecting"),
    email: str = typer.Option(..., "--email", "-e", help="Verified email of the user"),
) -> None:
    """Reject an invitation on behalf of a user."""
    _resolve(token, user_id, email, ResolveAction.REJECT)


@app.command("cancel")
def invites_cancel_command(
    invite_id: str = typer.Argument(..., help="Invitation ID to cancel"),
    org_id: str = typer.Option(..., "--org", "-o", help="Organization ID"),
    user_id: str = typer.Option(..., "--user", "-u", help="User ID of an owner or admin"),
) -> None:
    """Cancel a pending invitation."""
    invitation_id = parse_uuid(invite_id, "invitation ID")
    organization_id = parse_uuid(org_id, "--org")
    caller_user_id = parse_uuid(user_id, "--user")

    run_with_admit(
        lambda admit: admit.invites.cancel(organization_id, invitation_id, caller_user_id)
    )
    console.print(f"[green]✓[/green] Invitation {invite_id[:8]}... cancelled")


@app.command("sweep")
def invites_sweep_command(
    watch: bool = typer.Option(False, "--watch", "-w", help="Keep sweeping on the configured interval"),
) -> None:
    """Expire all overdue pending invitations."""

    async def _sweep(admit: Admit) -> int:
        if watch:
            console.print(
                f"Sweeping every {admit.config.sweep_interval_seconds}s (Ctrl+C to stop)"
            )
            await admit.invites.sweeper.run_periodically(admit.config.sweep_interval_seconds)
            return 0
        return await admit.invites.sweep_expired()

    try:
        expired = run_with_admit(_sweep)
    except KeyboardInterrupt:
        console.print("Stopped")
        return

    console.print(f"[green]✓[/green] Expired {expired} invitations")

