#!/usr/bin/env python3
"""
clinicdesk CLI

Command-line access to an admin's accounts, documents and clinics.
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATUS_COLORS = {
    "approved": "green",
    "rejected": "red",
    "pending": "yellow",
}


def load_context():
    """Build the application context, or exit with a readable error."""
    from clinicdesk.context import build_context

    try:
        return build_context()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


admin_option = click.option(
    "--admin", "admin_email", required=True, envvar="CLINICDESK_ADMIN",
    help="Email of the admin whose records to use",
)


@click.group()
@click.version_option(version="0.1.0", prog_name="clinicdesk")
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: Optional[str]):
    """
    clinicdesk - admin console for clinics, documents and account approvals.
    """
    from clinicdesk.config import configure_logging

    configure_logging(log_level)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
def serve(host: str, port: int):
    """Run the HTTP API."""
    from server import run_server

    run_server(host=host, port=port)


@cli.command()
@admin_option
def stats(admin_email: str):
    """
    Show dashboard counts for an admin.

    Example:

        clinicdesk stats --admin owner@clinic.org
    """
    from clinicdesk.services import compute_stats

    ctx = load_context()
    result = compute_stats(ctx.accounts, ctx.documents, admin_email)

    table = Table(title=f"Dashboard for {admin_email}")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Total Users", str(result.total_users))
    table.add_row("Pending Approvals", str(result.pending_approvals))
    table.add_row("Rejected Users", str(result.rejected_users))
    table.add_row("Total Documents", str(result.total_documents))
    console.print(table)


@cli.command()
@admin_option
@click.option("--status", type=click.Choice(["pending", "approved", "rejected"]), help="Only this status")
def accounts(admin_email: str, status: Optional[str]):
    """List an admin's accounts."""
    ctx = load_context()
    filters = {"status": status} if status else {}
    rows = ctx.accounts.list(admin_email, **filters)

    if not rows:
        console.print("[dim]No users found. Add users from the Dashboard.[/dim]")
        return

    table = Table(title="Users")
    table.add_column("ID", style="dim")
    table.add_column("Username")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Status")
    table.add_column("Reason")
    for account in rows:
        color = STATUS_COLORS.get(account.status.value, "white")
        table.add_row(
            account.id,
            account.username,
            account.email,
            account.role.value,
            f"[{color}]{account.status.value}[/{color}]",
            account.rejection_reason or "",
        )
    console.print(table)


@cli.command(name="set-status")
@admin_option
@click.argument("status", type=click.Choice(["pending", "approved", "rejected"]))
@click.argument("account_ids", nargs=-1, required=True)
@click.option("--reason", help="Rejection reason (required for rejected)")
def set_status(admin_email: str, status: str, account_ids: tuple, reason: Optional[str]):
    """Apply a status to one or more accounts."""
    from clinicdesk.errors import ValidationError
    from clinicdesk.services import bulk_transition

    ctx = load_context()
    try:
        result = bulk_transition(ctx.accounts, account_ids, status, reason=reason, owner_email=admin_email)
    except ValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)

    if result.ok:
        console.print(f"[green]✓ {result.succeeded} user(s) updated successfully![/green]")
    else:
        console.print(f"[red]Failed to update users: {result.succeeded}/{result.requested} succeeded[/red]")
        raise SystemExit(1)


@cli.command()
@admin_option
def documents(admin_email: str):
    """List an admin's documents."""
    ctx = load_context()
    rows = ctx.documents.list(admin_email)

    if not rows:
        console.print("[dim]No documents yet.[/dim]")
        return

    table = Table(title="Documents")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Assigned", justify="right")
    table.add_column("Created")
    for document in rows:
        created = document.created_at.strftime("%Y-%m-%d") if document.created_at else ""
        table.add_row(document.id, document.document_name, str(len(document.assigned_users)), created)
    console.print(table)


@cli.command()
@admin_option
@click.argument("document_id")
@click.option("--output", "-o", type=click.Path(), help="Output file path (default: <documentName>.csv)")
def export(admin_email: str, document_id: str, output: Optional[str]):
    """Export a document's assigned users as CSV."""
    from clinicdesk.exporters import export_csv, export_filename

    ctx = load_context()
    document = ctx.documents.get_owned(document_id, admin_email)
    if document is None:
        console.print(f"[red]Document {document_id} not found[/red]")
        raise SystemExit(1)

    path = Path(output) if output else Path(export_filename(document))
    export_csv(document, output_path=path)
    console.print(f"[green]✓ CSV written to {path}[/green]")


@cli.command()
@admin_option
def clinics(admin_email: str):
    """List an admin's clinics."""
    ctx = load_context()
    rows = ctx.clinics.list(admin_email)

    if not rows:
        console.print("[dim]No clinics yet.[/dim]")
        return

    table = Table(title="Clinics")
    table.add_column("ID", style="dim")
    table.add_column("Clinic")
    table.add_column("Doctor")
    table.add_column("Mail")
    table.add_column("Location")
    table.add_column("Patients", justify="right")
    for clinic in rows:
        table.add_row(
            clinic.id,
            clinic.clinic_name,
            clinic.doctor_name,
            clinic.clinic_mail,
            clinic.location or "",
            clinic.number_of_patients or "",
        )
    console.print(table)


@cli.command(name="delete-clinic")
@admin_option
@click.argument("clinic_id")
def delete_clinic(admin_email: str, clinic_id: str):
    """Delete a clinic after confirmation."""
    ctx = load_context()
    clinic = ctx.clinics.get_owned(clinic_id, admin_email)
    if clinic is None:
        console.print(f"[red]Clinic {clinic_id} not found[/red]")
        raise SystemExit(1)

    if not click.confirm(f"Are you sure you want to delete {clinic.clinic_name}?"):
        return
    ctx.clinics.delete(clinic_id)
    console.print("[green]✓ Clinic deleted successfully![/green]")


@cli.command()
def info():
    """Show configuration and available commands."""
    from clinicdesk.config import get_settings
    from clinicdesk.db.client import is_configured

    settings = get_settings()
    console.print(Panel(
        "[bold]clinicdesk[/bold]\n"
        "Admin console and user portal API",
        border_style="blue",
    ))

    console.print("\n[bold]Configuration:[/bold]")
    console.print(f"  • Database: {'configured' if is_configured() else '[red]not configured[/red]'}")
    console.print(f"  • Image host: {'configured' if settings.image_host_configured else '[yellow]no API key[/yellow]'}")
    console.print(f"  • Quote service: {settings.quote_api_url}")

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  clinicdesk serve --port 8000")
    console.print("  clinicdesk stats --admin owner@clinic.org")
    console.print("  clinicdesk export --admin owner@clinic.org <document-id>")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
