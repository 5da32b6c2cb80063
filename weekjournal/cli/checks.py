"""Custom checklist commands for WeekJournal CLI."""

import click
from rich.table import Table

from weekjournal.cli.common import console, open_app, print_error, require_session


@click.group()
def checks() -> None:
    """Manage your custom checklist items.

    Custom items appear under the fixed checklist on every week.
    """


@checks.command(name="list")
def list_checks() -> None:
    """List fixed and custom checklist items."""
    from weekjournal.models import FIXED_CHECKS

    with open_app() as app:
        require_session(app)
        custom = app.custom_checks

    table = Table(title="Checklist", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Item")
    table.add_column("Kind")

    for check_id, label in FIXED_CHECKS:
        table.add_row(check_id, label, "fixed")
    for check in custom:
        table.add_row(check.id, check.label, "[magenta]custom[/magenta]")

    console.print(table)


@checks.command(name="add")
@click.argument("label")
def add_check(label: str) -> None:
    """Add a custom checklist item."""
    with open_app() as app:
        require_session(app)
        try:
            check = app.add_custom_check(label)
        except ValueError as e:
            print_error("Invalid Item", str(e))
            raise SystemExit(1)
    console.print(f"[green]✓[/green] Added [bold]{check.label}[/bold] ([dim]{check.id}[/dim])")


@checks.command(name="remove")
@click.argument("check_id")
def remove_check(check_id: str) -> None:
    """Remove a custom checklist item by ID.

    Answers already recorded for it stay in past weeks but no longer
    count towards the score.
    """
    with open_app() as app:
        require_session(app)
        removed = app.remove_custom_check(check_id)
    if not removed:
        print_error("Not Found", f"No custom checklist item {check_id}")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] Removed {check_id}")
