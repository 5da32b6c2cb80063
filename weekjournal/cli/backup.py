"""Backup commands for WeekJournal CLI."""

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from weekjournal.cli.common import console, open_app, print_notice, require_session


@click.command()
@click.argument("path", required=False, type=click.Path(path_type=Path))
def export(path: Optional[Path]) -> None:
    """Export the whole journal to a JSON file.

    \b
    Examples:
      weekjournal export                  # trading-journal-YYYY-MM-DD.json
      weekjournal export ~/backups/j.json
    """
    with open_app() as app:
        require_session(app)
        weeks = len(app.store.week_keys())
        written = app.export_backup(path)

    console.print(Panel(
        f"[green]✓[/green] Exported {weeks} weeks to [cyan]{written}[/cyan]",
        title="[bold]Backup Exported[/bold]",
        border_style="green",
    ))


@click.command(name="import")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--yes", is_flag=True, default=False, help="Skip the confirmation prompt.")
def import_(path: Path, yes: bool) -> None:
    """Replace the whole journal with a JSON backup.

    Every imported week is synced to your account.
    """
    with open_app() as app:
        require_session(app)
        if not yes and app.store.week_keys():
            click.confirm("This replaces all current entries. Continue?", abort=True)
        notice = app.import_backup(path)
        print_notice(notice)
        if notice.level == "error":
            raise SystemExit(1)
