"""Weekly journal commands for WeekJournal CLI.

Handles viewing and editing a week's entry, trade-log imports,
screenshots and the history table.
"""

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from weekjournal.cli.common import (
    apply_week,
    console,
    date_option,
    open_app,
    print_error,
    print_notice,
    require_session,
)


def _format_pnl(pnl: float) -> str:
    color = "green" if pnl >= 0 else "red"
    sign = "+" if pnl >= 0 else ""
    return f"[{color}]{sign}{pnl:.2f}[/{color}]"


def _render_week(app) -> None:
    """Print the selected week's entry."""
    from weekjournal.dates.weeks import parse_week_key
    from weekjournal.models import FIXED_CHECKS

    entry = app.entry
    start, end = parse_week_key(app.current_week)

    checklist = Table(show_header=False, box=None, padding=(0, 1))
    checklist.add_column("", width=2)
    checklist.add_column("Item")
    checklist.add_column("ID", style="dim")
    for check_id, label in FIXED_CHECKS:
        mark = "[green]✓[/green]" if entry.answers.get(check_id) else "[dim]·[/dim]"
        checklist.add_row(mark, label, check_id)
    for check in app.custom_checks:
        mark = "[green]✓[/green]" if entry.custom_answers.get(check.id) else "[dim]·[/dim]"
        checklist.add_row(mark, check.label, check.id)

    tags = ", ".join(f"[magenta]#{tag}[/magenta]" for tag in entry.tags) or "[dim]none[/dim]"
    shots = ", ".join(s.name or s.id for s in entry.screenshots) or "[dim]none[/dim]"
    context = entry.context.strip() or "[dim]No notes yet[/dim]"

    console.print(Panel(
        f"{context}\n\n"
        f"[bold]Trades:[/bold] {entry.stats.number_of_trades}   "
        f"[bold]P&L:[/bold] {_format_pnl(entry.stats.pnl)}   "
        f"[bold]Score:[/bold] {app.score()}%\n"
        f"[bold]Tags:[/bold] {tags}\n"
        f"[bold]Screenshots:[/bold] {shots}",
        title=f"[bold]Week {start:%b %d} – {end:%b %d, %Y}[/bold]",
        subtitle=f"[dim]{app.current_week}[/dim]",
        border_style="cyan",
    ))
    console.print(checklist)

    if entry.trades:
        trades = Table(title="Imported Trades", show_header=True, header_style="bold cyan")
        trades.add_column("Time")
        trades.add_column("Symbol", style="bold")
        trades.add_column("Type")
        trades.add_column("Lots", justify="right")
        trades.add_column("Profit", justify="right")
        for trade in entry.trades:
            trades.add_row(
                trade.time.strftime("%Y-%m-%d %H:%M"),
                trade.symbol or "-",
                trade.type or "-",
                f"{trade.lots:g}",
                _format_pnl(trade.profit),
            )
        console.print(trades)


@click.command()
@date_option
def week(date_value: Optional[str]) -> None:
    """Show a week's journal entry.

    \b
    Examples:
      weekjournal week                   # This week
      weekjournal week --date 2024-03-06 # Week containing March 6th
    """
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        _render_week(app)


@click.command()
@click.argument("text")
@date_option
@click.option("--append", is_flag=True, default=False, help="Append instead of replacing.")
def note(text: str, date_value: Optional[str], append: bool) -> None:
    """Write the week's notes.

    \b
    Examples:
      weekjournal note "Waited for setups, no FOMO"
      weekjournal note --append "Friday: cut losers early"
    """
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        if append and app.entry.context:
            text = f"{app.entry.context}\n{text}"
        app.set_context(text)
        console.print(f"[green]✓[/green] Notes saved for [cyan]{app.current_week}[/cyan]")


@click.command()
@click.argument("check_id")
@date_option
@click.option("--off", is_flag=True, default=False, help="Uncheck the item.")
def check(check_id: str, date_value: Optional[str], off: bool) -> None:
    """Tick (or untick) a checklist item by ID.

    IDs are shown by `weekjournal week` and `weekjournal checks list`.
    """
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        try:
            app.set_answer(check_id, not off)
        except ValueError as e:
            print_error("Unknown Item", str(e))
            raise SystemExit(1)
        state = "unchecked" if off else "checked"
        console.print(
            f"[green]✓[/green] {check_id} {state} (score now [bold]{app.score()}%[/bold])"
        )


@click.command()
@click.argument("tags", nargs=-1, required=True)
@date_option
@click.option("--remove", is_flag=True, default=False, help="Remove the tags instead.")
def tag(tags: tuple[str, ...], date_value: Optional[str], remove: bool) -> None:
    """Add or remove tags on a week."""
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        for name in tags:
            if remove:
                app.remove_tag(name)
            else:
                app.add_tag(name)
        current = ", ".join(app.entry.tags) or "none"
        console.print(f"[green]✓[/green] Tags: {current}")


@click.command(name="import-trades")
@click.argument("path", type=click.Path(path_type=Path))
@date_option
def import_trades(path: Path, date_value: Optional[str]) -> None:
    """Import a broker trade-log CSV into a week.

    Only trades inside the week are kept. The week's previous trades
    and stats are replaced.
    """
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        notice = app.import_trades(path)
        print_notice(notice)
        if notice.level == "error":
            raise SystemExit(1)


@click.group()
def screenshot() -> None:
    """Manage a week's screenshots."""


@screenshot.command(name="add")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=Path))
@date_option
def screenshot_add(paths: tuple[Path, ...], date_value: Optional[str]) -> None:
    """Attach image files (max 2MB each)."""
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        for notice in app.add_screenshots(list(paths)):
            print_notice(notice)


@screenshot.command(name="remove")
@click.argument("screenshot_id")
@date_option
def screenshot_remove(screenshot_id: str, date_value: Optional[str]) -> None:
    """Remove a screenshot by ID."""
    with open_app() as app:
        require_session(app)
        apply_week(app, date_value)
        if not app.remove_screenshot(screenshot_id):
            print_error("Not Found", f"No screenshot {screenshot_id} in {app.current_week}")
            raise SystemExit(1)
        console.print("[green]✓[/green] Screenshot removed")


@click.command()
@click.option("-n", "--limit", default=None, type=int, help="Show only the latest N weeks.")
def history(limit: Optional[int]) -> None:
    """Show all journaled weeks, newest first."""
    with open_app() as app:
        require_session(app)
        rows = app.history()

    if not rows:
        console.print(Panel(
            "[dim]No journal entries found[/dim]",
            title="[bold]Journal History[/bold]",
            border_style="dim",
        ))
        return

    if limit is not None:
        rows = rows[:limit]

    table = Table(
        title="Journal History",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Week", style="bold")
    table.add_column("Trades", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Tags", max_width=30)
    table.add_column("Notes", justify="center")

    total_pnl = 0.0
    for row in rows:
        table.add_row(
            f"{row.start:%Y-%m-%d} → {row.end:%m-%d}",
            str(row.number_of_trades),
            _format_pnl(row.pnl),
            f"{row.score}%",
            ", ".join(row.tags) or "-",
            "✓" if row.has_notes else "-",
        )
        total_pnl += row.pnl

    console.print(table)
    console.print(f"\n[bold]Total P&L:[/bold] {_format_pnl(total_pnl)}")
