"""Main CLI entry point for WeekJournal.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import importlib
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """Click group whose subcommands live in modules imported on first use.

    Each command name maps to the module defining it. The module is only
    imported when the command is invoked or its help is shown.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(set(super().list_commands(ctx)) | set(self._lazy_subcommands))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        command = super().get_command(ctx, cmd_name)
        if command is None and cmd_name in self._lazy_subcommands:
            command = self._import_command(cmd_name)
            self.add_command(command)
        return command

    def _import_command(self, cmd_name: str) -> click.Command:
        """Find the command registered under ``cmd_name`` in its module.

        Function names differ from command names for hyphenated commands
        and for names that shadow builtins, such as ``import_``.
        """
        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)
        for value in vars(module).values():
            if isinstance(value, click.Command) and value.name == cmd_name:
                return value
        raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")


# Define lazy subcommands mapping
LAZY_SUBCOMMANDS = {
    # Account
    "login": "weekjournal.cli.auth",
    "logout": "weekjournal.cli.auth",
    "signup": "weekjournal.cli.auth",
    "reset-password": "weekjournal.cli.auth",
    "whoami": "weekjournal.cli.auth",
    # Weekly journal
    "week": "weekjournal.cli.week",
    "note": "weekjournal.cli.week",
    "check": "weekjournal.cli.week",
    "tag": "weekjournal.cli.week",
    "import-trades": "weekjournal.cli.week",
    "screenshot": "weekjournal.cli.week",
    "history": "weekjournal.cli.week",
    # Checklist
    "checks": "weekjournal.cli.checks",
    # Backup
    "export": "weekjournal.cli.backup",
    "import": "weekjournal.cli.backup",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="weekjournal")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """WeekJournal - weekly trading journal for the command line.

    Record weekly notes, checklist answers, tags and screenshots,
    import broker trade logs, and keep everything synced to your
    account.

    \b
    Quick Start:
      weekjournal signup               # Create an account
      weekjournal login                # Sign in
      weekjournal note "Patient week"  # Write this week's notes
      weekjournal import-trades h.csv  # Import this week's trades
      weekjournal week                 # Show this week
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # Ensure context object exists for passing data between commands
    ctx.ensure_object(dict)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
