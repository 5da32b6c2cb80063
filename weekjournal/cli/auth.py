"""Authentication commands for WeekJournal CLI.

Handles sign-up, login/logout and password resets against the
configured backend (local SQLite or Supabase).
"""

import click
from rich.panel import Panel

from weekjournal.cli.common import console, open_app, print_error


def _ensure_config() -> None:
    """Create a template config on first use and validate it."""
    from weekjournal.config import create_template_config, load_config, validate_config

    config = load_config()
    if config is None:
        config_path = create_template_config()
        console.print(Panel(
            f"[yellow]Configuration file created at:[/yellow]\n"
            f"[cyan]{config_path}[/cyan]\n\n"
            f"The local backend is active. Set [green]backend.mode = \"supabase\"[/green]\n"
            f"and your project credentials to sync with Supabase.",
            title="[bold]Configuration Created[/bold]",
            border_style="yellow",
        ))
        return

    missing_keys = validate_config(config)
    if missing_keys:
        console.print(Panel(
            f"[red]Missing required configuration keys:[/red]\n\n"
            + "\n".join(f"  • {key}" for key in missing_keys) +
            f"\n\n[dim]Edit your config.toml to add these values.[/dim]",
            title="[bold red]Configuration Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)


@click.command()
@click.option("--email", prompt=True, help="Account email.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
def login(email: str, password: str) -> None:
    """Sign in to your journal account.

    The session is stored locally and reused by later commands until
    you log out or stay inactive longer than the idle timeout.
    """
    from weekjournal.errors import NetworkError

    _ensure_config()

    with open_app(carry_activity=False) as app:
        try:
            identity = app.gate.sign_in(email, password)
        except NetworkError as e:
            print_error("Login Failed", str(e) or "Authentication error")
            raise SystemExit(1)

        weeks = len(app.store.week_keys())
        console.print(Panel(
            f"[green]✓[/green] Signed in as [cyan]{identity.email or identity.id}[/cyan]\n\n"
            f"[dim]{weeks} journal week(s) available.[/dim]",
            title="[bold green]Login Successful[/bold green]",
            border_style="green",
        ))


@click.command()
@click.option("--email", prompt=True, help="Account email.")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password (min 6 chars).",
)
def signup(email: str, password: str) -> None:
    """Create a journal account."""
    from weekjournal.errors import NetworkError

    _ensure_config()

    with open_app(carry_activity=False) as app:
        try:
            identity = app.gate.sign_up(email, password)
        except NetworkError as e:
            print_error("Sign Up Failed", str(e) or "Authentication error")
            raise SystemExit(1)

    if identity is None:
        message = "Account created. Check your email to confirm it, then sign in."
    else:
        message = "Account created. You can sign in now."
    console.print(Panel(
        f"[green]✓[/green] {message}\n\n"
        "[dim]Run [cyan]weekjournal login[/cyan] to continue.[/dim]",
        title="[bold green]Sign Up Successful[/bold green]",
        border_style="green",
    ))


@click.command()
def logout() -> None:
    """Sign out of your journal account."""
    from weekjournal.errors import NetworkError

    with open_app(carry_activity=False) as app:
        if not app.signed_in:
            console.print("[yellow]Not signed in. Nothing to logout from.[/yellow]")
            return
        try:
            app.gate.sign_out()
        except NetworkError as e:
            console.print(Panel(
                f"[yellow]⚠[/yellow] Logout warning\n\n"
                f"[dim]{e}\n\n"
                "Local session has been cleared.[/dim]",
                title="[bold yellow]Partial Logout[/bold yellow]",
                border_style="yellow",
            ))
            return

    console.print(Panel(
        "[green]✓[/green] Session ended\n\n"
        "[dim]Local journal cache cleared.[/dim]",
        title="[bold green]Logout Successful[/bold green]",
        border_style="green",
    ))


@click.command(name="reset-password")
@click.option("--email", prompt=True, help="Account email.")
def reset_password(email: str) -> None:
    """Send a password reset email."""
    from weekjournal.errors import NetworkError

    with open_app(carry_activity=False) as app:
        try:
            app.gate.reset_password(email)
        except NetworkError as e:
            print_error("Reset Failed", str(e))
            raise SystemExit(1)

    console.print(f"[green]✓[/green] Password reset email sent to [cyan]{email}[/cyan]")


@click.command()
def whoami() -> None:
    """Show the signed-in account."""
    with open_app() as app:
        if not app.signed_in:
            console.print("[yellow]Not signed in.[/yellow]")
            raise SystemExit(1)
        console.print(f"Signed in as [cyan]{app.user.email or app.user.id}[/cyan]")
