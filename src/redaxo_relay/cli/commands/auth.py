"""Authentication CLI commands."""

from datetime import datetime
from typing import Annotated

import typer
from rich.console import Console

from redaxo_relay.api.models import LoginStatus
from redaxo_relay.auth.credentials import PromptCredentialSource
from redaxo_relay.cli.errors import format_success, format_warning
from redaxo_relay.cli.utils import backend_session, handle_relay_errors

console = Console()

UserOption = Annotated[
    str | None,
    typer.Option("--user", "-u", help="Redaxo user name"),
]

STATUS_STYLES = {
    LoginStatus.LOGGED_IN: "[green]logged in[/green]",
    LoginStatus.LOGGED_OUT: "[yellow]logged out[/yellow]",
    LoginStatus.UNKNOWN: "[red]unknown[/red]",
}


@handle_relay_errors
def status(
    user: UserOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Probe the backend even if the status is recent"),
    ] = False,
):
    """Show the login status of the stored backend session."""
    with backend_session(user) as auth:
        login_status = auth.update_login_status(force_update=force)
        console.print(f"Backend: [cyan]{auth.external_url()}[/cyan]")
        console.print(f"Status: {STATUS_STYLES[login_status]}")
        cookies = sorted(auth.cookie_jar.cookies)
        console.print(f"Cookies: {', '.join(cookies) if cookies else '[dim]none[/dim]'}")
        if auth.csrf.tokens:
            console.print(f"[dim]CSRF tokens for: {', '.join(sorted(auth.csrf.tokens))}[/dim]")


@handle_relay_errors
def do_login(user: UserOption = None):
    """
    Log into the Redaxo backend.

    The password is prompted for and never stored; only the backend session
    cookies are kept in the system keychain. Without --user the session goes
    to the default slot that all commands without --user share.
    """
    credentials = PromptCredentialSource(user).login_credentials()
    with backend_session(user) as auth:
        auth.user_id = credentials.user_id
        with console.status("[bold blue]Logging in...", spinner="dots"):
            success = auth.login(credentials.user_id, credentials.password)
        if not success:
            format_warning(
                f"Login of {credentials.user_id} failed, status is {auth.login_status().value}.",
                console,
                suggestion="Check user name and password",
            )
            raise typer.Exit(1)
        format_success(
            f"Logged in as {credentials.user_id}",
            console,
            details=f"at {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        )


@handle_relay_errors
def do_logout(user: UserOption = None):
    """Log out from the backend and remove the stored session."""
    with backend_session(user) as auth:
        logged_out = auth.logout()
    auth.session_store.delete(auth.app_name)

    if logged_out:
        format_success("Logged out.", console)
    else:
        format_warning("The backend did not confirm the logout.", console)


@handle_relay_errors
def do_refresh(user: UserOption = None):
    """
    Keep the backend session alive.

    Does nothing unless logged in; use this from a timer.
    """
    with backend_session(user) as auth:
        if auth.refresh():
            console.print("[green]✓[/green] Session refreshed")
        else:
            console.print("[yellow]Not logged in, nothing refreshed[/yellow]")
            raise typer.Exit(1)
