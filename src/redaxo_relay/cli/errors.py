"""User-friendly error messages with actionable suggestions."""

from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel

from redaxo_relay.api.exceptions import (
    CredentialsUnavailableError,
    CsrfMismatchError,
    EmptyResponseError,
    LoginError,
    RedaxoError,
    ScrapeError,
    TransportError,
    UnexpectedRedirectError,
)


@dataclass
class ErrorInfo:
    """Structured error information for display."""

    title: str
    message: str
    suggestion: str
    command: str | None = None


ERROR_MESSAGES = {
    "login_failed": ErrorInfo(
        title="Login failed",
        message="The Redaxo backend did not accept the login.",
        suggestion="Check user name and password, then log in again",
        command="redaxo-relay login",
    ),
    "credentials": ErrorInfo(
        title="No credentials",
        message="No login credentials are available for the backend.",
        suggestion="Log in explicitly to enter them",
        command="redaxo-relay login",
    ),
    "network_error": ErrorInfo(
        title="Connection failed",
        message="Could not connect to the Redaxo backend.",
        suggestion="Check the configured location and your network connection.",
        command="redaxo-relay config show",
    ),
    "redirect": ErrorInfo(
        title="Unexpected redirect",
        message="The backend redirected to another site or kept redirecting.",
        suggestion="Configure the final backend URL, including scheme and path.",
        command="redaxo-relay config set external_location <url>",
    ),
    "empty_response": ErrorInfo(
        title="Empty response",
        message="The backend answered with an empty page.",
        suggestion="Check whether the configured location really points to a Redaxo backend.",
        command=None,
    ),
    "csrf": ErrorInfo(
        title="Request rejected",
        message="The backend rejected the form token twice.",
        suggestion="Log out and log in again to start a fresh backend session.",
        command="redaxo-relay logout && redaxo-relay login",
    ),
    "scrape": ErrorInfo(
        title="Unexpected page",
        message="A backend page did not have the expected layout.",
        suggestion="Check that the configured dialect matches the Redaxo version.",
        command="redaxo-relay config set dialect redaxo4",
    ),
    "not_configured": ErrorInfo(
        title="Not configured",
        message="The location of the Redaxo backend is not configured.",
        suggestion="Set the backend URL first",
        command="redaxo-relay config set external_location https://cms.example.org/redaxo",
    ),
    "unknown": ErrorInfo(
        title="Unexpected error",
        message="An unexpected error occurred.",
        suggestion="If this keeps happening, log out and log in again.",
        command="redaxo-relay logout && redaxo-relay login",
    ),
}


def get_error_type(error: Exception) -> str:
    """Determine error type from exception.

    Login errors raised under the THROW policy wrap the actual failure.
    """
    if isinstance(error, LoginError) and isinstance(error.__cause__, RedaxoError):
        error = error.__cause__

    if isinstance(error, CredentialsUnavailableError):
        return "credentials"
    elif isinstance(error, LoginError):
        return "login_failed"
    elif isinstance(error, TransportError):
        return "network_error"
    elif isinstance(error, UnexpectedRedirectError):
        return "redirect"
    elif isinstance(error, EmptyResponseError):
        return "empty_response"
    elif isinstance(error, CsrfMismatchError):
        return "csrf"
    elif isinstance(error, ScrapeError):
        return "scrape"

    if "not configured" in str(error).lower():
        return "not_configured"

    return "unknown"


def format_error(
    error: Exception,
    console: Console,
    verbose: bool = False,
) -> None:
    """Format and display a user-friendly error message."""
    error_type = get_error_type(error)
    info = ERROR_MESSAGES.get(error_type, ERROR_MESSAGES["unknown"])

    content_lines = [
        f"[white]{info.message}[/white]",
        "",
        f"[yellow]Suggestion:[/yellow] {info.suggestion}",
    ]

    if info.command:
        content_lines.append("")
        content_lines.append(f"[cyan]{info.command}[/cyan]")

    # Show technical details in verbose mode
    if verbose:
        content_lines.append("")
        content_lines.append("[dim]" + "-" * 40 + "[/dim]")
        content_lines.append(f"[dim]Type: {type(error).__name__}[/dim]")
        content_lines.append(f"[dim]Details: {error}[/dim]")

    console.print()
    console.print(Panel(
        "\n".join(content_lines),
        title=f"[red bold]Error: {info.title}[/red bold]",
        border_style="red",
        padding=(1, 2),
    ))
    console.print()


def format_success(
    message: str,
    console: Console,
    details: str | None = None,
) -> None:
    """Format a success message."""
    content = f"[white]{message}[/white]"
    if details:
        content += f"\n\n[dim]{details}[/dim]"

    console.print(Panel(
        content,
        title="[green bold]Done[/green bold]",
        border_style="green",
        padding=(0, 2),
    ))


def format_warning(
    message: str,
    console: Console,
    suggestion: str | None = None,
) -> None:
    """Format a warning message."""
    content = f"[white]{message}[/white]"
    if suggestion:
        content += f"\n\n[yellow]Tip:[/yellow] {suggestion}"

    console.print(Panel(
        content,
        title="[yellow bold]Note[/yellow bold]",
        border_style="yellow",
        padding=(0, 2),
    ))
