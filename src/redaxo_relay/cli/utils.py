"""CLI utility functions and decorators."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import wraps
from typing import Callable, TypeVar

import typer
from rich.console import Console

from redaxo_relay.api.exceptions import ErrorReporting, RedaxoError
from redaxo_relay.auth.authenticator import Authenticator
from redaxo_relay.auth.credentials import PromptCredentialSource
from redaxo_relay.auth.session_store import KeyringSessionStore
from redaxo_relay.cli.errors import format_error
from redaxo_relay.config import get_settings

console = Console()

F = TypeVar("F", bound=Callable)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@contextmanager
def backend_session(user: str | None = None) -> Iterator[Authenticator]:
    """Authenticator for one CLI invocation.

    The backend session lives in the OS keyring between invocations, the
    password is prompted for when a login is needed and never stored.
    """
    settings = get_settings()
    authenticator = Authenticator(
        settings,
        KeyringSessionStore(user),
        PromptCredentialSource(user),
        user_id=user,
    )
    authenticator.error_reporting(ErrorReporting.THROW)
    try:
        yield authenticator
    finally:
        authenticator.persist_login_status()
        authenticator.close()


def handle_relay_errors(f: F) -> F:
    """Decorator to handle backend errors in CLI commands.

    This decorator catches and handles:
    - RedaxoError: Shows formatted error with suggestions
    - ValueError: Shows configuration problems

    Usage:
        @app.command()
        @handle_relay_errors
        def my_command(user: str):
            ...
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RedaxoError as e:
            format_error(e, console, verbose=kwargs.get("verbose", False))
            raise typer.Exit(1)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    return wrapper  # type: ignore
