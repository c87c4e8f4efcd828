"""Sources for the login credentials of the current portal user.

Credentials are requested only when a login is needed and are dropped right
after the login attempt. They are never written anywhere.
"""

from typing import Protocol

import typer

from redaxo_relay.api.exceptions import CredentialsUnavailableError
from redaxo_relay.api.models import Credentials


class CredentialSource(Protocol):
    """The portal's store of the current user's login credentials."""

    def login_credentials(self) -> Credentials: ...


class StaticCredentialSource:
    """Credentials handed over by the portal for the current request."""

    def __init__(self, user_id: str | None = None, password: str | None = None):
        self._user_id = user_id
        self._password = password

    def login_credentials(self) -> Credentials:
        if not self._user_id or self._password is None:
            raise CredentialsUnavailableError("No login credentials available for the current request")
        return Credentials(user_id=self._user_id, password=self._password)


class PromptCredentialSource:
    """Ask on the terminal, the password with hidden input."""

    def __init__(self, user_id: str | None = None):
        self._user_id = user_id

    def login_credentials(self) -> Credentials:
        user_id = self._user_id or typer.prompt("Redaxo user")
        password = typer.prompt(f"Password for {user_id}", hide_input=True)
        return Credentials(user_id=user_id, password=password)
