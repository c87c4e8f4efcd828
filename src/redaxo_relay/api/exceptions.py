"""Exceptions for talking to the Redaxo backend.

Internally most of them travel as return values (``Envelope | RedaxoError``);
whether they are finally raised or only logged is decided by the
authenticator's error-reporting policy.
"""

from enum import Enum

from redaxo_relay.api.models import LoginStatus


class ErrorReporting(str, Enum):
    """How the authenticator reports failures."""

    THROW = "throw"
    RETURN = "return"


class RedaxoError(Exception):
    """Base exception for Redaxo backend errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(RedaxoError):
    """Network, DNS or TLS failure while talking to the backend."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        headers: list[tuple[str, str]] | None = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.headers = headers or []


class EmptyResponseError(RedaxoError):
    """The backend answered with an empty body."""


class UnexpectedRedirectError(RedaxoError):
    """Redirect that is not followed (absolute location or too many hops)."""

    def __init__(self, message: str, location: str | None = None):
        super().__init__(message)
        self.location = location


class CsrfMismatchError(RedaxoError):
    """The backend still rejected the CSRF token after a resend."""


class ScrapeError(RedaxoError):
    """The HTML returned by the backend does not have the expected shape."""


class SessionPersistError(RedaxoError):
    """The session store is closed and cannot take the login state."""


class CredentialsUnavailableError(RedaxoError):
    """The portal could not hand out the credentials of the current user."""


class LoginError(RedaxoError):
    """Logging into the backend failed.

    The rendered message carries the user id and the login status at the
    time of the failure.
    """

    def __init__(
        self,
        message: str,
        user_id: str | None = None,
        login_status: LoginStatus | None = None,
    ):
        self.original_message = message
        self.user_id = user_id
        self.login_status = login_status or LoginStatus.UNKNOWN
        super().__init__(self._render())

    def _render(self) -> str:
        return f"{self.original_message} (user: {self.user_id}, login-status: {self.login_status.value})"

    def __str__(self) -> str:
        return self._render()
