"""API module for redaxo-relay."""

from redaxo_relay.api.cookies import CookieJar, parse_cookie
from redaxo_relay.api.csrf import CsrfTokenStore
from redaxo_relay.api.exceptions import (
    CredentialsUnavailableError,
    CsrfMismatchError,
    EmptyResponseError,
    ErrorReporting,
    LoginError,
    RedaxoError,
    ScrapeError,
    SessionPersistError,
    TransportError,
    UnexpectedRedirectError,
)
from redaxo_relay.api.models import (
    ArticleRecord,
    Category,
    Credentials,
    Envelope,
    LoginStatus,
    Module,
    RedaxoModel,
    Template,
)
from redaxo_relay.api.transport import ExternalEndpoint, HttpTransport

__all__ = [
    # Transport
    "HttpTransport",
    "ExternalEndpoint",
    # Session state
    "CookieJar",
    "CsrfTokenStore",
    "parse_cookie",
    # Exceptions
    "ErrorReporting",
    "RedaxoError",
    "TransportError",
    "EmptyResponseError",
    "UnexpectedRedirectError",
    "ScrapeError",
    "SessionPersistError",
    "CredentialsUnavailableError",
    "CsrfMismatchError",
    "LoginError",
    # Base model
    "RedaxoModel",
    # Models
    "ArticleRecord",
    "Category",
    "Credentials",
    "Envelope",
    "LoginStatus",
    "Module",
    "Template",
]
