"""Hooks for the portal's user login and logout events.

Logging into the portal logs into the backend with the same credentials, so
the embedded backend pages open without a second login.
"""

import logging
from dataclasses import dataclass, field

from redaxo_relay.auth.authenticator import Authenticator

logger = logging.getLogger(__name__)


@dataclass
class PortalRequest:
    """The portal request that triggered a login or logout event."""

    method: str
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str:
        """Case-insensitive header lookup, empty if absent."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return ""


def should_ignore_request(request: PortalRequest) -> bool:
    """Only interactive logins are relayed, never API or automation traffic."""
    method = request.method.upper()
    if method not in ("GET", "POST"):
        logger.debug(f"Ignoring request with method {method}")
        return True
    if request.header("OCS-APIREQUEST") == "true":
        logger.debug("Ignoring API login")
        return True
    if request.header("Authorization").startswith("Bearer "):
        logger.debug('Ignoring API "bearer" auth')
        return True
    return False


def on_user_logged_in(
    authenticator: Authenticator, request: PortalRequest, user: str, password: str
) -> bool | None:
    """Log into the backend along with the portal.

    Returns:
        Whether the backend login succeeded, None if the request was ignored
    """
    if should_ignore_request(request):
        return None

    success = authenticator.login(user, password)
    if success:
        authenticator.emit_auth_headers()
        logger.debug(f"Redaxo login of user {user} probably succeeded.")
    else:
        logger.debug(f"Redaxo login of user {user} failed.")
    authenticator.persist_login_status()
    return success


def on_user_logged_out(authenticator: Authenticator, request: PortalRequest) -> bool | None:
    """Log out from the backend along with the portal."""
    if should_ignore_request(request):
        return None

    success = authenticator.logout()
    if success:
        authenticator.emit_auth_headers()
    authenticator.persist_login_status()
    return success
