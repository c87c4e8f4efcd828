"""Per-user session storage for the relayed login state.

The portal owns the session; the authenticator only reads it at
construction and writes it at well-defined points. Nothing stored here
contains a password.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Self

import keyring
import keyring.errors

from redaxo_relay.api.cookies import CookieJar
from redaxo_relay.api.exceptions import SessionPersistError
from redaxo_relay.api.models import LoginStatus

logger = logging.getLogger(__name__)

SERVICE_NAME = "redaxo-relay"

ANY_COOKIE = r"[^=\s;]+"


class SessionStore(Protocol):
    """What the authenticator needs from the portal's session."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def is_closed(self) -> bool: ...


@dataclass
class SessionRecord:
    """Persisted login state of one portal user.

    Only the raw Set-Cookie lines are stored, the cookie map is always
    re-derived from them.
    """

    auth_headers: list[str] = field(default_factory=list)
    login_status: LoginStatus = LoginStatus.UNKNOWN
    login_timestamp: float = 0
    csrf_tokens: dict[str, str] = field(default_factory=dict)
    auth_cookies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for the session store."""
        return {
            "authHeaders": list(self.auth_headers),
            "loginStatus": self.login_status.value,
            "loginTimeStamp": self.login_timestamp,
            "csrfTokens": dict(self.csrf_tokens),
        }

    @classmethod
    def from_dict(cls, data: dict, cookie_pattern: str = ANY_COOKIE) -> Self | None:
        """Create from session data, None if the status is not valid."""
        if not LoginStatus.is_valid(data.get("loginStatus")):
            return None
        jar = CookieJar(cookie_pattern, keep_last_only=False)
        jar.restore(list(data.get("authHeaders") or []))
        return cls(
            auth_headers=jar.headers,
            login_status=LoginStatus(data["loginStatus"]),
            login_timestamp=float(data.get("loginTimeStamp") or 0),
            csrf_tokens=dict(data.get("csrfTokens") or {}),
            auth_cookies=jar.cookies,
        )


class MemorySessionStore:
    """Dict-backed session, closed explicitly like a request-scoped session."""

    def __init__(self, data: dict | None = None):
        self.data: dict[str, Any] = dict(data or {})
        self._closed = False

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        if self._closed:
            raise SessionPersistError("Session is already closed")
        self.data[key] = value

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


class KeyringSessionStore:
    """Session storage in the OS keyring, one entry per key and user.

    Used by the command line, where every invocation is a new process but
    the backend session should survive between them.
    """

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id or "default"

    def _get_keyring_key(self, key: str) -> str:
        return f"{SERVICE_NAME}:{key}:{self.user_id}"

    def get(self, key: str) -> Any:
        data_json = keyring.get_password(SERVICE_NAME, self._get_keyring_key(key))
        if not data_json:
            return None
        try:
            return json.loads(data_json)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable session data for {key}")
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            keyring.set_password(SERVICE_NAME, self._get_keyring_key(key), json.dumps(value))
        except keyring.errors.KeyringError as e:
            raise SessionPersistError(f"Unable to store session data in the keyring: {e}") from e

    def is_closed(self) -> bool:
        return False

    def delete(self, key: str) -> bool:
        """Delete stored session data."""
        try:
            keyring.delete_password(SERVICE_NAME, self._get_keyring_key(key))
            return True
        except keyring.errors.PasswordDeleteError:
            return False
