"""Login state machine relaying a Redaxo backend session to a portal user.

The authenticator keeps the backend's session cookies on behalf of one portal
user, keeps track of whether they still grant access, and logs in again with
the user's portal credentials when they do not. Every request to the backend
goes through ``send_request``.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
)

from redaxo_relay.api.cookies import CookieJar
from redaxo_relay.api.csrf import LOGIN_KEY, CsrfTokenStore
from redaxo_relay.api.exceptions import (
    CredentialsUnavailableError,
    CsrfMismatchError,
    EmptyResponseError,
    ErrorReporting,
    LoginError,
    RedaxoError,
    SessionPersistError,
    UnexpectedRedirectError,
)
from redaxo_relay.api.models import Envelope, LoginStatus
from redaxo_relay.api.transport import ExternalEndpoint, HttpTransport
from redaxo_relay.auth.credentials import CredentialSource
from redaxo_relay.auth.session_store import SessionRecord, SessionStore
from redaxo_relay.config import Settings
from redaxo_relay.dialects import CmsDialect, get_dialect

logger = logging.getLogger(__name__)

REDIRECT_CODES = (301, 302, 303)
MAX_REDIRECTS = 10


class Authenticator:
    """Session state machine for one portal user.

    States are UNKNOWN, LOGGED_IN and LOGGED_OUT. The status changes only by
    classifying a backend page, or falls back to UNKNOWN when the cookies are
    cleaned or the stored session is unusable.
    """

    def __init__(
        self,
        settings: Settings,
        session_store: SessionStore,
        credential_source: CredentialSource,
        user_id: str | None = None,
        dialect: CmsDialect | None = None,
        transport: HttpTransport | None = None,
        outgoing_headers: list[str] | None = None,
    ):
        self.settings = settings
        self.session_store = session_store
        self.credential_source = credential_source
        self.user_id = user_id
        self.dialect = dialect or get_dialect(settings.dialect)
        self.app_name = settings.app_name
        self.relogin_delay = settings.relogin_delay
        self.enable_ssl_verify = settings.enable_ssl_verify

        # Set-Cookie lines queued on the response to the portal user
        self.outgoing_headers = outgoing_headers if outgoing_headers is not None else []

        self.cookie_jar = CookieJar(
            self.dialect.cookie_pattern,
            bootstrap_cookie=self.dialect.bootstrap_cookie,
            keep_last_only=self.dialect.keep_last_cookie_only,
        )
        self.csrf = CsrfTokenStore(self.dialect.csrf_field)

        self._error_reporting = ErrorReporting.RETURN
        self._login_status = LoginStatus.UNKNOWN
        self._login_timestamp = 0.0

        self.endpoint: ExternalEndpoint | None = None
        self.transport: HttpTransport | None = None
        if transport is not None:
            self.endpoint = transport.endpoint
            self.transport = transport
        elif settings.external_location:
            self._use_endpoint(
                ExternalEndpoint.from_location(settings.external_location, settings.portal_base_url)
            )

        self.restore_login_status()

    def __enter__(self) -> "Authenticator":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP connection to the backend."""
        if self.transport is not None:
            self.transport.close()

    def _use_endpoint(self, endpoint: ExternalEndpoint) -> None:
        self.close()
        self.endpoint = endpoint
        self.transport = HttpTransport(
            endpoint,
            verify=self.enable_ssl_verify,
            timeout=self.settings.timeout,
        )

    def external_url(self, location: str | None = None) -> str | None:
        """Base URL of the backend, for use with an iframe or object tag.

        Args:
            location: New location to switch to, absolute or portal-relative

        Raises:
            ValueError: If the new location is unusable
        """
        if location:
            self._use_endpoint(ExternalEndpoint.from_location(location, self.settings.portal_base_url))
        if self.endpoint is None:
            return None
        return self.endpoint.url

    # Error reporting

    def error_reporting(self, how: ErrorReporting | str | None = None) -> ErrorReporting:
        """Query and optionally change the error reporting policy.

        Returns:
            The policy in effect before the call

        Raises:
            ValueError: If ``how`` names no policy
        """
        previous = self._error_reporting
        if how is not None:
            self._error_reporting = ErrorReporting(how)
        return previous

    @contextmanager
    def reporting(self, how: ErrorReporting | str) -> Iterator["Authenticator"]:
        """Temporarily switch the error reporting policy."""
        previous = self.error_reporting(how)
        try:
            yield self
        finally:
            self.error_reporting(previous)

    def handle_error(self, error: RedaxoError, result: Any = None) -> Any:
        """Raise or log ``error`` according to the reporting policy.

        With THROW every failure surfaces as a LoginError carrying the user id
        and the login status at the time of the failure, chained to the
        original error.

        Returns:
            ``result`` under the RETURN policy
        """
        if self._error_reporting is ErrorReporting.THROW:
            if isinstance(error, LoginError):
                raise error
            raise LoginError(error.message, self.user_id, self._login_status) from error
        if isinstance(error, LoginError):
            logger.error(str(error))
        else:
            logger.error(f"{type(error).__name__}: {error.message}")
        return result

    # Login state

    def login(self, user: str, password: str) -> bool:
        """Log into the backend, dropping any previous backend session.

        Returns:
            True if the backend reports the user as logged in afterwards
        """
        if self.is_logged_in():
            self.logout()
        else:
            self.cookie_jar.clean()

        envelope = self.send_request(
            self.dialect.landing_path,
            self.dialect.login_form(user, password),
            csrf_key=LOGIN_KEY,
        )
        self.update_login_status(envelope, force_update=True)

        if self._login_status is LoginStatus.LOGGED_IN:
            logger.info(f"Logged into the backend as {user}")
            return True
        logger.info(f"Login of {user} failed, status is {self._login_status.value}")
        return False

    def logout(self) -> bool:
        """Log out from the backend, then drop the auth cookies."""
        envelope = self.send_request(self.dialect.logout_path)
        self.update_login_status(envelope, force_update=True)
        self.cookie_jar.clean()
        return self._login_status is LoginStatus.LOGGED_OUT

    def ensure_logged_in(self, force_update: bool = False) -> bool:
        """Make sure the backend session is usable, logging in if needed.

        On a fresh login the status is persisted and the cookies are emitted
        immediately.

        Returns:
            True if logged in, False under the RETURN policy otherwise

        Raises:
            LoginError: Under the THROW policy if the login fails
        """
        if self.is_logged_in(force_update):
            return True

        try:
            credentials = self.credential_source.login_credentials()
        except CredentialsUnavailableError as e:
            return self.handle_error(e, result=False)

        if self.user_id is None:
            self.user_id = credentials.user_id

        if not self.login(credentials.user_id, credentials.password):
            error = LoginError(
                "Unable to log into Redaxo backend", credentials.user_id, self._login_status
            )
            return self.handle_error(error, result=False)

        self.persist_login_status()
        self.emit_auth_headers()
        return True

    def is_logged_in(self, force_update: bool = False) -> bool:
        self.update_login_status(force_update=force_update)
        return self._login_status is LoginStatus.LOGGED_IN

    def login_status(self) -> LoginStatus:
        self.update_login_status()
        return self._login_status

    def refresh(self) -> bool:
        """Keep the backend session alive, but never start a new one."""
        if self._login_status is LoginStatus.LOGGED_IN:
            logger.debug(f"Refreshing login for user {self.user_id}")
            return self.is_logged_in(True)
        logger.debug(f"Not refreshing, user {self.user_id} not logged in")
        return False

    def update_login_status(
        self, envelope: Envelope | None = None, force_update: bool = False
    ) -> LoginStatus:
        """Classify a backend page to determine the login status.

        Without a page the landing page is fetched, unless the known status
        is recent enough (within the relogin delay) and cookies are present.
        """
        if (
            envelope is None
            and self._login_status is not LoginStatus.UNKNOWN
            and len(self.cookie_jar) > 0
            and time.time() - self._login_timestamp <= self.relogin_delay
            and not force_update
        ):
            return self._login_status

        if envelope is None:
            envelope = self.send_request(self.dialect.landing_path)

        self._login_status = LoginStatus.UNKNOWN
        if envelope is not None:
            self._login_status = self.dialect.classify(envelope.content)
        else:
            logger.info("Empty response while probing the login status")
        self._login_timestamp = time.time()

        logger.debug(f"Login status of {self.user_id}: {self._login_status.value}")
        return self._login_status

    # Session persistence

    def persist_login_status(self) -> None:
        """Write the login state to the portal session."""
        if self.session_store.is_closed():
            logger.warning("Session is already closed, unable to persist login status")
            return
        record = SessionRecord(
            auth_headers=self.cookie_jar.headers,
            login_status=self._login_status,
            login_timestamp=self._login_timestamp,
            csrf_tokens=self.csrf.tokens,
        )
        try:
            self.session_store.set(self.app_name, record.to_dict())
        except SessionPersistError as e:
            logger.error(f"Unable to persist login status to the session: {e.message}")

    def restore_login_status(self) -> None:
        """Reset the state, then load it from the portal session if possible."""
        self.cookie_jar.clean()
        self._login_status = LoginStatus.UNKNOWN

        data = self.session_store.get(self.app_name)
        if not data:
            return
        record = SessionRecord.from_dict(data, self.dialect.cookie_pattern)
        if record is None:
            logger.error("Unable to load login status from session data")
            return

        self._login_timestamp = record.login_timestamp
        self._login_status = record.login_status
        self.cookie_jar.restore(record.auth_headers)
        self.csrf = CsrfTokenStore(self.dialect.csrf_field, record.csrf_tokens)
        logger.debug(f"Restored login status {record.login_status.value} with cookies {sorted(record.auth_cookies)}")

    def emit_auth_headers(self) -> list[str]:
        """Queue the backend cookies on the response to the portal user."""
        return self.cookie_jar.emit(self.outgoing_headers)

    # Requests

    def _is_csrf_mismatch(self, result: Envelope | RedaxoError) -> bool:
        return isinstance(result, Envelope) and self.csrf.is_mismatch(result.document)

    def _csrf_retry_exhausted(self, retry_state: RetryCallState) -> Envelope | RedaxoError:
        result = retry_state.outcome.result()
        error = CsrfMismatchError(
            f"CSRF token still rejected after {retry_state.attempt_number} attempts: {result.request}"
        )
        return self.handle_error(error, result=result)

    def send_request(
        self, path: str, data: dict | None = None, csrf_key: str | None = None
    ) -> Envelope | None:
        """Send a request, resending it once if the CSRF token was rejected.

        A second rejection is reported as CsrfMismatchError; under the RETURN
        policy its page is returned as is.

        Returns:
            The envelope, or None under the RETURN policy on failure
        """
        retrying = Retrying(
            stop=stop_after_attempt(2),
            retry=retry_if_result(self._is_csrf_mismatch),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            retry_error_callback=self._csrf_retry_exhausted,
        )
        result = retrying(self.do_send_request, path, data, csrf_key)
        if isinstance(result, RedaxoError):
            return self.handle_error(result)
        return result

    def do_send_request(
        self,
        path: str,
        data: dict | None = None,
        csrf_key: str | None = None,
        redirects: int = 0,
    ) -> Envelope | RedaxoError:
        """Send one request, following relative redirects.

        GET without ``data``, POST otherwise. Cookies set by any response on
        the way are absorbed, and the final page is scanned for CSRF tokens.
        """
        if self.transport is None or self.endpoint is None:
            return RedaxoError("The location of the Redaxo backend is not configured")

        method = "POST" if data else "GET"
        params, query_token = self.csrf.attach(data or {}, csrf_key)

        result = self.transport.send(
            path,
            method=method,
            data=params,
            cookies=self.cookie_jar.serialize(),
            query_token=query_token,
        )
        if isinstance(result, RedaxoError):
            return result
        response: httpx.Response = result

        self.cookie_jar.absorb(response.headers.get_list("set-cookie"))

        location = response.headers.get("location")
        if response.status_code in REDIRECT_CODES and location:
            logger.debug(f"Redirect status {response.status_code} to {location}")
            if location.startswith("http"):
                return UnexpectedRedirectError(
                    f"Refusing to follow absolute location header: {location}", location
                )
            if redirects >= MAX_REDIRECTS:
                return UnexpectedRedirectError(f"Too many redirects, last location: {location}", location)
            return self.do_send_request(self.endpoint.relative_path(location), redirects=redirects + 1)

        content = response.text
        if not content:
            return EmptyResponseError(f"Empty result for {path}")

        envelope = Envelope.from_content(
            request=path,
            content=content,
            status_code=response.status_code,
            response_headers=list(response.headers.multi_items()),
        )
        self.csrf.scan(envelope.document)
        return envelope
