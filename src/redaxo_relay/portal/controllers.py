"""Request handlers of the portal pages embedding the backend."""

import logging
from dataclasses import dataclass
from typing import Any

from redaxo_relay.api.exceptions import ErrorReporting, RedaxoError
from redaxo_relay.api.models import LoginStatus
from redaxo_relay.auth.authenticator import Authenticator
from redaxo_relay.config import Settings, validate_external_location, validate_refresh_interval

logger = logging.getLogger(__name__)

LOGIN_FAILED_NOTICE = "Unable to log into the external system, the embedded pages may ask for a login."


@dataclass
class FrameContext:
    """Template parameters of the page that frames the backend."""

    app_name: str
    external_url: str
    external_path: str = ""
    css_class: str = "fullscreen"
    refresh_interval: int = 600
    login_failed: bool = False
    notice: str | None = None


def render_frame(
    authenticator: Authenticator,
    settings: Settings,
    external_path: str = "",
    css_class: str = "fullscreen",
) -> FrameContext:
    """Prepare the framing page, logging into the backend first.

    A failed login does not fail the page: it is logged, the login status
    is persisted anyway and the context carries a notice.

    Raises:
        RedaxoError: If no backend location is configured
    """
    external_url = authenticator.external_url()
    if not external_url:
        raise RedaxoError(
            "Please tell a system administrator to configure the URL for the Redaxo instance"
        )

    context = FrameContext(
        app_name=settings.app_name,
        external_url=external_url,
        external_path=external_path,
        css_class=css_class,
        refresh_interval=settings.client_refresh_interval,
    )

    with authenticator.reporting(ErrorReporting.THROW):
        try:
            authenticator.ensure_logged_in(True)
            authenticator.persist_login_status()
            authenticator.emit_auth_headers()
        except RedaxoError as e:
            logger.exception(f"Unable to log into Redaxo: {e}")
            authenticator.persist_login_status()
            context.login_failed = True
            context.notice = LOGIN_FAILED_NOTICE

    return context


def refresh_endpoint(authenticator: Authenticator) -> bool:
    """Keep-alive ping issued by the browser while the page is open."""
    if not authenticator.refresh():
        logger.debug(f"Redaxo refresh for user {authenticator.user_id} failed.")
        authenticator.persist_login_status()
        return False
    authenticator.emit_auth_headers()
    logger.debug(f"Redaxo refresh for user {authenticator.user_id} probably succeeded.")
    return True


def admin_set(settings: Settings, authenticator: Authenticator, key: str, value: Any) -> dict:
    """Validate and apply one administrator setting.

    A new backend location is only accepted if the backend answers there
    with a recognizable login or profile page.

    Returns:
        The applied value and a confirmation message

    Raises:
        ValueError: If the value is invalid or the key unknown
    """
    logger.info(f"Got setting {key}: {value}")

    if key == "external_location":
        value = validate_external_location(str(value), settings.portal_base_url)
        if value:
            authenticator.external_url(value)
            if authenticator.update_login_status(force_update=True) is LoginStatus.UNKNOWN:
                raise ValueError(f"Redaxo instance does not seem to be reachable at {value}")
        settings.external_location = value or None
    elif key == "authentication_refresh_interval":
        value = validate_refresh_interval(value)
        settings.authentication_refresh_interval = value
    else:
        raise ValueError(f"Unknown setting: {key}")

    return {
        "value": value,
        "message": f"Parameter {key} set to {value}",
    }
