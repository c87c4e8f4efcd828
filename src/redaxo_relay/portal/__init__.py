"""Integration points for the portal hosting the backend frame."""

from redaxo_relay.portal.controllers import (
    FrameContext,
    admin_set,
    refresh_endpoint,
    render_frame,
)
from redaxo_relay.portal.listeners import (
    PortalRequest,
    on_user_logged_in,
    on_user_logged_out,
    should_ignore_request,
)

__all__ = [
    "FrameContext",
    "PortalRequest",
    "admin_set",
    "on_user_logged_in",
    "on_user_logged_out",
    "refresh_endpoint",
    "render_frame",
    "should_ignore_request",
]
