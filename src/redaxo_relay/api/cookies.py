"""Session cookies relayed between the backend and the user's browser."""

import logging
import re

logger = logging.getLogger(__name__)

SET_COOKIE_PREFIX = "Set-Cookie: "


def parse_cookie(header: str) -> dict[str, str | bool] | None:
    """Parse a raw Set-Cookie line into its fields.

    The result maps every ``key=value`` pair (and every bare flag to True),
    including the cookie itself and all attributes. Two headers describe the
    same cookie if their parsed dicts compare equal, independent of the order
    of the attributes.

    Returns:
        Dict of fields, or None if the header is not a Set-Cookie line
    """
    header = header.strip()
    if not header.lower().startswith("set-cookie:"):
        return None
    cookie: dict[str, str | bool] = {}
    for item in header.split(":", 1)[1].split(";"):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        cookie[key.strip()] = value.strip() if sep else True
    return cookie


class CookieJar:
    """The whitelisted backend cookies of one portal session.

    Only cookie names matching ``pattern`` are considered. A response that
    sets at least one of them replaces the previous batch completely. With
    ``keep_last_only`` the batch consists of the last matching header only:
    the backend is assumed to set at most one relevant cookie per response,
    and the browser side proxies have small header limits.
    """

    def __init__(
        self,
        pattern: str,
        bootstrap_cookie: str | None = None,
        keep_last_only: bool = True,
    ):
        self._header_re = re.compile(rf"^Set-Cookie:\s*({pattern})=([^;]*)(;|$)", re.IGNORECASE)
        self.bootstrap_cookie = bootstrap_cookie
        self.keep_last_only = keep_last_only
        self._headers: list[str] = []
        self._cookies: dict[str, str] = {}

    @property
    def headers(self) -> list[str]:
        """Raw Set-Cookie lines of the current batch."""
        return list(self._headers)

    @property
    def cookies(self) -> dict[str, str]:
        """Cookie name to value, derived from the current batch."""
        return dict(self._cookies)

    def __len__(self) -> int:
        return len(self._headers)

    def match(self, header: str) -> tuple[str, str] | None:
        """Return (name, value) if the line sets a relevant cookie."""
        m = self._header_re.match(header.strip())
        if m is None:
            return None
        return m.group(1), m.group(2)

    def absorb(self, set_cookie_values: list[str]) -> bool:
        """Take over the relevant cookies of a response.

        Args:
            set_cookie_values: Values of all Set-Cookie headers of the response

        Returns:
            True if the jar was replaced
        """
        batch: list[str] = []
        for value in set_cookie_values:
            header = SET_COOKIE_PREFIX + value.strip()
            found = self.match(header)
            if found is None:
                continue
            logger.debug(f"Rex Cookie: {found[0]}={found[1]}")
            if self.keep_last_only:
                batch = [header]
            else:
                batch.append(header)
        if not batch:
            return False
        self.restore(batch)
        return True

    def restore(self, headers: list[str]) -> None:
        """Replace the jar with stored headers, re-deriving the cookie map."""
        self._headers = []
        self._cookies = {}
        for header in headers:
            found = self.match(header)
            if found is None:
                continue
            self._headers.append(header)
            self._cookies[found[0]] = found[1]

    def clean(self) -> None:
        """Drop all auth cookies, keeping only the bootstrap session cookie."""
        if self.bootstrap_cookie is None:
            self.restore([])
            return
        self.restore(
            [h for h in self._headers if self.match(h)[0] == self.bootstrap_cookie]
        )

    def serialize(self) -> str:
        """Cookie request header value for the next backend request."""
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def emit(self, outgoing: list[str]) -> list[str]:
        """Queue the current batch on the outgoing portal response.

        Headers whose parsed cookie equals one already queued are skipped.

        Args:
            outgoing: Raw Set-Cookie lines already queued, appended to in place

        Returns:
            The lines that were added
        """
        emitted = []
        for header in self._headers:
            this_cookie = parse_cookie(header)
            if any(parse_cookie(queued) == this_cookie for queued in outgoing):
                continue
            logger.debug(f"Emitting cookie {header}")
            outgoing.append(header)
            emitted.append(header)
        return emitted
