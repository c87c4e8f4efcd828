"""Single-shot HTTP requests against the Redaxo backend."""

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlencode, urlsplit

import httpx

from redaxo_relay.api.exceptions import TransportError
from redaxo_relay.config import resolve_location

logger = logging.getLogger(__name__)

USER_AGENT = "redaxo-relay/0.1.0"

_PASSWORD_RE = re.compile(r"(rex_user_psw=)[^&]*(&|$)")


def mask_password(data: str) -> str:
    """Mask the login password in an encoded form body for logging."""
    return _PASSWORD_RE.sub(r"\1XXXXXX\2", data)


@dataclass(frozen=True)
class ExternalEndpoint:
    """Where the backend lives: scheme, host, optional port and base path."""

    scheme: str
    host: str
    port: int | None = None
    path: str = ""

    @classmethod
    def from_location(cls, location: str, base_url: str | None = None) -> "ExternalEndpoint":
        """Parse a configured location, resolving portal-relative paths.

        Raises:
            ValueError: If the location has no scheme or host
        """
        url = resolve_location(location, base_url)
        parts = urlsplit(url)
        if not parts.scheme or not parts.hostname:
            raise ValueError(f"Unusable external location: {location!r}")
        return cls(
            scheme=parts.scheme,
            host=parts.hostname,
            port=parts.port,
            path=parts.path.rstrip("/"),
        )

    @property
    def url(self) -> str:
        """Base URL for use with an iframe or object tag."""
        port = f":{self.port}" if self.port else ""
        return f"{self.scheme}://{self.host}{port}{self.path}"

    def relative_path(self, location: str) -> str:
        """Strip the base path from a server-absolute redirect location."""
        if self.path and location.startswith(self.path + "/"):
            return location[len(self.path):]
        return location


class HttpTransport:
    """Issue single GET/POST requests without following redirects.

    The first successful login answers with a redirect that carries the new
    session cookie, so redirects must stay visible to the caller.
    """

    def __init__(self, endpoint: ExternalEndpoint, verify: bool = True, timeout: int = 30):
        self.endpoint = endpoint
        self._client = httpx.Client(
            follow_redirects=False,
            verify=verify,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
        self._last_headers: list[tuple[str, str]] = []

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def build_url(self, path: str, query_token: tuple[str, str] | None = None) -> str:
        """Append path (and an optional token parameter) to the endpoint URL."""
        path, _, _fragment = path.partition("#")
        if path and not path.startswith("/"):
            path = "/" + path
        if query_token is not None:
            separator = "&" if "?" in path else "?"
            path += separator + urlencode([query_token])
        return self.endpoint.url + path

    def send(
        self,
        path: str,
        method: str = "GET",
        data: dict | None = None,
        cookies: str = "",
        query_token: tuple[str, str] | None = None,
    ) -> httpx.Response | TransportError:
        """Send one request.

        Args:
            path: Path relative to the endpoint, may carry a query string
            method: "GET" or "POST"
            data: Form fields for a POST
            cookies: Serialized cookie string, omitted when empty
            query_token: (name, value) appended to the query string

        Returns:
            The response, or a TransportError for network level failures
        """
        url = self.build_url(path, query_token)
        headers = {}
        if cookies:
            headers["Cookie"] = cookies
        content = None
        if method == "POST":
            content = urlencode(data or {})
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        logger.debug(f"{method} {url} data {mask_password(content or '')}")

        try:
            response = self._client.request(method, url, content=content, headers=headers)
        except httpx.TransportError as e:
            return TransportError(
                f"Request to {url} failed: {e!r}",
                cause=e,
                headers=list(self._last_headers),
            )

        self._last_headers = list(response.headers.multi_items())
        logger.debug(f"HEADERS {self._last_headers}")
        return response
