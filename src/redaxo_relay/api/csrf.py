"""Per-operation CSRF tokens scraped from backend pages."""

import logging
import re
from collections.abc import Iterator
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

LOGIN_KEY = "login"

# Hidden field naming the action a form or row is about.
ACTION_FIELD = "rex-api-call"

ALERT_SELECTOR = ".alert, .rex-message, .rex-warning, .rex-error, .rex-info-error"

_ASSIGNMENT_RE = re.compile(r"([\w-]+)=([^&'\"\s]*)")


class CsrfTokenStore:
    """Latest known CSRF token per operation.

    A token is only ever sent along with the operation it was scraped for.
    A store without ``field_name`` is inert (backends without CSRF checks).
    """

    def __init__(self, field_name: str | None, tokens: dict[str, str] | None = None):
        self.field_name = field_name
        self._tokens: dict[str, str] = dict(tokens or {})

    @property
    def tokens(self) -> dict[str, str]:
        return dict(self._tokens)

    @property
    def enabled(self) -> bool:
        return self.field_name is not None

    def has_token(self, key: str) -> bool:
        return key in self._tokens

    def invalidate(self, key: str | None = None) -> None:
        """Forget one token, or all of them."""
        if key is None:
            self._tokens.clear()
        else:
            self._tokens.pop(key, None)

    def scan(self, document: BeautifulSoup | None, content: str = "") -> list[str]:
        """Update the store from a response.

        The strategies are tried in order; a key found by an earlier strategy
        is not overwritten by a later one. Keys not found keep their token.

        Returns:
            The operation keys that were updated
        """
        if not self.enabled:
            return []
        if document is None:
            document = BeautifulSoup(content, "html.parser")

        found: dict[str, str] = {}
        for strategy in (
            self._from_login_form,
            self._from_marked_fields,
            self._from_onclick,
            self._from_hrefs,
        ):
            for key, token in strategy(document):
                found.setdefault(key, token)

        if found:
            logger.debug(f"CSRF tokens updated for {sorted(found)}")
        self._tokens.update(found)
        return list(found)

    def _from_login_form(self, document: BeautifulSoup) -> Iterator[tuple[str, str]]:
        for form in document.find_all("form"):
            marker = " ".join([form.get("id", "")] + list(form.get("class", [])))
            if "rex-form-login" not in marker:
                continue
            field = form.find("input", attrs={"name": self.field_name})
            if field is not None and field.get("value"):
                yield LOGIN_KEY, field["value"]

    def _from_marked_fields(self, document: BeautifulSoup) -> Iterator[tuple[str, str]]:
        for container in document.select("tr.mark, form"):
            action = container.find("input", attrs={"name": ACTION_FIELD})
            field = container.find("input", attrs={"name": self.field_name})
            if action is None or field is None:
                continue
            if action.get("value") and field.get("value"):
                yield action["value"], field["value"]

    def _from_onclick(self, document: BeautifulSoup) -> Iterator[tuple[str, str]]:
        for element in document.find_all(attrs={"onclick": True}):
            values = dict(_ASSIGNMENT_RE.findall(element["onclick"]))
            if values.get(ACTION_FIELD) and values.get(self.field_name):
                yield values[ACTION_FIELD], values[self.field_name]

    def _from_hrefs(self, document: BeautifulSoup) -> Iterator[tuple[str, str]]:
        for anchor in document.find_all("a", href=True):
            query = parse_qs(urlsplit(anchor["href"]).query)
            action = query.get(ACTION_FIELD)
            token = query.get(self.field_name)
            if action and token:
                yield action[0], token[0]

    def attach(self, params: dict, key: str | None) -> tuple[dict, tuple[str, str] | None]:
        """Add the token for ``key`` to a request.

        Returns:
            The (copied) form parameters and the (name, token) pair that also
            goes into the query string, or None if no token is known
        """
        params = dict(params)
        if not self.enabled or key is None or key not in self._tokens:
            return params, None
        token = self._tokens[key]
        params[self.field_name] = token
        return params, (self.field_name, token)

    def is_mismatch(self, document: BeautifulSoup) -> bool:
        """Check whether the page reports a rejected CSRF token."""
        if not self.enabled:
            return False
        return any(
            "csrf" in alert.get_text().lower()
            for alert in document.select(ALERT_SELECTOR)
        )
