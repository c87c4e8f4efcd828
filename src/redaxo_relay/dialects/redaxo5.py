"""Redaxo 5 backend markup, scraped through the DOM."""

import logging
import re
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup, Tag

from redaxo_relay.api.csrf import ACTION_FIELD
from redaxo_relay.api.exceptions import ScrapeError
from redaxo_relay.api.models import ArticleRecord, Category, Envelope, Module, Template
from redaxo_relay.dialects.base import CmsDialect, normalize_id_spec

logger = logging.getLogger(__name__)

_ARTSTART_RE = re.compile(r"artstart=([0-9]+)")


def _category_id(href: str) -> int | None:
    values = parse_qs(urlsplit(href).query).get("category_id")
    if values and values[0].isdigit():
        return int(values[0])
    return None


def _category_from_anchors(element: Tag) -> int | None:
    """The category id is contained in various href attributes."""
    for anchor in element.find_all("a", href=True):
        category_id = _category_id(anchor["href"])
        if category_id is not None:
            return category_id
    return None


def _int_or_none(text: str) -> int | None:
    text = text.strip()
    return int(text) if text.isdigit() else None


class Redaxo5Dialect(CmsDialect):
    """Redaxo 5.x: CSRF protected forms, bootstrap-styled tables."""

    name = "redaxo5"

    cookie_pattern = r"REX[0-9]+|(?:KEY_)?(?:PHP)?SESSID|(?:KEY_)?redaxo_sessid"
    bootstrap_cookie = "PHPSESSID"
    keep_last_cookie_only = True

    csrf_field = "_csrf_token"

    clang = 1
    logged_out_re = re.compile(r"<form.+rex-form-login", re.IGNORECASE | re.MULTILINE)
    login_javascript = 0

    def _api_call(self, form: dict, action: str) -> dict:
        form[ACTION_FIELD] = action
        return form

    def move_article_form(self, article_id: int, dest_category_id: int) -> dict:
        return self._api_call(super().move_article_form(article_id, dest_category_id), "article_move")

    def delete_article_form(self, article_id: int, category_id: int) -> dict:
        return self._api_call(super().delete_article_form(article_id, category_id), "article_delete")

    def add_article_form(self, name: str, category_id: int, template_id: int, position: int) -> dict:
        return self._api_call(
            super().add_article_form(name, category_id, template_id, position), "article_add"
        )

    def edit_article_form(
        self, article_id: int, category_id: int, name: str, template_id: int, position: int
    ) -> dict:
        return self._api_call(
            super().edit_article_form(article_id, category_id, name, template_id, position),
            "article_edit",
        )

    def is_move_confirmed(self, envelope: Envelope, dest_category_id: int) -> bool:
        """The breadcrumb of the resulting page must end in the destination."""
        breadcrumb = envelope.document.select_one("ol.breadcrumb, .rex-breadcrumb")
        if breadcrumb is None:
            raise ScrapeError("No breadcrumb found in the response to the move request")
        parent_id = None
        for anchor in breadcrumb.find_all("a", href=True):
            category_id = _category_id(anchor["href"])
            if category_id is not None:
                parent_id = category_id
        if parent_id is None:
            # Articles in the root category only link to the start page.
            parent_id = 0
        logger.debug(f"Breadcrumb parent category after move: {parent_id}")
        return parent_id == dest_category_id

    def parse_categories(self, document: BeautifulSoup, parent_id: int, level: int) -> list[Category]:
        categories = []
        for row in document.select("tr"):
            if "rex-status" not in " ".join(row.get("class", [])):
                continue
            if row.get("data-article-id"):
                # skip table of articles in this category
                continue
            category_id = None
            name = None
            for col in row.find_all("td"):
                css = " ".join(col.get("class", []))
                if "rex-table-id" in css:
                    category_id = _int_or_none(col.get_text())
                elif "rex-table-category" in css:
                    name = col.get_text(strip=True)
            if not category_id:
                continue
            categories.append(
                Category(id=category_id, name=name, parent_id=parent_id, level=level)
            )
        return categories

    def _parse_positional_rows(self, document: BeautifulSoup) -> list[tuple[int, str | None, bool]]:
        """Rows of the templates and modules tables.

        Columns are hard-coded: 0 icon, 1 id, 2 key, 3 name, 4 active,
        further columns are action buttons.
        """
        rows = []
        for row in document.select("tbody > tr"):
            cols = row.find_all("td", recursive=False)
            if len(cols) < 2:
                continue
            row_id = _int_or_none(cols[1].get_text())
            if not row_id:
                continue
            name = cols[3].get_text(strip=True) if len(cols) > 3 else None
            active = False
            if len(cols) > 4:
                active = any(
                    "rex-icon-active-true" in icon.get("class", [])
                    for icon in cols[4].find_all("i")
                )
            rows.append((row_id, name, active))
        return rows

    def parse_templates(self, document: BeautifulSoup) -> list[Template]:
        return [
            Template(id=row_id, name=name, active=active)
            for row_id, name, active in self._parse_positional_rows(document)
        ]

    def parse_modules(self, document: BeautifulSoup) -> list[Module]:
        return [
            Module(id=row_id, name=name, active=active)
            for row_id, name, active in self._parse_positional_rows(document)
        ]

    def filter_articles(
        self, id_spec: int | str | list, name_re: str, envelope: Envelope
    ) -> list[ArticleRecord]:
        wanted_ids = normalize_id_spec(id_spec)
        name_pattern = re.compile(name_re)

        articles = []
        for row in envelope.document.select("tr[data-article-id]"):
            article_id = _int_or_none(row["data-article-id"])
            if article_id is None:
                continue
            if wanted_ids is not None and article_id not in wanted_ids:
                continue

            fields: dict = {"articleId": article_id}
            for col in row.find_all("td"):
                css = " ".join(col.get("class", []))
                if "rex-table-article-name" in css:
                    fields["articleName"] = col.get_text(strip=True)
                elif "rex-table-priority" in css:
                    fields["priority"] = _int_or_none(col.get_text())
                elif "rex-table-template" in css:
                    fields["templateName"] = col.get_text(strip=True)
                if "categoryId" not in fields:
                    category_id = _category_from_anchors(col)
                    if category_id is not None:
                        fields["categoryId"] = category_id

            if not name_pattern.search(fields.get("articleName", "")):
                continue
            articles.append(ArticleRecord(**fields))

        articles.sort(key=lambda article: article.article_id)
        return articles

    def find_next_chunk(self, document: BeautifulSoup) -> int:
        pagination = document.select_one("ul.pagination")
        if pagination is None:
            return -1
        items = pagination.find_all("li", recursive=False)
        if not items:
            return -1
        next_item = items[-1]
        if "disabled" in next_item.get("class", []):
            return -1  # no next page
        anchors = next_item.find_all("a")
        if len(anchors) != 1:
            return -1
        match = _ARTSTART_RE.search(anchors[0].get("href", ""))
        if match:
            return int(match.group(1))
        return -1
