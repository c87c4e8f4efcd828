"""Redaxo 4 backend markup, scraped with regular expressions."""

import logging
import re

from bs4 import BeautifulSoup

from redaxo_relay.api.exceptions import ScrapeError
from redaxo_relay.api.models import ArticleRecord, Category, Envelope, Module, Template
from redaxo_relay.dialects.base import CmsDialect, normalize_id_spec

logger = logging.getLogger(__name__)

# One article row of the structure page:
#
# <td class="rex-icon">
#   <a class="rex-i-element rex-i-article" href="index.php?page=content&amp;article_id=76&amp;category_id=75&amp;mode=edit&amp;clang=0">
#     <span class="rex-i-element-text">blah2014</span>
#   </a>
# </td>
# <td class="rex-small">76</td>
# <td><a href="index.php?page=content&amp;article_id=76&amp;category_id=75&amp;mode=edit&amp;clang=0">blah2014</a></td>
# <td>1</td>
# <td>Default</td>
ARTICLE_ROW_RE = re.compile(
    r'<td\s+class="rex-icon">\s*'
    r'<a\s+class="rex-i-element\s+rex-i-article"\s+'
    r'href="index.php\?page=content[^"]*'
    r'article_id=(?P<article_id>[0-9]+)[^"]*'
    r'category_id=(?P<category_id>[0-9]+)[^"]*">\s*'
    r'<span[^>]*>\s*(?P<icon_name>[^<]*?)\s*</span>\s*</a>\s*'
    r'</td>\s*'
    r'<td\s+class="rex-small">\s*'
    r'[0-9]+\s*'
    r'</td>\s*'
    r'<td>\s*'
    r'<a\s+href="index.php\?page=content[^"]*'
    r'article_id=[0-9]+[^"]*'
    r'category_id=[0-9]+[^"]*">\s*'
    r'(?P<article_name>[^<]*?)\s*</a>\s*'
    r'</td>\s*'
    r'<td>\s*(?P<priority>[0-9]+)\s*</td>\s*'
    r'<td>\s*(?P<template_name>[^<]+?)\s*</td>',
    re.IGNORECASE | re.DOTALL,
)


class Redaxo4Dialect(CmsDialect):
    """Redaxo 4.x: no CSRF tokens, table rows without data attributes."""

    name = "redaxo4"

    cookie_pattern = r"(?:KEY_)?(?:PHP)?SESSID|(?:KEY_)?redaxo_sessid"
    bootstrap_cookie = None
    keep_last_cookie_only = False

    csrf_field = None

    clang = 0
    logged_out_re = re.compile(r"<form.+loginformular", re.IGNORECASE | re.MULTILINE)
    login_javascript = 1

    def is_move_confirmed(self, envelope: Envelope, dest_category_id: int) -> bool:
        """The redirect after a move carries the localized status notice.

        Reading the category back right away races with the backend, the
        notice in the final request URI does not.
        """
        logger.debug(f"Latest request URI after move: {envelope.request}")
        return self.moved_by_notice(envelope)

    def parse_categories(self, document: BeautifulSoup, parent_id: int, level: int) -> list[Category]:
        raise ScrapeError("Category listing is not supported for Redaxo 4 backends")

    def parse_templates(self, document: BeautifulSoup) -> list[Template]:
        raise ScrapeError("Template listing is not supported for Redaxo 4 backends")

    def parse_modules(self, document: BeautifulSoup) -> list[Module]:
        raise ScrapeError("Module listing is not supported for Redaxo 4 backends")

    def filter_articles(
        self, id_spec: int | str | list, name_re: str, envelope: Envelope
    ) -> list[ArticleRecord]:
        wanted_ids = normalize_id_spec(id_spec)
        name_pattern = re.compile(name_re)

        articles = []
        for match in ARTICLE_ROW_RE.finditer(envelope.content):
            article_id = int(match.group("article_id"))
            if wanted_ids is not None and article_id not in wanted_ids:
                continue
            name = match.group("article_name")
            if not name_pattern.search(name):
                continue
            article = ArticleRecord(
                article_id=article_id,
                category_id=int(match.group("category_id")),
                article_name=name,
                priority=int(match.group("priority")),
                template_name=match.group("template_name").strip(),
            )
            logger.debug(f"Got article: {article}")
            articles.append(article)

        articles.sort(key=lambda article: article.article_id)
        return articles

    def find_next_chunk(self, document: BeautifulSoup) -> int:
        # Redaxo 4 lists all articles of a category on one page.
        return -1
