"""Remote control of the Redaxo backend by scraping its pages.

Redaxo has no API for structure edits, so every operation submits the same
forms a user would and then inspects the resulting page for a success signal.
"""

import logging
import re
from typing import TYPE_CHECKING

from redaxo_relay.api.exceptions import RedaxoError, ScrapeError
from redaxo_relay.api.models import ArticleRecord, Category, Envelope, Module, Template
from redaxo_relay.dialects.base import ANY_ID, is_single_id, normalize_id_spec

if TYPE_CHECKING:
    from redaxo_relay.auth.authenticator import Authenticator

logger = logging.getLogger(__name__)


class RemoteContentClient:
    """Categories, templates, modules and articles of the backend.

    Failures are reported through the authenticator's error policy: the
    methods either raise or return None (False for the boolean ones).
    """

    def __init__(self, authenticator: "Authenticator"):
        self.auth = authenticator
        self.dialect = authenticator.dialect

    def error_reporting(self, how=None):
        """Shortcut for the authenticator's error reporting policy."""
        return self.auth.error_reporting(how)

    def handle_error(self, error: RedaxoError | str, result=None):
        if isinstance(error, str):
            error = RedaxoError(error)
        return self.auth.handle_error(error, result=result)

    def redaxo_url(self, article_id: int | str | None = None, edit_mode: bool = False) -> str | None:
        """URL of the backend, or of an article's frontend or editor page."""
        base_url = self.auth.external_url()
        if base_url is None:
            return None
        return self.dialect.article_url(base_url, article_id, edit_mode)

    def send_request(
        self, path: str, data: dict | None = None, csrf_key: str | None = None
    ) -> Envelope | None:
        """Send a request after making sure the backend session is usable."""
        if not self.auth.ensure_logged_in():
            return self.handle_error("Not logged in.")
        return self.auth.send_request(path, data, csrf_key)

    def _fetch_token(self, key: str, probe_path: str) -> None:
        """Load a page rendering the form for ``key`` if no token is known."""
        if not self.auth.csrf.enabled or self.auth.csrf.has_token(key):
            return
        logger.debug(f"No CSRF token for {key}, probing {probe_path}")
        self.send_request(probe_path)

    def ping(self) -> bool:
        """Keep the backend session alive and re-send its cookies."""
        if self.send_request(self.dialect.landing_path) is None:
            return False
        self.auth.emit_auth_headers()
        return True

    def get_categories(self, parent_id: int = -1, level: int = 0) -> list[Category] | None:
        """All categories below ``parent_id``, flattened depth first.

        Each category lists the ids of its direct children.
        """
        envelope = self.send_request(self.dialect.structure_path(parent_id))
        if envelope is None:
            return self.handle_error("Unable to retrieve categories")

        try:
            found = self.dialect.parse_categories(envelope.document, parent_id, level)
        except ScrapeError as e:
            return self.handle_error(e)

        categories: list[Category] = []
        for category in found:
            sub_categories = self.get_categories(category.id, level + 1)
            if sub_categories is None:
                return None
            category.children = [
                child.id for child in sub_categories if child.parent_id == category.id
            ]
            categories.append(category)
            categories.extend(sub_categories)
        return categories

    def get_templates(self, only_active: bool = False) -> list[Template] | None:
        envelope = self.send_request(self.dialect.templates_path())
        if envelope is None:
            return self.handle_error("Unable to retrieve templates")
        try:
            templates = self.dialect.parse_templates(envelope.document)
        except ScrapeError as e:
            return self.handle_error(e)
        if only_active:
            templates = [template for template in templates if template.active]
        return templates

    def get_modules(self) -> list[Module] | None:
        envelope = self.send_request(self.dialect.modules_path())
        if envelope is None:
            return self.handle_error("Unable to retrieve modules")
        try:
            return self.dialect.parse_modules(envelope.document)
        except ScrapeError as e:
            return self.handle_error(e)

    def move_article(self, article_id: int, dest_category_id: int) -> bool:
        """Move an article into another category."""
        self._fetch_token("article_move", self.dialect.move_article_probe_path(article_id))
        envelope = self.send_request(
            self.dialect.landing_path,
            self.dialect.move_article_form(article_id, dest_category_id),
            csrf_key="article_move",
        )
        if envelope is None:
            return self.handle_error("Moving the article failed", result=False)

        try:
            moved = self.dialect.is_move_confirmed(envelope, dest_category_id)
        except ScrapeError as e:
            return self.handle_error(e, result=False)
        if not moved:
            return self.handle_error(
                f"Moving article {article_id} failed, latest request: {envelope.request}",
                result=False,
            )
        return True

    def delete_article(self, article_id: int, category_id: int) -> bool:
        """Delete an article, then check that the listing no longer shows it."""
        self._fetch_token("article_delete", self.dialect.structure_path(category_id))
        envelope = self.send_request(
            self.dialect.landing_path,
            self.dialect.delete_article_form(article_id, category_id),
            csrf_key="article_delete",
        )
        if envelope is None:
            return self.handle_error("Deleting the article failed", result=False)

        articles = self.articles_by_id(article_id, category_id)
        if articles is None or len(articles) > 0:
            return self.handle_error(f"Article {article_id} is still present after delete", result=False)
        return True

    def add_article(
        self, name: str, category_id: int, template_id: int, position: int = 10000
    ) -> list[ArticleRecord] | None:
        """Add an empty article.

        Returns:
            The articles of the category carrying exactly this name
        """
        self._fetch_token("article_add", self.dialect.add_article_probe_path(category_id))
        envelope = self.send_request(
            self.dialect.landing_path,
            self.dialect.add_article_form(name, category_id, template_id, position),
            csrf_key="article_add",
        )
        if envelope is None:
            return self.handle_error("Adding empty article failed")

        return self.find_articles_by_id_and_name(
            ANY_ID, f"^{re.escape(name)}$", category_id, initial_content=envelope.content
        )

    def add_article_block(self, article_id: int, block_id: int, slice_id: int = 0) -> bool:
        """Append a block of module ``block_id`` to an article.

        The block's own data fields are submitted empty.
        """
        if not article_id or not block_id:
            return self.handle_error(
                f"Empty article / block id: ({article_id} / {block_id})", result=False
            )

        envelope = self.send_request(
            self.dialect.landing_path, self.dialect.add_block_form(article_id, block_id, slice_id)
        )
        if envelope is None:
            return self.handle_error("Adding article block failed", result=False)

        slices_before = self.dialect.count_slices(envelope.content)
        if not self.dialect.has_add_slice_form(envelope.content):
            logger.debug("Adding block failed, edit form is missing")

        envelope = self.send_request(
            f"{self.dialect.landing_path}#slice{slice_id}",
            self.dialect.save_block_form(article_id, block_id, slice_id),
        )
        if envelope is None:
            return self.handle_error("Saving article block failed", result=False)

        slices_after = self.dialect.count_slices(envelope.content)
        if slices_after != slices_before + 1:
            return self.handle_error(
                f"Block count changed from {slices_before} to {slices_after} instead of by one",
                result=False,
            )
        return True

    def edit_article(
        self,
        article_id: int,
        category_id: int,
        name: str,
        template_id: int,
        position: int = 10000,
    ) -> list[ArticleRecord] | None:
        """Change name, template and priority of an article, not its content."""
        self._fetch_token("article_edit", self.dialect.structure_path(category_id))
        envelope = self.send_request(
            self.dialect.landing_path,
            self.dialect.edit_article_form(article_id, category_id, name, template_id, position),
            csrf_key="article_edit",
        )
        if envelope is None:
            return self.handle_error("Cannot load form")

        return self.find_articles_by_id_and_name(
            article_id, ".*", category_id, initial_content=envelope.content
        )

    def set_article_name(self, article_id: int, name: str) -> bool:
        """Rename an article without changing anything else."""
        envelope = self.send_request(
            self.dialect.landing_path, self.dialect.article_name_form(article_id, name)
        )
        if envelope is None:
            return self.handle_error("Unable to set article name", result=False)

        problem = self.dialect.check_article_name(envelope.document, article_id, name)
        if problem is not None:
            return self.handle_error(
                ScrapeError(f"Changing the article name failed, {problem}"), result=False
            )
        return True

    def articles_by_name(self, name_re: str, category_id: int) -> list[ArticleRecord] | None:
        """Articles of a category whose name matches ``name_re``."""
        return self.find_articles_by_id_and_name(ANY_ID, name_re, category_id)

    def articles_by_id(self, id_list: int | str | list, category_id: int) -> list[ArticleRecord] | None:
        """Articles of a category with one of the given ids.

        The empty list or '.*' match every article.
        """
        return self.find_articles_by_id_and_name(id_list, ".*", category_id)

    def find_articles_by_id_and_name(
        self,
        id_spec: int | str | list,
        name_re: str,
        category_id: int,
        initial_content: str | None = None,
    ) -> list[ArticleRecord] | None:
        """Walk the paginated listing of a category and filter its rows.

        Args:
            id_spec: Id criterion, see ``normalize_id_spec``
            name_re: Regular expression searched in the article name
            category_id: Category to list
            initial_content: Page already fetched, used instead of the first
                listing page

        Returns:
            Matching articles; the empty list if none match. For a single id
            the walk stops at the first page with a match.
        """
        try:
            normalize_id_spec(id_spec)
            re.compile(name_re)
        except (TypeError, ValueError, re.error) as e:
            return self.handle_error(f"Invalid article search ({id_spec!r}, {name_re!r}): {e}")

        stop_on_first_match = is_single_id(id_spec)

        articles: list[ArticleRecord] = []
        art_start = 0
        while True:
            if initial_content is not None:
                envelope = Envelope.from_content(self.dialect.landing_path, initial_content)
                initial_content = None
            else:
                envelope = self.send_request(self.dialect.structure_path(category_id, art_start))
                if envelope is None:
                    return self.handle_error("Unable to retrieve article by name")

            articles.extend(self.dialect.filter_articles(id_spec, name_re, envelope))
            if stop_on_first_match and articles:
                break

            next_start = self.dialect.find_next_chunk(envelope.document)
            if next_start <= art_start:
                if next_start > 0:
                    logger.warning(f"Listing of category {category_id} does not advance past {art_start}")
                break
            art_start = next_start

        return articles
