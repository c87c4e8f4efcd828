"""Markup dialect of a Redaxo backend.

Everything that depends on the HTML a particular Redaxo release renders
lives behind this interface: marker strings, form field names, selectors and
the meaning of table columns. Supporting another release means adding a
dialect, not touching the authenticator.
"""

import re
from abc import ABC, abstractmethod
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from redaxo_relay.api.models import (
    ArticleRecord,
    Category,
    Envelope,
    LoginStatus,
    Module,
    Template,
)

# Matches every article id.
ANY_ID = ".*"

# Localized "article moved" notices, Redaxo ships de_de and en_gb backends.
ARTICLE_MOVED_ANSWERS = {
    "de_de": "Artikel wurde verschoben",
    "en_gb": "Article moved.",
}


def normalize_id_spec(id_spec: int | str | list) -> set[int] | None:
    """Turn an id criterion into a set of ids, None meaning "any id".

    Accepts an int, a numeric string, '.*', or a list of ids where the
    empty list also means "any id".
    """
    if isinstance(id_spec, int):
        return {id_spec}
    if isinstance(id_spec, str):
        if id_spec == ANY_ID:
            return None
        return {int(part) for part in id_spec.split("|") if part.strip()}
    if len(id_spec) == 0:
        return None
    return {int(article_id) for article_id in id_spec}


def is_single_id(id_spec: int | str | list) -> bool:
    """A single numeric id allows stopping at the first match."""
    if isinstance(id_spec, int):
        return True
    return isinstance(id_spec, str) and id_spec.strip().isdigit()


class CmsDialect(ABC):
    """Markup-dependent constants and parsers of one backend release."""

    name: str

    # Cookies
    cookie_pattern: str
    bootstrap_cookie: str | None = None
    keep_last_cookie_only: bool = True

    # CSRF
    csrf_field: str | None = None

    # Pages
    landing_path = "index.php"
    logout_path = "index.php?rex_logout=1"
    clang: int = 1

    # Login status markers, checked in this order
    logged_out_re: re.Pattern
    logged_in_re = re.compile(r"index.php[?]page=profile", re.MULTILINE)

    # Article blocks
    add_slice_form_re = re.compile(
        r'<div\s+class="rex-form\s+rex-form-content-editmode-add-slice">', re.IGNORECASE | re.DOTALL
    )
    slice_output_re = re.compile(
        r'<div\s+class="rex-content-editmode-slice-output">', re.IGNORECASE | re.DOTALL
    )

    login_javascript = 0

    def login_form(self, user: str, password: str) -> dict:
        """Form fields of the native login form."""
        return {
            "javascript": self.login_javascript,
            "rex_user_login": user,
            "rex_user_psw": password,
        }

    def classify(self, content: str) -> LoginStatus:
        """Derive the login status from a page.

        The login form wins if a page carries both markers.
        """
        if not content:
            return LoginStatus.UNKNOWN
        if self.logged_out_re.search(content):
            return LoginStatus.LOGGED_OUT
        if self.logged_in_re.search(content):
            return LoginStatus.LOGGED_IN
        return LoginStatus.UNKNOWN

    # URLs

    def article_url(self, base_url: str, article_id: int | str | None, edit_mode: bool = False) -> str:
        """URL of the backend, or of a single article (frontend or editor)."""
        if article_id is None:
            return base_url
        if edit_mode:
            return f"{base_url}/index.php?page=content&article_id={article_id}&mode=edit&clang={self.clang}"
        return f"{base_url}/../?article_id={article_id}"

    def structure_path(self, category_id: int | None = None, artstart: int | None = None) -> str:
        """Structure (category and article listing) page."""
        path = "index.php?page=structure"
        if category_id is not None and category_id != -1:
            path += f"&category_id={category_id}"
        path += f"&clang={self.clang}"
        if artstart is not None:
            path += f"&artstart={artstart}"
        return path

    def templates_path(self) -> str:
        return "index.php?page=templates"

    def modules_path(self) -> str:
        return "index.php?page=modules"

    def add_article_probe_path(self, category_id: int) -> str:
        """Page that renders the "add article" form."""
        return self.structure_path(category_id) + "&function=add_art"

    def move_article_probe_path(self, article_id: int) -> str:
        """Page that renders the "move article" form."""
        return f"index.php?page=content&article_id={article_id}&mode=functions&clang={self.clang}"

    # Forms

    def move_article_form(self, article_id: int, dest_category_id: int) -> dict:
        return {
            "article_id": article_id,
            "page": "content",
            "mode": "functions",
            "save": 1,
            "clang": self.clang,
            "ctype": 1,
            "category_id_new": dest_category_id,
            "movearticle": "blah",  # submit button
            "category_copy_id_new": article_id,
        }

    def delete_article_form(self, article_id: int, category_id: int) -> dict:
        return {
            "page": "structure",
            "article_id": article_id,
            "function": "artdelete_function",
            "category_id": category_id,
            "clang": self.clang,
        }

    def add_article_form(self, name: str, category_id: int, template_id: int, position: int) -> dict:
        return {
            "page": "structure",
            "category_id": category_id,
            "clang": self.clang,
            "template_id": template_id,
            "article_name": name,
            "Position_New_Article": position,
            "artadd_function": "blah",  # submit button
        }

    def edit_article_form(
        self, article_id: int, category_id: int, name: str, template_id: int, position: int
    ) -> dict:
        return {
            "page": "structure",
            "article_id": article_id,
            "category_id": category_id,
            "function": "artedit_function",
            "article_name": name,
            "template_id": template_id,
            "Position_Article": position,
            "clang": self.clang,
        }

    def article_name_form(self, article_id: int, name: str) -> dict:
        return {
            "page": "content",
            "article_id": article_id,
            "mode": "meta",
            "save": "1",
            "clang": str(self.clang),
            "ctype": "1",
            "meta_article_name": name,
            "savemeta": "blahsubmit",
        }

    def add_block_form(self, article_id: int, block_id: int, slice_id: int) -> dict:
        """Request for the edit form of a new block."""
        return {
            "article_id": article_id,
            "page": "content",
            "mode": "edit",
            "slice_id": slice_id,
            "function": "add",
            "clang": str(self.clang),
            "ctype": "1",
            "module_id": block_id,
        }

    def save_block_form(self, article_id: int, block_id: int, slice_id: int) -> dict:
        """Submission of the new block; block data fields are left empty."""
        return {
            "article_id": article_id,
            "page": "content",
            "mode": "edit",
            "slice_id": slice_id,
            "function": "add",
            "module_id": block_id,
            "save": 1,
            "clang": self.clang,
            "ctype": 1,
            "btn_save": "blah",
        }

    # Scrapers

    def count_slices(self, content: str) -> int:
        """Number of existing blocks on an article edit page."""
        return len(self.slice_output_re.findall(content))

    def has_add_slice_form(self, content: str) -> bool:
        return len(self.add_slice_form_re.findall(content)) == 1

    def check_article_name(self, document: BeautifulSoup, article_id: int, name: str) -> str | None:
        """Verify the meta form shows the article under its new name.

        Returns:
            None on success, otherwise a description of the mismatch
        """
        current_id = None
        for field in document.find_all("input", attrs={"name": "article_id"}):
            if field.get("value") == str(article_id):
                current_id = field.get("value")
                break
        if current_id is None:
            return "mis-matched article ids"

        field = document.find(id="rex-form-meta-article-name")
        if field is None:
            return "article name field is missing"
        field_name = field.get("name")
        field_value = field.get("value")
        if field_name != "meta_article_name" or field_value != name:
            return f'got {field_name}="{field_value}"'
        return None

    def moved_by_notice(self, envelope: Envelope) -> bool:
        """Check the final redirect target for the localized "moved" notice."""
        for answer in ARTICLE_MOVED_ANSWERS.values():
            if "info=" + quote_plus(answer) in envelope.request:
                return True
        return False

    @abstractmethod
    def is_move_confirmed(self, envelope: Envelope, dest_category_id: int) -> bool:
        """Check the response to a move request for success."""

    @abstractmethod
    def parse_categories(self, document: BeautifulSoup, parent_id: int, level: int) -> list[Category]:
        """Categories listed directly on a structure page (children empty)."""

    @abstractmethod
    def parse_templates(self, document: BeautifulSoup) -> list[Template]:
        """Templates listed on the templates page."""

    @abstractmethod
    def parse_modules(self, document: BeautifulSoup) -> list[Module]:
        """Modules listed on the modules page."""

    @abstractmethod
    def filter_articles(
        self, id_spec: int | str | list, name_re: str, envelope: Envelope
    ) -> list[ArticleRecord]:
        """Article rows matching both criteria, sorted by article id."""

    @abstractmethod
    def find_next_chunk(self, document: BeautifulSoup) -> int:
        """Offset of the next listing page, or -1 if there is none."""
