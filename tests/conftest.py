"""Shared fixtures: Redaxo backend pages and a wired-up authenticator."""

from urllib.parse import parse_qs

import httpx
import pytest
import respx

from redaxo_relay import config
from redaxo_relay.auth.authenticator import Authenticator
from redaxo_relay.auth.credentials import StaticCredentialSource
from redaxo_relay.auth.session_store import MemorySessionStore
from redaxo_relay.config import Settings

BASE_URL = "https://cms.example.org/redaxo"
HOST = "cms.example.org"
INDEX_PATH = "/redaxo/index.php"


def login_page(token: str = "tok-login") -> str:
    """Redaxo 5 login form carrying a CSRF token."""
    return f"""<html><body>
<section class="rex-page-main">
<form id="rex-form-login" class="rex-form-login" action="index.php" method="post">
<input type="hidden" name="_csrf_token" value="{token}"/>
<input type="text" name="rex_user_login" id="rex-id-login-user"/>
<input type="password" name="rex_user_psw" id="rex-id-login-password"/>
</form>
</section>
</body></html>"""


def profile_page(body: str = "") -> str:
    """Any backend page of a logged in user; the navigation links the profile."""
    return f"""<html><body>
<nav class="rex-nav-meta"><ul>
<li><a href="index.php?page=profile">admin</a></li>
<li><a href="index.php?rex_logout=1">Logout</a></li>
</ul></nav>
{body}
</body></html>"""


def alert(text: str) -> str:
    return f'<div class="alert alert-danger">{text}</div>'


def article_row(article_id: int, name: str, category_id: int = 3, priority: int = 1) -> str:
    href = f"index.php?page=content&amp;article_id={article_id}&amp;category_id={category_id}&amp;mode=edit&amp;clang=1"
    return f"""<tr class="rex-status" data-article-id="{article_id}">
<td class="rex-table-icon"><a href="{href}"><i class="rex-icon rex-icon-article"></i></a></td>
<td class="rex-table-id">{article_id}</td>
<td class="rex-table-article-name"><a href="{href}">{name}</a></td>
<td class="rex-table-priority">{priority}</td>
<td class="rex-table-template">Default</td>
</tr>"""


def category_row(category_id: int, name: str) -> str:
    href = f"index.php?page=structure&amp;category_id={category_id}&amp;clang=1"
    return f"""<tr class="rex-status">
<td class="rex-table-icon"><a href="{href}"><i class="rex-icon rex-icon-category"></i></a></td>
<td class="rex-table-id">{category_id}</td>
<td class="rex-table-category"><a href="{href}">{name}</a></td>
</tr>"""


def pagination(next_start: int | None) -> str:
    """Pagination control; the last item points to the next chunk or is disabled."""
    if next_start is None:
        last = '<li class="disabled"><span>&raquo;</span></li>'
    else:
        last = f'<li><a href="index.php?page=structure&amp;category_id=3&amp;clang=1&amp;artstart={next_start}">&raquo;</a></li>'
    return f'<ul class="pagination"><li><a href="#">1</a></li>{last}</ul>'


def structure_page(
    articles: list[tuple[int, str]] = (),
    categories: list[tuple[int, str]] = (),
    next_start: int | None = None,
    extra: str = "",
) -> str:
    """Structure page listing categories and the articles of one category."""
    category_rows = "\n".join(category_row(cid, name) for cid, name in categories)
    article_rows = "\n".join(article_row(aid, name) for aid, name in articles)
    return profile_page(f"""{extra}
<table class="table table-striped"><tbody>
{category_rows}
</tbody></table>
<table class="table table-striped"><tbody>
{article_rows}
</tbody></table>
{pagination(next_start)}""")


ARTICLE_FIXTURE = structure_page(articles=[(12, "About-2"), (10, "Home"), (11, "About")])


class FakeBackend:
    """Minimal Redaxo 5 backend: login form, redirect on login, profile."""

    def __init__(self, password: str = "secret"):
        self.password = password
        self.session_counter = 0
        self.current_session: str | None = None
        self.posts: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if request.method == "POST":
            form = parse_qs(request.content.decode())
            self.posts.append(form)
            if form.get("rex_user_psw") == [self.password]:
                self.session_counter += 1
                self.current_session = f"sess{self.session_counter}"
                return httpx.Response(
                    302,
                    headers=[
                        ("Set-Cookie", f"SESSID={self.current_session}; path=/"),
                        ("Location", "index.php?page=profile"),
                    ],
                )
            return httpx.Response(200, text=login_page())
        if params.get("rex_logout") == "1":
            self.current_session = None
            return httpx.Response(200, text=login_page())
        cookie = request.headers.get("cookie", "")
        if self.current_session and f"SESSID={self.current_session}" in cookie:
            return httpx.Response(200, text=profile_page())
        return httpx.Response(200, text=login_page())


@pytest.fixture(autouse=True)
def isolated_respx_routes():
    """Drop routes left on respx's global router by a differently-scoped mock."""
    yield
    respx.mock.clear()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's config file out of the tests."""
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    config.reset_settings()
    yield
    config.reset_settings()


@pytest.fixture
def settings():
    return Settings(_env_file=None, external_location=BASE_URL, relogin_delay=60)


@pytest.fixture
def session_store():
    return MemorySessionStore()


@pytest.fixture
def make_authenticator(settings, session_store):
    """Build authenticators sharing one session store."""
    created = []

    def _make(store=None, user="alice", password="secret", outgoing=None, **overrides):
        use_settings = settings.model_copy(update=overrides) if overrides else settings
        authenticator = Authenticator(
            use_settings,
            store if store is not None else session_store,
            StaticCredentialSource(user, password),
            user_id=user,
            outgoing_headers=outgoing,
        )
        created.append(authenticator)
        return authenticator

    yield _make

    for authenticator in created:
        authenticator.close()
