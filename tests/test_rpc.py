"""Tests for the remote content operations."""

import time
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from conftest import BASE_URL, HOST, INDEX_PATH, login_page, profile_page, structure_page
from redaxo_relay.api.exceptions import ErrorReporting, LoginError, ScrapeError
from redaxo_relay.api.models import LoginStatus
from redaxo_relay.api.rpc import RemoteContentClient
from redaxo_relay.auth.session_store import MemorySessionStore, SessionRecord
from redaxo_relay.dialects.base import ANY_ID


def backend_route():
    return respx.route(host=HOST, path=INDEX_PATH)


def token_form(action: str, token: str) -> str:
    return profile_page(f"""<form action="index.php" method="post">
<input type="hidden" name="rex-api-call" value="{action}"/>
<input type="hidden" name="_csrf_token" value="{token}"/>
</form>""")


def form_of(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.fixture
def logged_in_store():
    """Session of a user who logged in a moment ago."""
    record = SessionRecord(
        auth_headers=["Set-Cookie: SESSID=s1; path=/"],
        login_status=LoginStatus.LOGGED_IN,
        login_timestamp=time.time(),
    )
    return MemorySessionStore({"redaxo": record.to_dict()})


@pytest.fixture
def client(make_authenticator, logged_in_store):
    return RemoteContentClient(make_authenticator(store=logged_in_store))


class TestSession:
    """Tests for the session handling around operations."""

    @respx.mock
    def test_not_logged_in(self, make_authenticator):
        """Without credentials the operation reports failure."""
        route = backend_route().mock(return_value=httpx.Response(200, text=login_page()))
        client = RemoteContentClient(make_authenticator(store=MemorySessionStore(), password=None))

        assert client.get_templates() is None
        assert route.call_count == 1

    @respx.mock
    def test_not_logged_in_throws(self, make_authenticator):
        backend_route().mock(return_value=httpx.Response(200, text=login_page()))
        client = RemoteContentClient(make_authenticator(store=MemorySessionStore(), password=None))
        client.error_reporting("throw")

        with pytest.raises(LoginError):
            client.get_templates()

    @respx.mock
    def test_ping_emits_cookies(self, client):
        route = backend_route().mock(return_value=httpx.Response(200, text=profile_page()))

        assert client.ping() is True
        assert route.call_count == 1
        assert client.auth.outgoing_headers == ["Set-Cookie: SESSID=s1; path=/"]

    def test_redaxo_url(self, client):
        assert client.redaxo_url() == BASE_URL
        assert client.redaxo_url(7) == f"{BASE_URL}/../?article_id=7"
        assert client.redaxo_url(7, edit_mode=True).endswith("page=content&article_id=7&mode=edit&clang=1")


class TestListings:
    """Tests for categories, templates and modules."""

    @respx.mock
    def test_categories_depth_first(self, client):
        tree = {None: [(4, "News"), (5, "Blog")], "4": [(6, "Archive")], "5": [], "6": []}

        def handler(request):
            category_id = request.url.params.get("category_id")
            return httpx.Response(200, text=structure_page(categories=tree[category_id]))

        backend_route().mock(side_effect=handler)

        categories = client.get_categories()

        assert [c.id for c in categories] == [4, 6, 5]
        by_id = {c.id: c for c in categories}
        assert by_id[4].children == [6]
        assert by_id[5].children == []
        assert (by_id[4].parent_id, by_id[4].level) == (-1, 0)
        assert (by_id[6].parent_id, by_id[6].level) == (4, 1)

    @respx.mock
    def test_templates_only_active(self, client):
        page = profile_page("""<table><tbody>
<tr><td></td><td>1</td><td></td><td>Default</td><td><i class="rex-icon-active-true"></i></td></tr>
<tr><td></td><td>2</td><td></td><td>Old</td><td><i class="rex-icon-active-false"></i></td></tr>
</tbody></table>""")
        backend_route().mock(return_value=httpx.Response(200, text=page))

        assert [t.id for t in client.get_templates()] == [1, 2]
        assert [t.id for t in client.get_templates(only_active=True)] == [1]

    @respx.mock
    def test_unsupported_listing(self, make_authenticator, logged_in_store):
        """Scrape errors follow the reporting policy."""
        backend_route().mock(return_value=httpx.Response(200, text=profile_page()))
        client = RemoteContentClient(make_authenticator(store=logged_in_store, dialect="redaxo4"))

        assert client.get_modules() is None

        client.error_reporting("throw")
        with pytest.raises(LoginError) as exc_info:
            client.get_modules()
        assert isinstance(exc_info.value.__cause__, ScrapeError)


class TestArticleListing:
    """Tests for walking the paginated article listing."""

    @pytest.fixture
    def pages(self):
        pages = {
            "0": structure_page(articles=[(10, "About"), (11, "Home")], next_start=30),
            "30": structure_page(articles=[(31, "About us")]),
        }
        with respx.mock(assert_all_called=False) as router:
            yield router.route(host=HOST, path=INDEX_PATH).mock(
                side_effect=lambda request: httpx.Response(200, text=pages[request.url.params["artstart"]])
            )

    def test_by_name_walks_all_pages(self, client, pages):
        articles = client.articles_by_name("^About", 3)

        assert [a.article_id for a in articles] == [10, 31]
        assert pages.call_count == 2

    def test_single_id_stops_at_first_match(self, client, pages):
        articles = client.articles_by_id(10, 3)

        assert [a.article_id for a in articles] == [10]
        assert pages.call_count == 1

    def test_single_id_on_later_page(self, client, pages):
        assert [a.article_id for a in client.articles_by_id("31", 3)] == [31]
        assert pages.call_count == 2

    def test_no_match_is_empty_list(self, client, pages):
        assert client.articles_by_id([99], 3) == []

    @pytest.mark.parametrize("id_spec, name_re", [("11,12", ".*"), (["x"], ".*"), (ANY_ID, "(unclosed")])
    def test_invalid_search_sends_nothing(self, client, pages, id_spec, name_re):
        assert client.find_articles_by_id_and_name(id_spec, name_re, 3) is None
        assert not pages.called

    def test_invalid_search_throws(self, client, pages):
        with client.auth.reporting(ErrorReporting.THROW):
            with pytest.raises(LoginError):
                client.articles_by_name("[a-", 3)
        assert not pages.called

    @respx.mock
    def test_listing_stops_when_next_page_does_not_advance(self, client):
        """A next link pointing back to a visited page ends the walk."""
        route = backend_route().mock(
            return_value=httpx.Response(200, text=structure_page(articles=[(31, "Xylophone")], next_start=30))
        )

        articles = client.articles_by_name("^X", 3)

        assert route.call_count == 2
        assert [a.article_id for a in articles] == [31, 31]


class TestArticleOperations:
    """Tests for the form submitting operations."""

    @respx.mock
    def test_move_probes_token_first(self, client):
        posts = []

        def handler(request):
            if request.method == "POST":
                posts.append(request)
                return httpx.Response(200, text=profile_page("""<ol class="breadcrumb">
<li><a href="index.php?page=structure&amp;category_id=4&amp;clang=1">News</a></li></ol>"""))
            assert request.url.params["mode"] == "functions"
            return httpx.Response(200, text=token_form("article_move", "tok-move"))

        route = backend_route().mock(side_effect=handler)

        assert client.move_article(5, 4) is True
        assert route.call_count == 2

        form = form_of(posts[0])
        assert form["rex-api-call"] == "article_move"
        assert form["category_id_new"] == "4"
        assert form["_csrf_token"] == "tok-move"
        assert posts[0].url.params["_csrf_token"] == "tok-move"

    @respx.mock
    def test_move_uses_known_token(self, client):
        client.auth.csrf.scan(None, token_form("article_move", "known"))
        route = backend_route().mock(
            return_value=httpx.Response(200, text=profile_page('<ol class="breadcrumb"></ol>'))
        )

        assert client.move_article(5, 0) is True
        assert route.call_count == 1
        assert form_of(route.calls.last.request)["_csrf_token"] == "known"

    @respx.mock
    def test_move_to_wrong_category(self, client):
        client.auth.csrf.scan(None, token_form("article_move", "known"))
        backend_route().mock(
            return_value=httpx.Response(200, text=profile_page("""<ol class="breadcrumb">
<li><a href="index.php?page=structure&amp;category_id=2">Other</a></li></ol>"""))
        )

        assert client.move_article(5, 4) is False

    @respx.mock
    def test_delete_checks_listing(self, client):
        state = {"deleted": False}

        def handler(request):
            if request.method == "POST":
                assert form_of(request)["_csrf_token"] == "tok-del"
                state["deleted"] = True
            articles = [(10, "Home")] if state["deleted"] else [(10, "Home"), (11, "About")]
            delete_link = '<a href="index.php?page=structure&amp;rex-api-call=article_delete&amp;_csrf_token=tok-del">x</a>'
            return httpx.Response(200, text=structure_page(articles=articles, extra=delete_link))

        backend_route().mock(side_effect=handler)

        assert client.delete_article(11, 3) is True

    @respx.mock
    def test_delete_still_present(self, client):
        backend_route().mock(
            return_value=httpx.Response(200, text=structure_page(articles=[(11, "About")]))
        )

        assert client.delete_article(11, 3) is False

    @respx.mock
    def test_add_article_matches_exact_name(self, client):
        def handler(request):
            if request.method == "POST":
                form = form_of(request)
                assert form["article_name"] == "News (old)"
                assert form["_csrf_token"] == "tok-add"
                return httpx.Response(
                    200, text=structure_page(articles=[(20, "News (old)"), (21, "News (old) 2")])
                )
            assert request.url.params["function"] == "add_art"
            return httpx.Response(200, text=token_form("article_add", "tok-add"))

        route = backend_route().mock(side_effect=handler)

        articles = client.add_article("News (old)", 3, 1)

        assert [a.article_id for a in articles] == [20]
        # the listing comes with the response to the submission
        assert route.call_count == 2

    @respx.mock
    def test_edit_article(self, client):
        client.auth.csrf.scan(None, token_form("article_edit", "tok-edit"))

        def handler(request):
            form = form_of(request)
            assert form["function"] == "artedit_function"
            assert form["article_name"] == "Renamed"
            return httpx.Response(200, text=structure_page(articles=[(11, "Renamed"), (12, "Other")]))

        backend_route().mock(side_effect=handler)

        articles = client.edit_article(11, 3, "Renamed", 1)

        assert [(a.article_id, a.article_name) for a in articles] == [(11, "Renamed")]

    @respx.mock
    @pytest.mark.parametrize("slices_after,expected", [(2, True), (1, False)])
    def test_add_block(self, client, slices_after, expected):
        slice_div = '<div class="rex-content-editmode-slice-output">slice</div>'

        def handler(request):
            if "save" in form_of(request):
                return httpx.Response(200, text=profile_page(slice_div * slices_after))
            add_form = '<div class="rex-form rex-form-content-editmode-add-slice">form</div>'
            return httpx.Response(200, text=profile_page(slice_div + add_form))

        route = backend_route().mock(side_effect=handler)

        assert client.add_article_block(5, 2) is expected
        assert route.call_count == 2

    def test_add_block_requires_ids(self, client):
        assert client.add_article_block(0, 2) is False

    @respx.mock
    @pytest.mark.parametrize("shown_name,expected", [("New name", True), ("Old name", False)])
    def test_set_article_name(self, client, shown_name, expected):
        page = profile_page(f"""<form>
<input type="hidden" name="article_id" value="5"/>
<input type="text" id="rex-form-meta-article-name" name="meta_article_name" value="{shown_name}"/>
</form>""")
        route = backend_route().mock(return_value=httpx.Response(200, text=page))

        assert client.set_article_name(5, "New name") is expected
        assert form_of(route.calls.last.request)["meta_article_name"] == "New name"
