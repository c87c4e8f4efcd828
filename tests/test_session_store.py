"""Tests for session storage of the login state."""

import json
from unittest.mock import patch

import keyring.errors
import pytest

from redaxo_relay.api.exceptions import SessionPersistError
from redaxo_relay.api.models import LoginStatus
from redaxo_relay.auth.session_store import (
    SERVICE_NAME,
    KeyringSessionStore,
    MemorySessionStore,
    SessionRecord,
)


class TestSessionRecord:
    """Tests for the persisted record."""

    def test_to_dict_keys(self):
        record = SessionRecord(
            auth_headers=["Set-Cookie: SESSID=a; path=/"],
            login_status=LoginStatus.LOGGED_IN,
            login_timestamp=1700000000.0,
            csrf_tokens={"login": "t"},
        )

        assert record.to_dict() == {
            "authHeaders": ["Set-Cookie: SESSID=a; path=/"],
            "loginStatus": "logged-in",
            "loginTimeStamp": 1700000000.0,
            "csrfTokens": {"login": "t"},
        }

    def test_from_dict_derives_cookies(self):
        record = SessionRecord.from_dict(
            {
                "authHeaders": ["Set-Cookie: PHPSESSID=a; path=/", "Set-Cookie: REX1=b"],
                "loginStatus": "logged-out",
            }
        )

        assert record.auth_cookies == {"PHPSESSID": "a", "REX1": "b"}
        assert record.login_status is LoginStatus.LOGGED_OUT
        assert record.login_timestamp == 0
        assert record.csrf_tokens == {}

    def test_from_dict_with_cookie_pattern(self):
        record = SessionRecord.from_dict(
            {"authHeaders": ["Set-Cookie: other=x", "Set-Cookie: SESSID=y"], "loginStatus": "unknown"},
            r"SESSID",
        )
        assert record.auth_headers == ["Set-Cookie: SESSID=y"]

    @pytest.mark.parametrize("status", [None, "", "logged in", 1])
    def test_invalid_status(self, status):
        assert SessionRecord.from_dict({"loginStatus": status}) is None


class TestMemorySessionStore:
    def test_get_set(self):
        store = MemorySessionStore()
        store.set("redaxo", {"a": 1})
        assert store.get("redaxo") == {"a": 1}
        assert store.get("other") is None

    def test_closed(self):
        store = MemorySessionStore()
        store.close()

        assert store.is_closed()
        with pytest.raises(SessionPersistError):
            store.set("redaxo", {})


class TestKeyringSessionStore:
    """Tests for the keyring backed store (keyring mocked)."""

    @patch("redaxo_relay.auth.session_store.keyring")
    def test_set_stores_json(self, mock_keyring):
        store = KeyringSessionStore("alice")
        store.set("redaxo", {"loginStatus": "logged-in"})

        mock_keyring.set_password.assert_called_once_with(
            SERVICE_NAME, "redaxo-relay:redaxo:alice", json.dumps({"loginStatus": "logged-in"})
        )

    @patch("redaxo_relay.auth.session_store.keyring")
    def test_get(self, mock_keyring):
        mock_keyring.get_password.return_value = '{"loginStatus": "logged-out"}'

        assert KeyringSessionStore("alice").get("redaxo") == {"loginStatus": "logged-out"}

    @patch("redaxo_relay.auth.session_store.keyring")
    def test_get_missing(self, mock_keyring):
        mock_keyring.get_password.return_value = None
        assert KeyringSessionStore().get("redaxo") is None

    @patch("redaxo_relay.auth.session_store.keyring")
    def test_get_corrupt(self, mock_keyring):
        mock_keyring.get_password.return_value = "{not json"
        assert KeyringSessionStore("alice").get("redaxo") is None

    @patch("redaxo_relay.auth.session_store.keyring.set_password")
    def test_keyring_failure(self, mock_set_password):
        mock_set_password.side_effect = keyring.errors.KeyringError("locked")

        with pytest.raises(SessionPersistError, match="locked"):
            KeyringSessionStore("alice").set("redaxo", {})

    @patch("redaxo_relay.auth.session_store.keyring.delete_password")
    def test_delete_missing(self, mock_delete_password):
        mock_delete_password.side_effect = keyring.errors.PasswordDeleteError("missing")
        assert KeyringSessionStore("alice").delete("redaxo") is False

    def test_default_user(self):
        assert KeyringSessionStore().user_id == "default"
