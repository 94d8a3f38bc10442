from __future__ import annotations

import pytest

from parsekit.errors import ObjectStateError
from parsekit.models.session import ParseSession, is_revocable
from parsekit.models.user import ParseUser

LOGIN_RESULT = {
    "objectId": "u1",
    "username": "alice",
    "sessionToken": "r:token",
    "createdAt": "2015-01-02T03:04:05.000Z",
}


class TestCurrentSession:
    """Looking up the session of the logged-in user."""

    def test_current_session(self, client, fake_http) -> None:
        fake_http.queue_json(LOGIN_RESULT)
        ParseUser.log_in("alice", "s3cret")
        fake_http.queue_json({
            "objectId": "s1",
            "sessionToken": "r:token",
            "installationId": "inst-1",
            "createdAt": "2015-01-02T03:04:05.000Z",
        })

        session = ParseSession.current_session()

        assert fake_http.last.method == "GET"
        assert fake_http.last.path == "/1/sessions/me"
        assert fake_http.last.headers["X-Parse-Session-Token"] == "r:token"
        assert session.object_id == "s1"
        assert session.session_token == "r:token"
        assert session.get("installationId") == "inst-1"
        assert "sessionToken" not in session
        assert not session.is_dirty()

    def test_current_session_requires_user(self, client) -> None:
        with pytest.raises(ObjectStateError):
            ParseSession.current_session()


class TestRevocable:
    """Revocable session tokens."""

    @pytest.mark.parametrize(
        "token, expected",
        [("r:abc", True), ("legacy-token", False), (None, False)],
    )
    def test_is_revocable(self, token, expected) -> None:
        assert is_revocable(token) is expected

    def test_current_session_revocable(self, client, fake_http) -> None:
        assert not ParseSession.is_current_session_revocable()
        fake_http.queue_json(LOGIN_RESULT)
        ParseUser.log_in("alice", "s3cret")
        assert ParseSession.is_current_session_revocable()
