from __future__ import annotations

from typing import Any, Optional

from ..client import get_client
from ..errors import ObjectStateError
from .object import ParseObject
from .user import ParseUser

REVOCABLE_TOKEN_PREFIX = "r:"


class ParseSession(ParseObject):
    """
    A login session of the ``_Session`` class.

    Usage:
        session = ParseSession.current_session()
        print(session.get("expiresAt"))
    """

    parse_class_name = "_Session"

    def __init__(self, class_name: Optional[str] = None, object_id: Optional[str] = None, is_pointer: bool = False) -> None:
        super().__init__(class_name, object_id, is_pointer)
        self._session_token: Optional[str] = None

    @property
    def session_token(self) -> Optional[str]:
        return self._session_token

    @classmethod
    def current_session(cls, use_master_key: bool = False) -> "ParseSession":
        """
        Fetch the session behind the current user's token.

        Raises:
            ObjectStateError: If no user is logged in
        """
        user = ParseUser.current_user()
        if user is None or user.session_token is None:
            raise ObjectStateError("There is no current user with a session.")
        result: Any = get_client().request(
            "GET",
            "sessions/me",
            session_token=user.session_token,
            use_master_key=use_master_key,
        )
        session = cls()
        session._merge_after_fetch(result or {})
        session._take_session_token()
        return session

    @classmethod
    def is_current_session_revocable(cls) -> bool:
        user = ParseUser.current_user()
        return user is not None and is_revocable(user.session_token)

    def _take_session_token(self) -> None:
        with self._lock:
            token = self._server_data.pop("sessionToken", None)
            if token:
                self._session_token = token
            self._rebuild_estimated_data()


def is_revocable(token: Optional[str]) -> bool:
    return token is not None and token.startswith(REVOCABLE_TOKEN_PREFIX)
