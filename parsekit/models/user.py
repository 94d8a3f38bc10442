from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..client import get_client
from ..encoding import format_date
from ..errors import ApiError, ObjectStateError
from .acl import ParseACL
from .object import ParseObject
from .relation import ParseRelation

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "user"
FACEBOOK_TOKEN_LIFETIME = timedelta(days=60)

_current_user: Optional["ParseUser"] = None


class ParseUser(ParseObject):
    """
    A user account of the ``_User`` class.

    New users are created with ``sign_up()``; existing ones are reached with
    ``log_in()`` or ``become()``. The logged-in user is kept in the client
    storage and its session token is sent with every request.

    Usage:
        user = ParseUser()
        user.username = "alice"
        user.password = "s3cret"
        user.sign_up()
        assert ParseUser.current_user() is user
    """

    parse_class_name = "_User"

    def __init__(self, class_name: Optional[str] = None, object_id: Optional[str] = None, is_pointer: bool = False) -> None:
        super().__init__(class_name, object_id, is_pointer)
        self._session_token: Optional[str] = None

    @property
    def username(self) -> Optional[str]:
        return self.get("username")

    @username.setter
    def username(self, value: str) -> None:
        self.set("username", value)

    def _set_password(self, value: str) -> None:
        self.set("password", value)

    password = property(fset=_set_password, doc="Write-only; never returned by the server.")

    @property
    def email(self) -> Optional[str]:
        return self.get("email")

    @email.setter
    def email(self, value: str) -> None:
        self.set("email", value)

    @property
    def session_token(self) -> Optional[str]:
        return self._session_token

    def is_authenticated(self) -> bool:
        return self._session_token is not None

    def is_current(self) -> bool:
        current = ParseUser.current_user()
        return current is not None and self.object_id is not None and current.object_id == self.object_id

    def sign_up(self) -> None:
        """
        Create this user on the server and make it the current user.

        Raises:
            ObjectStateError: If username or password is missing, or the user already exists
        """
        if not self._estimated_data.get("username"):
            raise ObjectStateError("Cannot sign up user with an empty name.")
        if not self._estimated_data.get("password"):
            raise ObjectStateError("Cannot sign up user with an empty password.")
        if self.object_id:
            raise ObjectStateError("Cannot sign up an already existing user.")
        ParseObject.save(self)
        self._handle_save_result(make_current=True)
        logger.info("Signed up user %s", self.object_id)

    def save(self, use_master_key: bool = False) -> None:
        if not self.object_id:
            raise ObjectStateError("You must call sign_up to create a new User.")
        super().save(use_master_key)
        self._handle_save_result(make_current=self.is_current())

    def _handle_save_result(self, make_current: bool = False) -> None:
        with self._lock:
            self._server_data.pop("password", None)
            token = self._server_data.pop("sessionToken", None)
            if token:
                self._session_token = token
            self._data_availability.discard("password")
            self._rebuild_estimated_data()
        if make_current:
            _set_current_user(self)

    @classmethod
    def log_in(cls, username: str, password: str) -> "ParseUser":
        if not username:
            raise ObjectStateError("Cannot log in user with an empty name.")
        if not password:
            raise ObjectStateError("Cannot log in user with an empty password.")
        result = get_client().request("GET", "login", {"username": username, "password": password})
        return cls._from_login_result(result)

    @classmethod
    def become(cls, session_token: str) -> "ParseUser":
        result = get_client().request("GET", "users/me", session_token=session_token)
        return cls._from_login_result(result)

    @classmethod
    def log_in_with(cls, provider: str, auth_data: Mapping[str, Any]) -> "ParseUser":
        """
        Log in with third-party credentials, creating the user on first use.

        Usage:
            user = ParseUser.log_in_with("twitter", {"id": "12345", "auth_token": "..."})
        """
        if not provider:
            raise ObjectStateError("Cannot log in without an auth provider.")
        result = get_client().request("POST", "users", {"authData": {provider: dict(auth_data)}})
        return cls._from_login_result(result)

    @classmethod
    def log_in_with_facebook(
        cls,
        facebook_id: str,
        access_token: str,
        expiration_date: Optional[datetime] = None,
    ) -> "ParseUser":
        return cls.log_in_with("facebook", _facebook_auth_data(facebook_id, access_token, expiration_date))

    @classmethod
    def log_in_anonymously(cls) -> "ParseUser":
        return cls.log_in_with("anonymous", {"id": str(uuid.uuid4())})

    def link_with(self, provider: str, auth_data: Mapping[str, Any], use_master_key: bool = False) -> None:
        """
        Attach third-party credentials to this saved user.

        Raises:
            ObjectStateError: If the user has not been saved yet
        """
        if not self.object_id:
            raise ObjectStateError("Cannot link an unsaved user, use log_in_with.")
        result = get_client().request(
            "PUT",
            f"users/{self.object_id}",
            {"authData": {provider: dict(auth_data)}},
            session_token=self._session_token,
            use_master_key=use_master_key,
        )
        with self._lock:
            self._merge_from_server(result or {}, complete_data=False)
            self._rebuild_estimated_data()
        if self.is_current():
            _set_current_user(self)

    def link_with_facebook(
        self,
        facebook_id: str,
        access_token: str,
        expiration_date: Optional[datetime] = None,
        use_master_key: bool = False,
    ) -> None:
        self.link_with("facebook", _facebook_auth_data(facebook_id, access_token, expiration_date), use_master_key)

    @classmethod
    def _from_login_result(cls, result: Any) -> "ParseUser":
        if not isinstance(result, dict):
            raise ApiError("Login returned no user.", -1)
        user = ParseObject.create(cls.parse_class_name)
        user._merge_after_fetch(result)
        user._handle_save_result(make_current=True)
        logger.info("Logged in user %s", user.object_id)
        return user

    @classmethod
    def log_out(cls) -> None:
        """
        Forget the current user and invalidate its session on the server.

        A failed logout request is logged; the local user is cleared either way.
        """
        global _current_user

        client = get_client()
        user = cls.current_user()
        if user is not None:
            try:
                client.request("POST", "logout", session_token=user.session_token)
            except ApiError as exc:
                logger.warning("Logout request for user %s failed: %s", user.object_id, exc.message)
            logger.info("Logged out user %s", user.object_id)
        _current_user = None
        client.storage.remove(CURRENT_USER_KEY)

    @classmethod
    def current_user(cls) -> Optional["ParseUser"]:
        """The logged-in user, restored from storage when not cached."""
        global _current_user

        if _current_user is not None:
            return _current_user
        data = get_client().storage.get(CURRENT_USER_KEY)
        if not data or "objectId" not in data:
            return None

        data = dict(data)
        token = data.pop("sessionToken", None)
        user = ParseObject.from_json(data)
        if not isinstance(user, ParseUser):
            raise ObjectStateError("Stored current user is not a _User object.")
        user._session_token = token
        _current_user = user
        return user

    @classmethod
    def request_password_reset(cls, email: str) -> None:
        get_client().request("POST", "requestPasswordReset", {"email": email})


def _facebook_auth_data(facebook_id: str, access_token: str, expiration_date: Optional[datetime]) -> dict[str, Any]:
    if not facebook_id:
        raise ObjectStateError("Cannot use a Facebook user without an id.")
    if not access_token:
        raise ObjectStateError("Cannot use a Facebook user without an access token.")
    if expiration_date is None:
        expiration_date = datetime.now(timezone.utc) + FACEBOOK_TOKEN_LIFETIME
    return {"id": facebook_id, "access_token": access_token, "expiration_date": format_date(expiration_date)}


def _set_current_user(user: ParseUser) -> None:
    global _current_user

    _current_user = user
    stored = user.encode()
    stored["sessionToken"] = user.session_token
    get_client().storage.set(CURRENT_USER_KEY, stored)


def clear_current_user() -> None:
    """Drop the cached current user without touching storage."""
    global _current_user

    _current_user = None


class ParseRole(ParseObject):
    """
    A named group of users and roles, referenced from ACLs as ``role:<name>``.

    Usage:
        role = ParseRole.create_role("Moderators", ParseACL.with_user(admin))
        role.users().add(alice)
        role.save()
    """

    parse_class_name = "_Role"

    @classmethod
    def create_role(cls, name: str, acl: ParseACL) -> "ParseRole":
        role = cls()
        role.name = name
        role.set_acl(acl)
        return role

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @name.setter
    def name(self, value: str) -> None:
        if self.object_id:
            raise ObjectStateError("A role's name can only be set before it has been saved.")
        if not isinstance(value, str):
            raise ObjectStateError("A role's name must be a string.")
        self.set("name", value)

    def users(self) -> ParseRelation:
        return self.relation("users", ParseUser.parse_class_name)

    def roles(self) -> ParseRelation:
        return self.relation("roles", ParseRole.parse_class_name)

    def save(self, use_master_key: bool = False) -> None:
        if self.get_acl() is None:
            raise ObjectStateError("Roles must have an ACL.")
        name = self._estimated_data.get("name")
        if not name or not isinstance(name, str):
            raise ObjectStateError("Roles must have a name.")
        super().save(use_master_key)
