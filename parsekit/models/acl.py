from __future__ import annotations

import copy
from typing import Any, Mapping

PUBLIC_KEY = "*"
ACCESS_TYPES = ("read", "write")


class ParseACL:
    """
    Read/write permissions keyed by user id, ``role:<name>`` or ``*`` (public).

    Only granted permissions are stored; revoking the last permission of an
    id removes the id entirely.
    """

    def __init__(self) -> None:
        self._permissions_by_id: dict[str, dict[str, bool]] = {}

    @classmethod
    def with_user(cls, user: Any) -> "ParseACL":
        acl = cls()
        acl.set_user_read_access(user, True)
        acl.set_user_write_access(user, True)
        return acl

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ParseACL":
        acl = cls()
        for target_id, permissions in data.items():
            if not isinstance(target_id, str):
                raise ValueError("Tried to create an ACL with an invalid userId.")
            for access_type, allowed in permissions.items():
                if access_type not in ACCESS_TYPES:
                    raise ValueError("Tried to create an ACL with an invalid permission type.")
                if not isinstance(allowed, bool):
                    raise ValueError("Tried to create an ACL with an invalid permission value.")
                acl._set_access(access_type, target_id, allowed)
        return acl

    def encode(self) -> dict[str, dict[str, bool]]:
        return copy.deepcopy(self._permissions_by_id)

    def copy(self) -> "ParseACL":
        return ParseACL.from_json(self._permissions_by_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseACL):
            return NotImplemented
        return self._permissions_by_id == other._permissions_by_id

    def __repr__(self) -> str:
        return f"ParseACL({self._permissions_by_id!r})"

    def _resolve_target(self, target: Any) -> str:
        from .user import ParseRole

        if isinstance(target, ParseRole):
            if not target.name:
                raise ValueError("Roles must have a name.")
            return f"role:{target.name}"
        if callable(getattr(target, "to_pointer", None)):
            if target.object_id is None:
                raise ValueError("Cannot set access for a user with null id.")
            return target.object_id
        if not isinstance(target, str) or not target:
            raise ValueError("Invalid target for access control.")
        return target

    def _set_access(self, access_type: str, target: Any, allowed: bool) -> None:
        target_id = self._resolve_target(target)
        permissions = self._permissions_by_id.get(target_id)
        if permissions is None:
            if not allowed:
                return
            permissions = self._permissions_by_id[target_id] = {}
        if allowed:
            permissions[access_type] = True
        else:
            permissions.pop(access_type, None)
            if not permissions:
                del self._permissions_by_id[target_id]

    def _get_access(self, access_type: str, target: Any) -> bool:
        target_id = self._resolve_target(target)
        return self._permissions_by_id.get(target_id, {}).get(access_type, False)

    def set_read_access(self, target: Any, allowed: bool) -> None:
        self._set_access("read", target, allowed)

    def get_read_access(self, target: Any) -> bool:
        return self._get_access("read", target)

    def set_write_access(self, target: Any, allowed: bool) -> None:
        self._set_access("write", target, allowed)

    def get_write_access(self, target: Any) -> bool:
        return self._get_access("write", target)

    def set_public_read_access(self, allowed: bool) -> None:
        self.set_read_access(PUBLIC_KEY, allowed)

    def get_public_read_access(self) -> bool:
        return self.get_read_access(PUBLIC_KEY)

    def set_public_write_access(self, allowed: bool) -> None:
        self.set_write_access(PUBLIC_KEY, allowed)

    def get_public_write_access(self) -> bool:
        return self.get_write_access(PUBLIC_KEY)

    # access keys for users resolve through _resolve_target
    set_user_read_access = set_read_access
    get_user_read_access = get_read_access
    set_user_write_access = set_write_access
    get_user_write_access = get_write_access

    def set_role_read_access(self, role: Any, allowed: bool) -> None:
        self.set_read_access(_role_key(role), allowed)

    def get_role_read_access(self, role: Any) -> bool:
        return self.get_read_access(_role_key(role))

    def set_role_write_access(self, role: Any, allowed: bool) -> None:
        self.set_write_access(_role_key(role), allowed)

    def get_role_write_access(self, role: Any) -> bool:
        return self.get_write_access(_role_key(role))


def _role_key(role: Any) -> str:
    if isinstance(role, str):
        return f"role:{role}"
    name = getattr(role, "name", None)
    if role.object_id is None or not name:
        raise ValueError("Roles must be saved to the server and have a name.")
    return f"role:{name}"
