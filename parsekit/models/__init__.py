from .acl import ParseACL
from .file import ParseFile
from .object import ParseObject
from .relation import ParseRelation
from .session import ParseSession
from .user import ParseRole, ParseUser
from .values import ParseBytes, ParseGeoPoint

__all__ = [
    "ParseACL",
    "ParseBytes",
    "ParseFile",
    "ParseGeoPoint",
    "ParseObject",
    "ParseRelation",
    "ParseRole",
    "ParseSession",
    "ParseUser",
]
