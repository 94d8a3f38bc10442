from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import pytest

from parsekit.models.object import ParseObject


@pytest.fixture
def remote() -> Callable[..., ParseObject]:
    """
    Factory for object references that need no network.

    Usage:
        saved = remote("Class1", "abc")
        unsaved = remote("Class1")
    """

    def _make(class_name: str = "TestObject", object_id: Optional[str] = None) -> ParseObject:
        return ParseObject(class_name, object_id)

    return _make
