"""Shared request/response types for the API access layer."""

import enum
from typing import Optional


class Attempt(enum.Enum):
    """Position of a call in its recovery sequence."""

    FIRST = "first"
    RETRY = "retry"


class _NoContent:
    """Result of a call answered with 204 No Content."""

    _instance: Optional["_NoContent"] = None

    def __new__(cls) -> "_NoContent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT = _NoContent()
