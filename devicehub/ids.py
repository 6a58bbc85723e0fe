"""Identifier helpers shared by the stores."""
from __future__ import annotations

import uuid


def new_id() -> str:
    return str(uuid.uuid4())


def new_key() -> str:
    return str(uuid.uuid4())


def is_valid_id(value: str) -> bool:
    """Return ``True`` when ``value`` is a UUID in its 36-character hyphenated form.

    Used before querying so a malformed identifier never reaches the storage
    engine, where PostgreSQL would reject it with a format error.
    """
    if not isinstance(value, str) or len(value) != 36:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
