"""Error kinds raised by the stores, and the storage-engine violation classifier."""
from __future__ import annotations

from enum import Enum

from sqlalchemy.exc import DBAPIError


class DeviceHubError(Exception):
    """Base class for every error kind surfaced by the stores."""


class MalformedEntityError(DeviceHubError):
    """The submitted entity violates a text, format or length constraint."""


class ConflictError(DeviceHubError):
    """A uniqueness constraint was violated."""


class NotFoundError(DeviceHubError):
    """No row matched the targeted owner/id combination."""


class UnauthorizedAccessError(DeviceHubError):
    """The thing is not connected to the channel."""


class ScanMetadataError(DeviceHubError):
    """The stored metadata could not be decoded into a mapping."""


class Violation(str, Enum):
    UNIQUE = "unique_violation"
    FOREIGN_KEY = "foreign_key_violation"
    INVALID_TEXT = "invalid_text_representation"
    TRUNCATION = "string_data_right_truncation"


_SQLSTATES = {
    "23505": Violation.UNIQUE,
    "23503": Violation.FOREIGN_KEY,
    "22P02": Violation.INVALID_TEXT,
    "22001": Violation.TRUNCATION,
    # the only CHECK constraints on the tables are column length limits
    "23514": Violation.TRUNCATION,
}

_SQLITE_MESSAGES = (
    ("UNIQUE constraint failed", Violation.UNIQUE),
    ("FOREIGN KEY constraint failed", Violation.FOREIGN_KEY),
    ("CHECK constraint failed", Violation.TRUNCATION),
)


def classify(err: DBAPIError) -> Violation | None:
    """Map a driver error to the constraint category it reports.

    PostgreSQL drivers expose the SQLSTATE (``sqlstate`` on psycopg 3,
    ``pgcode`` on psycopg2); SQLite only reports a message.  Returns ``None``
    for anything that is not one of the known categories.
    """
    orig = err.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return _SQLSTATES.get(code)
    message = str(orig)
    for prefix, violation in _SQLITE_MESSAGES:
        if prefix in message:
            return violation
    return None
