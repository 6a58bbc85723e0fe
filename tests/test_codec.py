from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from devicehub.codec import decode_metadata, encode_metadata
from devicehub.errors import MalformedEntityError, ScanMetadataError, Violation, classify


def test_encode_empty_metadata_is_empty_object():
    assert encode_metadata(None) == "{}"
    assert encode_metadata({}) == "{}"


def test_encode_is_compact_and_keeps_unicode():
    assert encode_metadata({"room": "küche", "n": [1, 2]}) == '{"room":"küche","n":[1,2]}'


def test_encode_rejects_unserializable_values():
    with pytest.raises(MalformedEntityError):
        encode_metadata({"when": object()})


@pytest.mark.parametrize("raw", [None, b'{"a": 1}', '{"a": 1}', {"a": 1}])
def test_decode_accepts_stored_forms(raw):
    expected = {} if raw is None else {"a": 1}
    assert decode_metadata(raw) == expected


@pytest.mark.parametrize("raw", ["[1, 2]", "not json", 42])
def test_decode_rejects_non_objects(raw):
    with pytest.raises(ScanMetadataError):
        decode_metadata(raw)


class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "orig, expected",
    [
        (_PgError("23505"), Violation.UNIQUE),
        (_PgError("23503"), Violation.FOREIGN_KEY),
        (_PgError("22P02"), Violation.INVALID_TEXT),
        (_PgError("22001"), Violation.TRUNCATION),
        (_PgError("23514"), Violation.TRUNCATION),
        (_PgError("40001"), None),
        (Exception("UNIQUE constraint failed: things.key"), Violation.UNIQUE),
        (Exception("FOREIGN KEY constraint failed"), Violation.FOREIGN_KEY),
        (Exception("CHECK constraint failed: things_owner_length"), Violation.TRUNCATION),
        (Exception("disk I/O error"), None),
    ],
)
def test_classify(orig, expected):
    err = IntegrityError("INSERT ...", {}, orig)
    assert classify(err) is expected
