"""Serialization contract for the open-ended metadata attached to things and channels."""
from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

from .errors import MalformedEntityError, ScanMetadataError

Metadata = dict[str, Any]


def encode_metadata(metadata: Metadata | None) -> str:
    """Serialize ``metadata`` to compact JSON text; empty metadata becomes ``{}``."""
    if not metadata:
        return "{}"
    if not isinstance(metadata, dict):
        raise MalformedEntityError("metadata must be a mapping")
    try:
        return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise MalformedEntityError(f"metadata is not serializable: {err}") from err


def decode_metadata(raw: Any) -> Metadata:
    if raw is None:
        return {}
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as err:
            raise ScanMetadataError(f"stored metadata is not valid JSON: {err}") from err
    if not isinstance(raw, dict):
        raise ScanMetadataError(f"stored metadata is a {type(raw).__name__}, not an object")
    return raw


class MetadataType(TypeDecorator):
    """JSONB on PostgreSQL (for ``@>`` containment), JSON text everywhere else."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        text = encode_metadata(value)
        if dialect.name == "postgresql":
            # JSONB serializes on its own
            return value or {}
        return text

    def process_result_value(self, value, dialect):
        return decode_metadata(value)
