"""Composable WHERE-clause fragments for the filtered retrieval queries.

Every filter value ends up as a bound parameter; nothing supplied by a caller
is formatted into the statement text.
"""
from __future__ import annotations

import json
from typing import Any, Iterator

from sqlalchemy import and_, case, func, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql.elements import ColumnElement


class Conditions:
    """Accumulates conjunctive clauses for a select statement; ``None`` clauses are skipped."""

    def __init__(self, *clauses: ColumnElement | None) -> None:
        self.clauses: list[ColumnElement] = []
        for clause in clauses:
            self.add(clause)

    def add(self, clause: ColumnElement | None) -> "Conditions":
        if clause is not None:
            self.clauses.append(clause)
        return self

    def apply(self, statement):
        if not self.clauses:
            return statement
        return statement.where(*self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)


def name_predicate(column, name: str | None) -> ColumnElement | None:
    """Case-insensitive substring match, or ``None`` for an empty filter."""
    if not name:
        return None
    return column.icontains(name, autoescape=True)


def metadata_predicate(column, metadata: dict[str, Any] | None, dialect: str) -> ColumnElement | None:
    """Match rows whose stored metadata contains ``metadata`` as a subset.

    PostgreSQL evaluates this natively with JSONB ``@>``.  Other engines get
    an emulation over SQLite's ``json_each``: every filter key must appear
    among the object's entries (keys are compared as bound values, so quotes
    and dots in keys need no escaping), nested objects recurse, and scalars
    must match in both value and JSON type.  Lists are compared as whole
    compact JSON documents, so a list filter only matches an identical list.
    """
    if not metadata:
        return None
    if dialect == "postgresql":
        return type_coerce(column, JSONB).contains(metadata)
    return and_(*_object_predicates(column, metadata))


def _object_predicates(document, metadata: dict[str, Any]) -> Iterator[ColumnElement]:
    for key, value in metadata.items():
        entry = func.json_each(document).table_valued("key", "value", "type")
        clauses = [entry.c.key == key, *_value_predicates(entry, value)]
        yield select(entry.c.key).where(*clauses).exists()


def _value_predicates(entry, value: Any) -> Iterator[ColumnElement]:
    if isinstance(value, dict):
        yield entry.c.type == "object"
        if value:
            # json_each() rejects non-JSON text, so only descend into objects
            nested = case((entry.c.type == "object", entry.c.value), else_="{}")
            yield from _object_predicates(nested, value)
    elif isinstance(value, (list, tuple)):
        yield entry.c.type == "array"
        yield entry.c.value == json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    elif value is None:
        yield entry.c.type == "null"
    elif isinstance(value, bool):
        yield entry.c.type == ("true" if value else "false")
    elif isinstance(value, (int, float)):
        yield entry.c.type.in_(("integer", "real"))
        yield entry.c.value == value
    else:
        yield entry.c.type == "text"
        yield entry.c.value == str(value)
