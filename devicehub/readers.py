"""Filtered, paginated reads of stored channel messages."""
from __future__ import annotations

import logging
import operator
from datetime import timezone
from typing import Any, Mapping

from dateutil import parser as dtparser
from sqlalchemy.engine import Engine
from sqlmodel import select

from .db import fetch_page
from .errors import MalformedEntityError
from .models import MessageRow
from .predicates import Conditions
from .schemas import Message, Page

log = logging.getLogger("devicehub.readers")

COMPARATORS = {
    "eq": operator.eq,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
    "=": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

EXACT_FILTERS = ("subtopic", "publisher", "protocol")


def _parse_float(key: str, raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError) as err:
        raise MalformedEntityError(f"{key} must be numeric, got {raw!r}") from err


def _parse_time(key: str, raw: Any) -> float:
    """Epoch seconds from a number or from ISO-8601 text (naive times are UTC)."""
    try:
        return float(raw)
    except (TypeError, ValueError):
        pass
    try:
        ts = dtparser.isoparse(raw)
    except (TypeError, ValueError) as err:
        raise MalformedEntityError(f"{key} is neither epoch seconds nor ISO-8601: {raw!r}") from err
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


class MessageReader:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def read_all(
        self,
        channel_id: str,
        offset: int = 0,
        limit: int = 10,
        query: Mapping[str, Any] | None = None,
    ) -> Page[Message]:
        """Read a page of ``channel_id`` messages, newest first.

        ``query`` keys: ``subtopic``, ``publisher``, ``protocol`` (exact),
        ``from``/``to`` (inclusive time bounds), ``value`` with an optional
        ``comparator`` (default ``eq``) and ``valueSum``.  Other keys are ignored.
        """
        query = query or {}
        where = Conditions(MessageRow.channel == channel_id)
        for key in EXACT_FILTERS:
            if key in query:
                where.add(getattr(MessageRow, key) == query[key])
        if "from" in query:
            where.add(MessageRow.time >= _parse_time("from", query["from"]))
        if "to" in query:
            where.add(MessageRow.time <= _parse_time("to", query["to"]))
        if "value" in query:
            name = query.get("comparator") or "eq"
            compare = COMPARATORS.get(name)
            if compare is None:
                raise MalformedEntityError(f"unknown comparator {name!r}")
            where.add(compare(MessageRow.value, _parse_float("value", query["value"])))
        if "valueSum" in query:
            where.add(MessageRow.value_sum == _parse_float("valueSum", query["valueSum"]))

        log.debug("read_all channel=%s filters=%d offset=%d limit=%d", channel_id, len(where), offset, limit)
        stmt = where.apply(select(MessageRow)).order_by(MessageRow.time.desc(), MessageRow.id)
        items, total = fetch_page(self.engine, stmt, offset, limit, MessageRow.to_message)
        return Page[Message](total=total, offset=offset, limit=limit, items=items)
