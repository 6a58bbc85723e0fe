from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone

import pytest

from devicehub import MalformedEntityError, Message

SUBTOPIC = "subtopic"
MSGS_NUM = 42
VALUE_FIELDS = 5


@pytest.fixture()
def stored(writer):
    channel = str(uuid.uuid4())
    publisher = str(uuid.uuid4())
    now = int(time.time())
    messages = []
    for i in range(MSGS_NUM):
        # mix value kinds and value sums
        fields = {"channel": channel, "publisher": publisher, "protocol": "mqtt", "time": float(now - i)}
        count = i % VALUE_FIELDS
        if count == 0:
            fields.update(subtopic=SUBTOPIC, value=5)
        elif count == 1:
            fields.update(bool_value=False)
        elif count == 2:
            fields.update(string_value="value")
        elif count == 3:
            fields.update(data_value="base64data")
        else:
            fields.update(value_sum=45)
        messages.append(Message(**fields))
    writer.save(*messages)
    return channel, publisher, now, messages


def test_read_all_returns_every_message_newest_first(reader, stored):
    channel, _, _, messages = stored
    page = reader.read_all(channel, 0, MSGS_NUM)
    assert page.total == MSGS_NUM
    assert page.items == messages


def test_read_last_page(reader, stored):
    channel, _, _, messages = stored
    page = reader.read_all(channel, 40, 5)
    assert (page.total, page.offset, page.limit) == (MSGS_NUM, 40, 5)
    assert page.items == messages[40:42]


def test_read_unknown_channel_is_empty(reader, stored):
    page = reader.read_all(str(uuid.uuid4()), 0, MSGS_NUM)
    assert page.total == 0
    assert page.items == []


def test_read_by_subtopic(reader, stored):
    channel, _, _, messages = stored
    expected = [m for m in messages if m.subtopic == SUBTOPIC]
    page = reader.read_all(channel, 0, MSGS_NUM, {"subtopic": SUBTOPIC})
    assert page.total == len(expected)
    assert page.items == expected

    assert reader.read_all(channel, 0, MSGS_NUM, {"subtopic": "not-present"}).total == 0


def test_read_by_publisher_and_protocol(reader, stored):
    channel, publisher, _, _ = stored
    page = reader.read_all(channel, 0, MSGS_NUM, {"publisher": publisher, "protocol": "mqtt"})
    assert page.total == MSGS_NUM
    assert reader.read_all(channel, 0, MSGS_NUM, {"protocol": "http"}).total == 0


def test_read_time_range_is_inclusive(reader, stored):
    channel, _, now, messages = stored
    page = reader.read_all(channel, 0, MSGS_NUM, {"from": now - 9, "to": str(now)})
    assert page.total == 10
    assert page.items == messages[:10]


def test_read_time_range_accepts_iso_timestamps(reader, stored):
    channel, _, now, _ = stored
    since = datetime.fromtimestamp(now - 4, tz=timezone.utc).isoformat()
    assert reader.read_all(channel, 0, MSGS_NUM, {"from": since}).total == 5


@pytest.mark.parametrize(
    "query, expected",
    [
        ({"value": "5"}, 9),
        ({"value": 5, "comparator": "ge"}, 9),
        ({"value": "6", "comparator": "<"}, 9),
        ({"value": "5", "comparator": "gt"}, 0),
        ({"valueSum": "45"}, 8),
    ],
)
def test_read_by_value(reader, stored, query, expected):
    channel = stored[0]
    assert reader.read_all(channel, 0, MSGS_NUM, query).total == expected


def test_read_ignores_unknown_filters(reader, stored):
    channel = stored[0]
    assert reader.read_all(channel, 0, MSGS_NUM, {"colour": "blue"}).total == MSGS_NUM


@pytest.mark.parametrize(
    "query",
    [{"value": "five"}, {"value": "5", "comparator": "like"}, {"from": "yesterday"}],
)
def test_read_rejects_malformed_filters(reader, stored, query):
    with pytest.raises(MalformedEntityError):
        reader.read_all(stored[0], 0, MSGS_NUM, query)


def test_message_holds_single_value():
    with pytest.raises(ValueError):
        Message(channel="c", publisher="p", protocol="mqtt", time=0, value=1, string_value="x")
