"""Thing <-> channel connections."""
from __future__ import annotations

import logging

from sqlalchemy import delete, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import select

from .db import execute, get_session
from .errors import NotFoundError, Violation, classify
from .ids import is_valid_id
from .models import ConnectionRow

log = logging.getLogger("devicehub.connections")


def _translate_write_error(err: DBAPIError) -> None:
    violation = classify(err)
    if violation in (Violation.FOREIGN_KEY, Violation.INVALID_TEXT):
        raise NotFoundError("channel or thing not found") from err


class ConnectionRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def connect(self, owner: str, channel_id: str, thing_id: str) -> None:
        """Connect a thing to a channel, both owned by ``owner``.

        Connecting an already connected pair succeeds without a second row:
        the insert is attempted and a primary-key violation counts as success.
        """
        if not (is_valid_id(channel_id) and is_valid_id(thing_id)):
            raise NotFoundError("channel or thing not found")
        stmt = insert(ConnectionRow).values(
            channel_id=channel_id,
            channel_owner=owner,
            thing_id=thing_id,
            thing_owner=owner,
        )
        try:
            execute(self.engine, stmt)
        except DBAPIError as err:
            if classify(err) is Violation.UNIQUE:
                log.debug("connect: thing %s already on channel %s", thing_id, channel_id)
                return
            _translate_write_error(err)
            raise

    def disconnect(self, owner: str, channel_id: str, thing_id: str) -> None:
        stmt = delete(ConnectionRow).where(
            ConnectionRow.channel_id == channel_id,
            ConnectionRow.channel_owner == owner,
            ConnectionRow.thing_id == thing_id,
            ConnectionRow.thing_owner == owner,
        )
        if execute(self.engine, stmt) == 0:
            raise NotFoundError("connection not found")

    def exists(self, channel_id: str, thing_id: str) -> bool:
        """Whether the pair is connected; not scoped by owner."""
        stmt = select(ConnectionRow.thing_id).where(
            ConnectionRow.channel_id == channel_id, ConnectionRow.thing_id == thing_id
        ).limit(1)
        with get_session(self.engine) as session:
            return session.exec(stmt).first() is not None
