"""Owner-scoped persistence for channels, and the publish-path authorization checks."""
from __future__ import annotations

import logging

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import select

from .connections import ConnectionRepository
from .db import execute, fetch_page, get_session
from .errors import ConflictError, MalformedEntityError, NotFoundError, UnauthorizedAccessError, Violation, classify
from .ids import is_valid_id, new_id
from .models import ChannelRow, ConnectionRow
from .predicates import Conditions, metadata_predicate, name_predicate
from .schemas import Channel, Page
from .things import ThingRepository

log = logging.getLogger("devicehub.channels")


def _translate_write_error(err: DBAPIError) -> None:
    violation = classify(err)
    if violation in (Violation.INVALID_TEXT, Violation.TRUNCATION):
        log.debug("channel rejected by storage: %s", violation.value)
        raise MalformedEntityError(str(err.orig)) from err
    if violation is Violation.UNIQUE:
        raise ConflictError("channel id already exists") from err


class ChannelRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.things = ThingRepository(engine)
        self.connections = ConnectionRepository(engine)

    def save(self, channel: Channel) -> str:
        if channel.id and not is_valid_id(channel.id):
            raise MalformedEntityError(f"channel id {channel.id!r} is not a UUID")
        if not channel.id:
            channel = channel.model_copy(update={"id": new_id()})
        row = ChannelRow.from_channel(channel)
        with get_session(self.engine) as session:
            session.add(row)
            try:
                session.commit()
            except DBAPIError as err:
                session.rollback()
                _translate_write_error(err)
                raise
        return channel.id

    def update(self, channel: Channel) -> None:
        row = ChannelRow.from_channel(channel)
        stmt = (
            update(ChannelRow)
            .where(ChannelRow.owner == row.owner, ChannelRow.id == row.id)
            .values({ChannelRow.name: row.name, ChannelRow.metadata_: row.metadata_})
        )
        try:
            count = execute(self.engine, stmt)
        except DBAPIError as err:
            _translate_write_error(err)
            raise
        if count == 0:
            raise NotFoundError("channel not found")

    def retrieve_by_id(self, owner: str, id: str) -> Channel:
        if not is_valid_id(id):
            raise NotFoundError("channel not found")
        with get_session(self.engine) as session:
            row = session.exec(select(ChannelRow).where(ChannelRow.id == id, ChannelRow.owner == owner)).first()
        if row is None:
            raise NotFoundError("channel not found")
        return row.to_channel()

    def retrieve_all(
        self,
        owner: str,
        offset: int = 0,
        limit: int = 10,
        name: str = "",
        metadata: dict | None = None,
    ) -> Page[Channel]:
        where = Conditions(
            ChannelRow.owner == owner,
            metadata_predicate(ChannelRow.metadata_, metadata, self.engine.dialect.name),
            name_predicate(ChannelRow.name, name),
        )
        stmt = where.apply(select(ChannelRow)).order_by(ChannelRow.id)
        items, total = fetch_page(self.engine, stmt, offset, limit, ChannelRow.to_channel)
        return Page[Channel](total=total, offset=offset, limit=limit, items=items)

    def retrieve_by_thing(self, owner: str, thing_id: str, offset: int = 0, limit: int = 10) -> Page[Channel]:
        if not is_valid_id(thing_id):
            return Page[Channel](total=0, offset=offset, limit=limit)
        stmt = (
            select(ChannelRow)
            .join(ConnectionRow, ChannelRow.id == ConnectionRow.channel_id)
            .where(ChannelRow.owner == owner, ConnectionRow.thing_id == thing_id)
            .order_by(ChannelRow.id)
        )
        items, total = fetch_page(self.engine, stmt, offset, limit, ChannelRow.to_channel)
        return Page[Channel](total=total, offset=offset, limit=limit, items=items)

    def remove(self, owner: str, id: str) -> None:
        count = execute(self.engine, delete(ChannelRow).where(ChannelRow.id == id, ChannelRow.owner == owner))
        if count == 0:
            log.debug("remove: channel %s of %s already absent", id, owner)

    def has_thing(self, channel_id: str, key: str) -> str:
        """Return the id of the thing holding ``key`` if it is connected to ``channel_id``."""
        thing_id = self.things.retrieve_by_key(key)
        self.has_thing_by_id(channel_id, thing_id)
        return thing_id

    def has_thing_by_id(self, channel_id: str, thing_id: str) -> None:
        if not self.connections.exists(channel_id, thing_id):
            raise UnauthorizedAccessError(f"thing {thing_id} is not connected to channel {channel_id}")
