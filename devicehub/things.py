"""Owner-scoped persistence for things."""
from __future__ import annotations

import logging

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import select

from .db import execute, fetch_page, get_session
from .errors import ConflictError, MalformedEntityError, NotFoundError, Violation, classify
from .ids import is_valid_id, new_id, new_key
from .models import ConnectionRow, ThingRow
from .predicates import Conditions, metadata_predicate, name_predicate
from .schemas import Page, Thing

log = logging.getLogger("devicehub.things")


def _translate_write_error(err: DBAPIError) -> None:
    violation = classify(err)
    if violation in (Violation.INVALID_TEXT, Violation.TRUNCATION):
        log.debug("thing rejected by storage: %s", violation.value)
        raise MalformedEntityError(str(err.orig)) from err
    if violation is Violation.UNIQUE:
        log.debug("thing conflicts with an existing row")
        raise ConflictError("thing id or key already exists") from err


class ThingRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save(self, thing: Thing) -> str:
        """Insert ``thing`` and return its id; id and key are generated when blank."""
        if thing.id and not is_valid_id(thing.id):
            raise MalformedEntityError(f"thing id {thing.id!r} is not a UUID")
        thing = thing.model_copy(update={"id": thing.id or new_id(), "key": thing.key or new_key()})
        row = ThingRow.from_thing(thing)
        with get_session(self.engine) as session:
            session.add(row)
            try:
                session.commit()
            except DBAPIError as err:
                session.rollback()
                _translate_write_error(err)
                raise
        return thing.id

    def update(self, thing: Thing) -> None:
        row = ThingRow.from_thing(thing)
        stmt = (
            update(ThingRow)
            .where(ThingRow.owner == row.owner, ThingRow.id == row.id)
            .values({ThingRow.name: row.name, ThingRow.metadata_: row.metadata_})
        )
        self._update(stmt)

    def update_key(self, owner: str, id: str, key: str) -> None:
        stmt = (
            update(ThingRow)
            .where(ThingRow.owner == owner, ThingRow.id == id)
            .values({ThingRow.key: key})
        )
        self._update(stmt)

    def _update(self, stmt) -> None:
        try:
            count = execute(self.engine, stmt)
        except DBAPIError as err:
            _translate_write_error(err)
            raise
        if count == 0:
            raise NotFoundError("thing not found")

    def retrieve_by_id(self, owner: str, id: str) -> Thing:
        if not is_valid_id(id):
            raise NotFoundError("thing not found")
        with get_session(self.engine) as session:
            row = session.exec(select(ThingRow).where(ThingRow.id == id, ThingRow.owner == owner)).first()
        if row is None:
            raise NotFoundError("thing not found")
        return row.to_thing()

    def retrieve_by_key(self, key: str) -> str:
        """Resolve an access key to the id of the thing holding it."""
        with get_session(self.engine) as session:
            id = session.exec(select(ThingRow.id).where(ThingRow.key == key)).first()
        if id is None:
            raise NotFoundError("thing not found")
        return id

    def retrieve_all(
        self,
        owner: str,
        offset: int = 0,
        limit: int = 10,
        name: str = "",
        metadata: dict | None = None,
    ) -> Page[Thing]:
        where = Conditions(
            ThingRow.owner == owner,
            metadata_predicate(ThingRow.metadata_, metadata, self.engine.dialect.name),
            name_predicate(ThingRow.name, name),
        )
        stmt = where.apply(select(ThingRow)).order_by(ThingRow.id)
        items, total = fetch_page(self.engine, stmt, offset, limit, ThingRow.to_thing)
        return Page[Thing](total=total, offset=offset, limit=limit, items=items)

    def retrieve_by_channel(self, owner: str, channel_id: str, offset: int = 0, limit: int = 10) -> Page[Thing]:
        """Things of ``owner`` connected to ``channel_id``; a malformed id yields an empty page."""
        if not is_valid_id(channel_id):
            return Page[Thing](total=0, offset=offset, limit=limit)
        stmt = (
            select(ThingRow)
            .join(ConnectionRow, ThingRow.id == ConnectionRow.thing_id)
            .where(ThingRow.owner == owner, ConnectionRow.channel_id == channel_id)
            .order_by(ThingRow.id)
        )
        items, total = fetch_page(self.engine, stmt, offset, limit, ThingRow.to_thing)
        return Page[Thing](total=total, offset=offset, limit=limit, items=items)

    def remove(self, owner: str, id: str) -> None:
        # removing an absent thing is not an error
        count = execute(self.engine, delete(ThingRow).where(ThingRow.id == id, ThingRow.owner == owner))
        if count == 0:
            log.debug("remove: thing %s of %s already absent", id, owner)
