import logging

from sqlalchemy.engine import Engine

from .db import get_session
from .models import MessageRow
from .schemas import Message

log = logging.getLogger("devicehub.writers")

class MessageWriter:
    """Append-only message storage; messages are never updated or deleted."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save(self, *messages: Message) -> None:
        with get_session(self.engine) as session:
            session.add_all([MessageRow.from_message(m) for m in messages])
            session.commit()
        log.debug("stored %d messages", len(messages))
