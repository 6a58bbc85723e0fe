from typing import Callable, TypeVar

from sqlalchemy import event, func
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session, select

from . import models  # noqa: F401  registers the tables on SQLModel.metadata
from .settings import settings, configure_logging

T = TypeVar("T")

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # sqlite ignores FOREIGN KEY / ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def make_engine(url: str | None = None, **kwargs) -> Engine:
    engine = create_engine(url or settings.database_url, pool_pre_ping=True, echo=settings.db_echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine

engine = make_engine()

def init_db(bind: Engine | None = None):
    configure_logging()
    SQLModel.metadata.create_all(bind or engine)

def get_session(bind: Engine | None = None):
    # 👇 rows stay readable after commit and after the session closes
    return Session(bind or engine, expire_on_commit=False)

def execute(bind: Engine, statement) -> int:
    """Run a single write statement in its own transaction; returns the affected row count."""
    with bind.begin() as conn:
        return conn.execute(statement).rowcount

def fetch_page(bind: Engine, statement, offset: int, limit: int, convert: Callable[..., T]) -> tuple[list[T], int]:
    """Return one page of ``statement`` and the total number of rows it matches.

    The total is counted over the same statement (ordering dropped), so it
    always uses the same predicates as the page itself.
    """
    with get_session(bind) as session:
        rows = session.exec(statement.offset(offset).limit(limit)).all()
        counted = statement.order_by(None).subquery()
        total = session.exec(select(func.count()).select_from(counted)).one()
    return [convert(row) for row in rows], total
