from __future__ import annotations

import pytest

from devicehub import (
    ChannelRepository,
    ConnectionRepository,
    MessageReader,
    MessageWriter,
    ThingRepository,
    init_db,
    make_engine,
)


@pytest.fixture()
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'devicehub.sqlite'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def things(engine):
    return ThingRepository(engine)


@pytest.fixture()
def channels(engine):
    return ChannelRepository(engine)


@pytest.fixture()
def connections(engine):
    return ConnectionRepository(engine)


@pytest.fixture()
def reader(engine):
    return MessageReader(engine)


@pytest.fixture()
def writer(engine):
    return MessageWriter(engine)
