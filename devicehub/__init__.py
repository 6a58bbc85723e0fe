"""Persistence and access-control layer for things, channels and their messages."""
from .channels import ChannelRepository
from .connections import ConnectionRepository
from .db import get_session, init_db, make_engine
from .errors import (
    ConflictError,
    DeviceHubError,
    MalformedEntityError,
    NotFoundError,
    ScanMetadataError,
    UnauthorizedAccessError,
)
from .readers import MessageReader
from .schemas import Channel, Message, Page, Thing
from .things import ThingRepository
from .writers import MessageWriter
