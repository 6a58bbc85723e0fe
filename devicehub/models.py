from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKeyConstraint, UniqueConstraint
from sqlmodel import SQLModel, Field, Column

from .codec import MetadataType, encode_metadata
from .schemas import Channel, Message, Thing

ID_LENGTH = 36
OWNER_LENGTH = 254
NAME_LENGTH = 1024
KEY_LENGTH = 4096

def _length_checks(table: str, **limits: int) -> tuple:
    # sqlite ignores VARCHAR(n); the CHECK makes overflow fail on every engine
    return tuple(
        CheckConstraint(f"length({column}) <= {limit}", name=f"{table}_{column}_length")
        for column, limit in limits.items()
    )

class ThingRow(SQLModel, table=True):
    __tablename__ = "things"
    __table_args__ = (
        UniqueConstraint("id", "owner"),
        *_length_checks("things", owner=OWNER_LENGTH, name=NAME_LENGTH, key=KEY_LENGTH),
    )

    id: str = Field(primary_key=True, max_length=ID_LENGTH)
    owner: str = Field(index=True, max_length=OWNER_LENGTH)
    name: str = Field(default="", max_length=NAME_LENGTH)
    key: str = Field(unique=True, max_length=KEY_LENGTH)
    metadata_: dict = Field(default_factory=dict, sa_column=Column("metadata", MetadataType()))

    @classmethod
    def from_thing(cls, thing: Thing) -> "ThingRow":
        # fail on unserializable metadata before any statement runs
        encode_metadata(thing.metadata)
        return cls(id=thing.id, owner=thing.owner, name=thing.name, key=thing.key, metadata_=thing.metadata)

    def to_thing(self) -> Thing:
        return Thing(id=self.id, owner=self.owner, name=self.name, key=self.key, metadata=self.metadata_ or {})

class ChannelRow(SQLModel, table=True):
    __tablename__ = "channels"
    __table_args__ = (
        UniqueConstraint("id", "owner"),
        *_length_checks("channels", owner=OWNER_LENGTH, name=NAME_LENGTH),
    )

    id: str = Field(primary_key=True, max_length=ID_LENGTH)
    owner: str = Field(index=True, max_length=OWNER_LENGTH)
    name: str = Field(default="", max_length=NAME_LENGTH)
    metadata_: dict = Field(default_factory=dict, sa_column=Column("metadata", MetadataType()))

    @classmethod
    def from_channel(cls, channel: Channel) -> "ChannelRow":
        encode_metadata(channel.metadata)
        return cls(id=channel.id, owner=channel.owner, name=channel.name, metadata_=channel.metadata)

    def to_channel(self) -> Channel:
        return Channel(id=self.id, owner=self.owner, name=self.name, metadata=self.metadata_ or {})

class ConnectionRow(SQLModel, table=True):
    """Thing <-> channel relation; owners are denormalized for scoped deletes."""
    __tablename__ = "connections"
    __table_args__ = (
        ForeignKeyConstraint(
            ["channel_id", "channel_owner"], ["channels.id", "channels.owner"],
            ondelete="CASCADE", onupdate="CASCADE",
        ),
        ForeignKeyConstraint(
            ["thing_id", "thing_owner"], ["things.id", "things.owner"],
            ondelete="CASCADE", onupdate="CASCADE",
        ),
    )

    channel_id: str = Field(primary_key=True, max_length=ID_LENGTH)
    channel_owner: str = Field(max_length=OWNER_LENGTH)
    thing_id: str = Field(primary_key=True, max_length=ID_LENGTH)
    thing_owner: str = Field(max_length=OWNER_LENGTH)

class MessageRow(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    channel: str = Field(index=True, max_length=ID_LENGTH)
    subtopic: str = Field(default="", max_length=254)
    publisher: str = Field(max_length=ID_LENGTH)
    protocol: str = Field(max_length=64)
    value: Optional[float] = None
    bool_value: Optional[bool] = None
    string_value: Optional[str] = None
    data_value: Optional[str] = None
    value_sum: Optional[float] = None
    time: float = Field(index=True)

    @classmethod
    def from_message(cls, msg: Message) -> "MessageRow":
        return cls(**msg.model_dump())

    def to_message(self) -> Message:
        return Message(
            channel=self.channel, publisher=self.publisher, protocol=self.protocol,
            subtopic=self.subtopic or "", time=self.time,
            value=self.value, bool_value=self.bool_value,
            string_value=self.string_value, data_value=self.data_value,
            value_sum=self.value_sum,
        )
