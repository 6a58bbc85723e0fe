from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


class Thing(BaseModel):
    id: str = ""
    owner: str = ""
    name: str = ""
    key: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

class Channel(BaseModel):
    id: str = ""
    owner: str = ""
    name: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

class Message(BaseModel):
    channel: str
    publisher: str
    protocol: str
    subtopic: str = ""
    time: float
    value: float | None = None
    bool_value: bool | None = None
    string_value: str | None = None
    data_value: str | None = None
    value_sum: float | None = None

    @model_validator(mode="after")
    def _single_value(self):
        values = [self.value, self.bool_value, self.string_value, self.data_value]
        if sum(v is not None for v in values) > 1:
            raise ValueError("a message carries at most one value")
        return self

class Page(BaseModel, Generic[T]):
    total: int = 0
    offset: int = 0
    limit: int = 0
    items: list[T] = Field(default_factory=list)
