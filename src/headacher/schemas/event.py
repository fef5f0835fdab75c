"""Pydantic schemas for timeline events."""

from typing import Optional

from pydantic import BaseModel

from headacher.schemas._common import EventType, UtcDatetime


class EventCreate(BaseModel):
    event_type: EventType
    value: str
    timestamp: Optional[UtcDatetime] = None


class EventUpdate(BaseModel):
    """Partial update — only non-None fields are applied."""
    timestamp: Optional[UtcDatetime] = None
    event_type: Optional[EventType] = None
    value: Optional[str] = None


class EventRead(BaseModel):
    id: int
    timestamp: UtcDatetime
    event_type: str
    value: str

    model_config = {"from_attributes": True}


class EventList(BaseModel):
    items: list[EventRead]


class EventTypes(BaseModel):
    types: list[str]
