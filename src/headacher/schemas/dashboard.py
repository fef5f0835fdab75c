"""Dashboard response schema."""

from datetime import date

from pydantic import BaseModel

from headacher.schemas._common import UtcDatetime


class DashboardHeadache(BaseModel):
    timestamp: UtcDatetime
    severity: int
    aura: int

    model_config = {"from_attributes": True}


class DashboardEvent(BaseModel):
    timestamp: UtcDatetime
    event_type: str
    value: str

    model_config = {"from_attributes": True}


class DashboardRead(BaseModel):
    days_requested: int
    start_date: date
    end_date: date
    headaches: list[DashboardHeadache]
    events: list[DashboardEvent]
