"""Pydantic schemas for headache entries.

Learn: Separate schemas for create/update/read keeps the API clean.
- HeadacheCreate: what you POST (timestamp defaults to now)
- HeadacheUpdate: what you PATCH (all optional, at least one required)
- HeadacheRead: what the API returns
"""

from typing import Optional

from pydantic import BaseModel

from headacher.schemas._common import Aura, Severity, UtcDatetime


class HeadacheCreate(BaseModel):
    severity: Severity
    aura: Aura = 0
    timestamp: Optional[UtcDatetime] = None


class HeadacheUpdate(BaseModel):
    """Partial update — only non-None fields are applied."""
    timestamp: Optional[UtcDatetime] = None
    severity: Optional[Severity] = None
    aura: Optional[Aura] = None


class HeadacheRead(BaseModel):
    id: int
    timestamp: UtcDatetime
    severity: int
    aura: int

    model_config = {"from_attributes": True}


class HeadacheList(BaseModel):
    items: list[HeadacheRead]
