"""Shared field types for API schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, Field

from headacher.db.models import ensure_utc

# Naive input is taken as UTC; SQLite also reads timestamps back naive.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must be a non-empty string")
    return value


EventType = Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_non_blank)]
Severity = Annotated[int, Field(ge=0, le=10)]
Aura = Annotated[int, Field(ge=0, le=1)]
