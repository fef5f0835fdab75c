"""Event service — account-scoped CRUD for timeline events."""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.db.models import TimelineEvent, ensure_utc, utcnow

logger = structlog.get_logger()


class EventService:
    def __init__(self, db: AsyncSession, account_id: str):
        self.db = db
        self.account_id = account_id

    async def create_event(
        self,
        event_type: str,
        value: str,
        timestamp: Optional[datetime] = None,
    ) -> TimelineEvent:
        event = TimelineEvent(
            account_id=self.account_id,
            timestamp=ensure_utc(timestamp) if timestamp else utcnow(),
            event_type=event_type,
            value=value,
        )
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        logger.info("event.created", account_id=self.account_id, id=event.id)
        return event

    async def get_event(self, event_id: int) -> Optional[TimelineEvent]:
        result = await self.db.execute(
            select(TimelineEvent).where(
                TimelineEvent.id == event_id,
                TimelineEvent.account_id == self.account_id,
            )
        )
        return result.scalars().first()

    async def list_events(
        self,
        limit: int = 50,
        offset: int = 0,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> list[TimelineEvent]:
        query = (
            select(TimelineEvent)
            .where(TimelineEvent.account_id == self.account_id)
            .order_by(TimelineEvent.timestamp.desc(), TimelineEvent.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if since:
            query = query.where(TimelineEvent.timestamp >= ensure_utc(since))
        if until:
            query = query.where(TimelineEvent.timestamp <= ensure_utc(until))
        if event_type:
            query = query.where(TimelineEvent.event_type == event_type)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_event_types(self) -> list[str]:
        """Distinct event types this account has used, alphabetically."""
        result = await self.db.execute(
            select(TimelineEvent.event_type)
            .where(TimelineEvent.account_id == self.account_id)
            .distinct()
            .order_by(TimelineEvent.event_type)
        )
        return list(result.scalars().all())

    async def update_event(self, event_id: int, **changes) -> Optional[TimelineEvent]:
        event = await self.get_event(event_id)
        if not event:
            return None

        for field, value in changes.items():
            if value is not None:
                setattr(event, field, value)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def delete_event(self, event_id: int) -> bool:
        result = await self.db.execute(
            delete(TimelineEvent).where(
                TimelineEvent.id == event_id,
                TimelineEvent.account_id == self.account_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0
