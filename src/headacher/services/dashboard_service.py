"""Dashboard service — one account's headaches and events over a window.

Learn: The window is [now - days, now]. Both series come back oldest
first, ready to plot. start_date/end_date are the UTC calendar dates of
the window edges.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.db.models import Headache, TimelineEvent, utcnow


class DashboardService:
    def __init__(self, db: AsyncSession, account_id: str):
        self.db = db
        self.account_id = account_id

    async def summary(self, days: int = 30, now: Optional[datetime] = None) -> dict:
        end = now or utcnow()
        start = end - timedelta(days=days)

        headaches = await self.db.execute(
            select(Headache)
            .where(
                Headache.account_id == self.account_id,
                Headache.timestamp >= start,
                Headache.timestamp <= end,
            )
            .order_by(Headache.timestamp, Headache.id)
        )
        events = await self.db.execute(
            select(TimelineEvent)
            .where(
                TimelineEvent.account_id == self.account_id,
                TimelineEvent.timestamp >= start,
                TimelineEvent.timestamp <= end,
            )
            .order_by(TimelineEvent.timestamp, TimelineEvent.id)
        )

        return {
            "days_requested": days,
            "start_date": start.date(),
            "end_date": end.date(),
            "headaches": list(headaches.scalars().all()),
            "events": list(events.scalars().all()),
        }
