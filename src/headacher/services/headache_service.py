"""Headache service — account-scoped CRUD for severity entries.

Learn: Every statement here carries `account_id == <resolved id>`.
A row owned by another account is indistinguishable from a missing
one: get/update/delete all return "not found".
"""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.db.models import Headache, ensure_utc, utcnow

logger = structlog.get_logger()


class HeadacheService:
    def __init__(self, db: AsyncSession, account_id: str):
        self.db = db
        self.account_id = account_id

    # ─── Create ──────────────────────────────────────────

    async def create_headache(
        self,
        severity: int,
        aura: int = 0,
        timestamp: Optional[datetime] = None,
    ) -> Headache:
        headache = Headache(
            account_id=self.account_id,
            timestamp=ensure_utc(timestamp) if timestamp else utcnow(),
            severity=severity,
            aura=aura,
        )
        self.db.add(headache)
        await self.db.commit()
        await self.db.refresh(headache)
        logger.info("headache.created", account_id=self.account_id, id=headache.id)
        return headache

    # ─── Read ────────────────────────────────────────────

    async def get_headache(self, headache_id: int) -> Optional[Headache]:
        result = await self.db.execute(
            select(Headache).where(
                Headache.id == headache_id,
                Headache.account_id == self.account_id,
            )
        )
        return result.scalars().first()

    async def list_headaches(
        self,
        limit: int = 50,
        offset: int = 0,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        severity_min: Optional[int] = None,
        severity_max: Optional[int] = None,
    ) -> list[Headache]:
        """Newest first, with optional time window and severity range."""
        query = (
            select(Headache)
            .where(Headache.account_id == self.account_id)
            .order_by(Headache.timestamp.desc(), Headache.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if since:
            query = query.where(Headache.timestamp >= ensure_utc(since))
        if until:
            query = query.where(Headache.timestamp <= ensure_utc(until))
        if severity_min is not None:
            query = query.where(Headache.severity >= severity_min)
        if severity_max is not None:
            query = query.where(Headache.severity <= severity_max)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ─── Update / delete ─────────────────────────────────

    async def update_headache(self, headache_id: int, **changes) -> Optional[Headache]:
        """Apply non-None changes. Returns None if the entry isn't ours."""
        headache = await self.get_headache(headache_id)
        if not headache:
            return None

        for field, value in changes.items():
            if value is not None:
                setattr(headache, field, value)
        await self.db.commit()
        await self.db.refresh(headache)
        return headache

    async def delete_headache(self, headache_id: int) -> bool:
        result = await self.db.execute(
            delete(Headache).where(
                Headache.id == headache_id,
                Headache.account_id == self.account_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0
