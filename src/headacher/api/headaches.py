"""Headache API routes.

Learn: Routes translate HTTP to HeadacheService calls. The service is
built per request around the authenticated account id, so a handler
cannot forget to scope a query.

Key patterns:
- POST returns 201 with a Location header
- PATCH applies only the fields sent; an empty patch is a 400
- An entry owned by someone else is a plain 404
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.dependencies import CurrentAccount, get_current_account
from headacher.db.engine import get_db
from headacher.schemas.headache import (
    HeadacheCreate,
    HeadacheList,
    HeadacheRead,
    HeadacheUpdate,
)
from headacher.services.headache_service import HeadacheService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    current: CurrentAccount = Depends(get_current_account),
) -> HeadacheService:
    return HeadacheService(db, current.account_id)


@router.get("/headaches", response_model=HeadacheList)
async def list_headaches(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    since: Optional[datetime] = Query(None, description="Only entries at or after"),
    until: Optional[datetime] = Query(None, description="Only entries at or before"),
    severity_min: Optional[int] = Query(None, ge=0, le=10),
    severity_max: Optional[int] = Query(None, ge=0, le=10),
    svc: HeadacheService = Depends(_svc),
):
    """List headaches, newest first."""
    items = await svc.list_headaches(
        limit=limit,
        offset=offset,
        since=since,
        until=until,
        severity_min=severity_min,
        severity_max=severity_max,
    )
    return {"items": items}


@router.post("/headaches", response_model=HeadacheRead, status_code=201)
async def create_headache(
    body: HeadacheCreate,
    response: Response,
    svc: HeadacheService = Depends(_svc),
):
    headache = await svc.create_headache(
        severity=body.severity, aura=body.aura, timestamp=body.timestamp
    )
    response.headers["Location"] = f"/api/headaches/{headache.id}"
    return headache


@router.get("/headaches/{headache_id}", response_model=HeadacheRead)
async def get_headache(
    headache_id: int = Path(..., ge=1),
    svc: HeadacheService = Depends(_svc),
):
    headache = await svc.get_headache(headache_id)
    if not headache:
        raise HTTPException(status_code=404, detail="Headache not found")
    return headache


@router.patch("/headaches/{headache_id}", response_model=HeadacheRead)
async def update_headache(
    body: HeadacheUpdate,
    headache_id: int = Path(..., ge=1),
    svc: HeadacheService = Depends(_svc),
):
    """Partially update a headache (timestamp, severity, aura)."""
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    headache = await svc.update_headache(headache_id, **changes)
    if not headache:
        raise HTTPException(status_code=404, detail="Headache not found")
    return headache


@router.delete("/headaches/{headache_id}", status_code=204)
async def delete_headache(
    headache_id: int = Path(..., ge=1),
    svc: HeadacheService = Depends(_svc),
):
    if not await svc.delete_headache(headache_id):
        raise HTTPException(status_code=404, detail="Headache not found")
    return Response(status_code=204)
