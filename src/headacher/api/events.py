"""Timeline event API routes.

Learn: /events/types is registered before /events/{event_id} so the
literal path wins over the path parameter.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.dependencies import CurrentAccount, get_current_account
from headacher.db.engine import get_db
from headacher.schemas.event import (
    EventCreate,
    EventList,
    EventRead,
    EventTypes,
    EventUpdate,
)
from headacher.services.event_service import EventService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    current: CurrentAccount = Depends(get_current_account),
) -> EventService:
    return EventService(db, current.account_id)


@router.get("/events/types", response_model=EventTypes)
async def list_event_types(svc: EventService = Depends(_svc)):
    """Distinct event types used by the current account."""
    return {"types": await svc.list_event_types()}


@router.get("/events", response_model=EventList)
async def list_events(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    event_type: Optional[str] = Query(None, alias="type", description="Filter by event_type"),
    svc: EventService = Depends(_svc),
):
    """List events, newest first."""
    items = await svc.list_events(
        limit=limit, offset=offset, since=since, until=until, event_type=event_type
    )
    return {"items": items}


@router.post("/events", response_model=EventRead, status_code=201)
async def create_event(
    body: EventCreate,
    response: Response,
    svc: EventService = Depends(_svc),
):
    event = await svc.create_event(
        event_type=body.event_type, value=body.value, timestamp=body.timestamp
    )
    response.headers["Location"] = f"/api/events/{event.id}"
    return event


@router.get("/events/{event_id}", response_model=EventRead)
async def get_event(
    event_id: int = Path(..., ge=1),
    svc: EventService = Depends(_svc),
):
    event = await svc.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.patch("/events/{event_id}", response_model=EventRead)
async def update_event(
    body: EventUpdate,
    event_id: int = Path(..., ge=1),
    svc: EventService = Depends(_svc),
):
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    event = await svc.update_event(event_id, **changes)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: int = Path(..., ge=1),
    svc: EventService = Depends(_svc),
):
    if not await svc.delete_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return Response(status_code=204)
