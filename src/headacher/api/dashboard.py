"""Dashboard API — headaches and events over the last N days."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.dependencies import CurrentAccount, get_current_account
from headacher.db.engine import get_db
from headacher.schemas.dashboard import DashboardRead
from headacher.services.dashboard_service import DashboardService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    current: CurrentAccount = Depends(get_current_account),
) -> DashboardService:
    return DashboardService(db, current.account_id)


@router.get("/dashboard", response_model=DashboardRead)
async def get_dashboard(
    days: int = Query(30, ge=1, le=365),
    svc: DashboardService = Depends(_svc),
):
    return await svc.summary(days=days)
