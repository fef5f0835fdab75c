"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without modifying individual handlers. Health and auth routers are
open; the auth routes that need a session declare it themselves.
"""

from fastapi import APIRouter, Depends

from headacher.api.auth import router as auth_router
from headacher.api.dashboard import router as dashboard_router
from headacher.api.events import router as events_router
from headacher.api.headaches import router as headaches_router
from headacher.api.health import router as health_router
from headacher.auth.dependencies import get_current_account

# All protected routers require a session token
_auth = [Depends(get_current_account)]

api_router = APIRouter(prefix="/api")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: every query is scoped to the token's account
api_router.include_router(headaches_router, tags=["headaches"], dependencies=_auth)
api_router.include_router(events_router, tags=["events"], dependencies=_auth)
api_router.include_router(dashboard_router, tags=["dashboard"], dependencies=_auth)
