"""API route aggregation.

All routers registered here get mounted in main.py.

Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open.
"""

from fastapi import APIRouter, Depends

from lexdesk.api.auth import router as auth_router
from lexdesk.api.folders import router as folders_router
from lexdesk.api.health import router as health_router
from lexdesk.api.messages import router as messages_router
from lexdesk.api.notifications import router as notifications_router
from lexdesk.api.realtime import router as realtime_router
from lexdesk.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid JWT
api_router.include_router(notifications_router, tags=["notifications"], dependencies=_auth)
api_router.include_router(messages_router, tags=["messages"], dependencies=_auth)
api_router.include_router(folders_router, tags=["folders", "favorites"], dependencies=_auth)
api_router.include_router(realtime_router, tags=["realtime"], dependencies=_auth)
