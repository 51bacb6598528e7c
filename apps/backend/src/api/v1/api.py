from fastapi import APIRouter, Depends

from dependencies.auth import get_current_user

from .ai import router as ai_router
from .health import router as health_router
from .realtime import router as realtime_router, ws_router as realtime_ws_router


# Public API router (health)
api_router = APIRouter()

# Include public routers
api_router.include_router(health_router, tags=["health"])


# Protected routers: include with a router-level dependency so all routes
# require authentication by default. Use get_current_user dependency to
# surface the OAuth2 security scheme in OpenAPI as well.
protected_deps = [Depends(get_current_user)]
api_router.include_router(ai_router, dependencies=protected_deps)
api_router.include_router(realtime_router, dependencies=protected_deps)
# The session socket authenticates with its signed room token instead of the
# bearer header, which browsers cannot set on WebSocket upgrades.
api_router.include_router(realtime_ws_router)
