"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and realtime stats are open; orders and
products require a valid JWT, and individual routes narrow that down by
role with require_role().
"""

from fastapi import APIRouter, Depends

from stallpos.api.health import router as health_router
from stallpos.api.orders import router as orders_router
from stallpos.api.products import router as products_router
from stallpos.api.realtime import router as realtime_router
from stallpos.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(realtime_router, tags=["realtime"])

# Protected routes — require valid JWT
api_router.include_router(orders_router, tags=["orders"], dependencies=_auth)
api_router.include_router(products_router, tags=["products"], dependencies=_auth)
