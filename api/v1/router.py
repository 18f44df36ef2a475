"""
API v1 router. Everything under /api/v1/admin requires an admin user.
"""

from fastapi import APIRouter, Depends

from .auth import require_admin
from .pool.routes import router as pool_router
from .settings.routes import router as settings_router

admin_router = APIRouter(
    prefix="/admin",
    dependencies=[Depends(require_admin)],
)

admin_router.include_router(pool_router)
admin_router.include_router(settings_router)

router = APIRouter(prefix="/api/v1")

router.include_router(admin_router)
