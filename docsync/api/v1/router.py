from fastapi import APIRouter

from docsync.api.v1.endpoints import cron

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(cron.router, prefix="/cron", tags=["Cron"])

__all__ = ["api_router"]
