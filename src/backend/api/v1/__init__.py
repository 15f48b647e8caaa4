"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin import router as admin_router
from api.v1.poll import router as poll_router

router = APIRouter()

router.include_router(poll_router, prefix="/poll", tags=["Weekly Poll"])
router.include_router(admin_router, prefix="/poll", tags=["Weekly Poll Administration"])
