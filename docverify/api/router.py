"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from docverify.api.documents import router as documents_router
from docverify.api.health import router as health_router
from docverify.api.verifications import router as verifications_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(verifications_router)
api_router.include_router(documents_router)
