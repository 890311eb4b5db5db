"""
Health check endpoints.
/health always returns 200 and reports dependency state; /health/ready
answers whether the service can take work.
"""

from typing import Optional

from fastapi import APIRouter, Response, status
from redis import asyncio as aioredis
from sqlalchemy import text

from docverify.config import settings
from docverify.models.database import async_session_factory

router = APIRouter(tags=["health"])


async def _check_database() -> tuple[bool, Optional[str]]:
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1, None
    except Exception as e:
        return False, str(e)[:200]


async def _check_redis() -> tuple[bool, Optional[str]]:
    client = aioredis.Redis.from_url(settings.REDIS_URL)
    try:
        return bool(await client.ping()), None
    except Exception as e:
        return False, str(e)[:200]
    finally:
        await client.aclose()


@router.get("/health")
async def health_check():
    """Liveness plus dependency report. Never fails."""
    db_ok, db_error = await _check_database()
    redis_ok, redis_error = await _check_redis()

    response = {
        "status": "healthy" if db_ok and redis_ok else "degraded",
        "version": settings.APP_VERSION,
        "pipeline_version": settings.PIPELINE_VERSION,
        "ocr_enabled": settings.ENABLE_OCR,
        "database": "connected" if db_ok else "unreachable",
        "redis": "connected" if redis_ok else "unreachable",
    }
    if db_error:
        response["database_error"] = db_error
    if redis_error:
        response["redis_error"] = redis_error
    return response


@router.get("/health/ready")
async def readiness_check(response: Response):
    """503 until both the database and Redis answer."""
    db_ok, _ = await _check_database()
    redis_ok, _ = await _check_redis()
    ready = db_ok and redis_ok
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"ready": ready, "database": db_ok, "redis": redis_ok}
