"""
FastAPI dependency injection.
Provides the document repository, the inline pipeline and API key validation.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from docverify.config import settings
from docverify.events.publisher import RedisStreamPublisher
from docverify.pipeline.orchestrator import VerificationPipeline
from docverify.repository.documents import DocumentRepository, SqlDocumentRepository


# ── Singleton instances ──────────────────────────────────────
_repository: Optional[SqlDocumentRepository] = None
_publisher: Optional[RedisStreamPublisher] = None


def get_repository() -> DocumentRepository:
    global _repository
    if _repository is None:
        _repository = SqlDocumentRepository()
    return _repository


def get_publisher() -> RedisStreamPublisher:
    global _publisher
    if _publisher is None:
        _publisher = RedisStreamPublisher()
    return _publisher


def get_pipeline() -> VerificationPipeline:
    """Pipeline wired the same way as the worker, for inline runs."""
    from docverify.worker.jobs import build_pipeline
    return build_pipeline(get_publisher())


async def close_publisher() -> None:
    global _publisher
    if _publisher is not None:
        await _publisher.close()
        _publisher = None


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key
