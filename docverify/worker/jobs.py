"""
RQ job functions for the verification pipeline.
These are the entry points that the worker calls.
"""

import asyncio
from typing import Any, Optional

import structlog
from redis import Redis
from rq import Queue, Retry

from docverify.config import settings
from docverify.engines.base import OcrEngine
from docverify.events.audit import SqlAuditLogger
from docverify.events.publisher import RedisStreamPublisher, ResultPublisher
from docverify.models.database import close_db
from docverify.observability.metrics import worker_jobs_active
from docverify.pipeline.extractor import OcrExtractor
from docverify.pipeline.orchestrator import VerificationPipeline
from docverify.repository.documents import SqlDocumentRepository
from docverify.storage.file_store import LocalFileStorage

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the verification job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_verification(payload: dict[str, Any]) -> str:
    """
    Enqueue a verify-document message.
    RQ re-runs a job that raises up to JOB_MAX_RETRIES times.
    Returns the job ID.
    """
    q = get_queue()
    job = q.enqueue(
        verify_documents_job,
        payload,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        retry=Retry(max=settings.JOB_MAX_RETRIES),
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info(
        "job_enqueued",
        job_id=job.id,
        application_id=payload.get("applicationId"),
        event_id=payload.get("eventId"),
    )
    return job.id


def build_engine() -> Optional[OcrEngine]:
    """Tesseract when OCR is enabled; None makes the extractor use mock text."""
    if not settings.ENABLE_OCR:
        return None
    from docverify.engines.tesseract_engine import TesseractEngine
    return TesseractEngine(
        lang=settings.TESSERACT_LANG,
        psm=settings.TESSERACT_PSM,
        cmd=settings.TESSERACT_CMD,
    )


def build_pipeline(publisher: ResultPublisher) -> VerificationPipeline:
    """Production wiring: PostgreSQL, local file storage, Tesseract."""
    return VerificationPipeline(
        repository=SqlDocumentRepository(),
        storage=LocalFileStorage(),
        extractor=OcrExtractor(build_engine()),
        publisher=publisher,
        audit=SqlAuditLogger(),
    )


def verify_documents_job(payload: dict[str, Any]) -> dict:
    """
    Main job function: run one verification request through the pipeline.
    This runs inside the RQ worker process. Returns the published outcome.
    """
    logger.info("job_started", application_id=payload.get("applicationId"), event_id=payload.get("eventId"))
    worker_jobs_active.inc()
    try:
        result = asyncio.run(_verify_async(payload))
        logger.info("job_completed", application_id=result.get("applicationNumber"), status=result.get("status"))
        return result
    except Exception as e:
        logger.error("job_failed", application_id=payload.get("applicationId"), error=str(e))
        raise
    finally:
        worker_jobs_active.dec()


async def _verify_async(payload: dict[str, Any]) -> dict:
    publisher = RedisStreamPublisher()
    try:
        outcome = await build_pipeline(publisher).run_message(payload)
        return outcome.to_message()
    finally:
        await publisher.close()
        # Pooled connections belong to this event loop
        await close_db()
