"""
Worker entry point.
Run with: python -m docverify.worker.runner
"""

import structlog
from redis import Redis
from rq import Worker

from docverify.config import settings
from docverify.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def init_sentry() -> None:
    if not settings.SENTRY_DSN:
        return
    import sentry_sdk
    from sentry_sdk.integrations.rq import RqIntegration
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[RqIntegration()],
        traces_sample_rate=0.1,
    )


def main():
    """Start the RQ worker."""
    setup_logging()
    init_sentry()

    conn = Redis.from_url(settings.REDIS_URL)
    worker = Worker(
        queues=[settings.QUEUE_NAME],
        connection=conn,
        name=f"verification-worker-{settings.APP_VERSION}",
    )

    logger.info("worker_starting", queue=settings.QUEUE_NAME, ocr_enabled=settings.ENABLE_OCR)
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
