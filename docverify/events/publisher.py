"""
Outbound event publication.

Aggregate outcomes go to OUTCOME_STREAM, per-document identifier mismatches
to ERROR_STREAM. Each event is one Redis stream entry with a single JSON
"payload" field; consumers read with XREAD/XREADGROUP (at-least-once).
"""

import json
from typing import Optional, Protocol

import structlog
from redis import asyncio as aioredis

from docverify.config import settings
from docverify.schemas.events import AggregateOutcome, ValidationErrorEvent

logger = structlog.get_logger(__name__)


class ResultPublisher(Protocol):
    async def publish_outcome(self, outcome: AggregateOutcome) -> None: ...

    async def publish_validation_error(self, event: ValidationErrorEvent) -> None: ...


class RedisStreamPublisher:
    """Publishes events with XADD; the stream is trimmed approximately to maxlen."""

    def __init__(
        self,
        client: Optional[aioredis.Redis] = None,
        outcome_stream: Optional[str] = None,
        error_stream: Optional[str] = None,
        maxlen: int = 100_000,
    ):
        self.client = client or aioredis.Redis.from_url(settings.REDIS_URL)
        self.outcome_stream = outcome_stream or settings.OUTCOME_STREAM
        self.error_stream = error_stream or settings.ERROR_STREAM
        self.maxlen = maxlen

    async def _xadd(self, stream: str, key: Optional[str], message: dict) -> str:
        fields = {"payload": json.dumps(message, default=str)}
        if key:
            fields["key"] = key
        entry_id = await self.client.xadd(stream, fields, maxlen=self.maxlen, approximate=True)
        return entry_id.decode() if isinstance(entry_id, bytes) else str(entry_id)

    async def publish_outcome(self, outcome: AggregateOutcome) -> None:
        entry_id = await self._xadd(self.outcome_stream, outcome.application_id, outcome.to_message())
        logger.info(
            "outcome_published",
            stream=self.outcome_stream,
            entry_id=entry_id,
            application_id=outcome.application_id,
            status=outcome.status.value,
        )

    async def publish_validation_error(self, event: ValidationErrorEvent) -> None:
        entry_id = await self._xadd(self.error_stream, event.application_id, event.to_message())
        logger.info(
            "validation_error_published",
            stream=self.error_stream,
            entry_id=entry_id,
            application_id=event.application_id,
            applicant_id=event.applicant_id,
        )

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryPublisher:
    """Collects published events; used by tests and inline runs."""

    def __init__(self):
        self.outcomes: list[AggregateOutcome] = []
        self.validation_errors: list[ValidationErrorEvent] = []

    async def publish_outcome(self, outcome: AggregateOutcome) -> None:
        self.outcomes.append(outcome)

    async def publish_validation_error(self, event: ValidationErrorEvent) -> None:
        self.validation_errors.append(event)
