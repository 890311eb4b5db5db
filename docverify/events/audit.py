"""
Append-only audit trail.
Every entry is also emitted as a structlog event. The SQL logger writes in
its own transaction, so entries survive a failed pipeline step; a failed audit
write is logged and never fails the request.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docverify.models.enums import AuditAction
from docverify.models.tables import AuditLogEntry

logger = structlog.get_logger(__name__)


class AuditLogger(Protocol):
    async def record(
        self,
        action: AuditAction,
        details: Optional[dict[str, Any]] = None,
        application_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> None: ...


@dataclass(frozen=True)
class AuditRecord:
    action: AuditAction
    details: dict[str, Any]
    application_id: Optional[str]
    event_id: Optional[str]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SqlAuditLogger:
    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from docverify.models.database import async_session_factory
            session_factory = async_session_factory
        self.session_factory = session_factory

    async def record(
        self,
        action: AuditAction,
        details: Optional[dict[str, Any]] = None,
        application_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> None:
        details = details or {}
        logger.info("audit", action=action.value, application_id=application_id, event_id=event_id, details=details)
        try:
            async with self.session_factory() as session:
                session.add(AuditLogEntry(
                    action=action.value,
                    details=details,
                    application_id=application_id,
                    event_id=event_id,
                ))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error("audit_write_failed", action=action.value, application_id=application_id, error=str(e))


class InMemoryAuditLogger:
    def __init__(self):
        self.entries: list[AuditRecord] = []

    async def record(
        self,
        action: AuditAction,
        details: Optional[dict[str, Any]] = None,
        application_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> None:
        details = details or {}
        logger.info("audit", action=action.value, application_id=application_id, event_id=event_id, details=details)
        self.entries.append(AuditRecord(action, details, application_id, event_id))

    def actions(self) -> list[AuditAction]:
        return [entry.action for entry in self.entries]
