"""
Audit log store - append-only sink for accepted audit events.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.engines.policy.errors import InfrastructureError
from src.engines.policy.types import AuditEvent
from src.kernel.models.audit_log import AuditLog


class AuditLogStore:
    """
    Writes and queries the audit log.

    Usage:
        store = AuditLogStore(session)
        await store.write(AuditEvent(action="DOCUMENT_DELETE", timestamp=utcnow(), ...))
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def write(self, event: AuditEvent) -> None:
        """
        Append one event.

        Runs in a savepoint so a failed audit write leaves the caller's
        transaction usable.

        Raises:
            InfrastructureError: The row could not be written
        """
        entry = AuditLog(
            user_id=event.principal_id,
            action=event.action,
            resource=event.resource,
            resource_id=str(event.resource_id) if event.resource_id else None,
            details=self._serialize_details(event.details),
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            created_at=event.timestamp,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(entry)
        except SQLAlchemyError as exc:
            raise InfrastructureError(str(exc), operation="audit.write") from exc

    async def recent(
        self,
        user_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditLog]:
        """
        Audit entries, newest first.

        Args:
            user_id: Only entries by this user
            action: Only this action
            since: Only entries at or after this time
            limit: Maximum number of entries
            offset: Number of entries to skip
        """
        query = select(AuditLog)
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == action)
        if since:
            query = query.where(AuditLog.created_at >= since)

        query = query.order_by(desc(AuditLog.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        user_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
    ) -> int:
        query = select(func.count(AuditLog.id))
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == action)
        result = await self.session.execute(query)
        return result.scalar() or 0

    @staticmethod
    def _serialize_details(details: Dict[str, Any]) -> Dict[str, Any]:
        """Make details JSON-serializable."""
        serialized = {}
        for key, value in details.items():
            if isinstance(value, uuid.UUID):
                serialized[key] = str(value)
            elif isinstance(value, datetime):
                serialized[key] = value.isoformat()
            elif isinstance(value, dict):
                serialized[key] = AuditLogStore._serialize_details(value)
            elif isinstance(value, (list, tuple)):
                serialized[key] = [
                    str(v) if isinstance(v, (uuid.UUID, datetime)) else v for v in value
                ]
            else:
                serialized[key] = value
        return serialized
