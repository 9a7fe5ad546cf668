"""
Audit log repository.
"""

from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.audit_log import AuditLog


class AuditRepository:
    """Append and read audit entries. Writes join the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        operation_type: str,
        table_name: str,
        user_id: Optional[str] = None,
        record_id: Optional[str] = None,
        new_values: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            id=str(uuid4()),
            user_id=user_id,
            operation_type=operation_type,
            table_name=table_name,
            record_id=record_id,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:512] or None,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_recent(
        self,
        limit: int = 50,
        operation_type: Optional[str] = None,
    ) -> list[AuditLog]:
        """Newest entries first."""
        query = select(AuditLog)
        if operation_type:
            query = query.where(AuditLog.operation_type == operation_type)
        result = await self.db.execute(query.order_by(AuditLog.timestamp.desc()).limit(limit))
        return list(result.scalars().all())
