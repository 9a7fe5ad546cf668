"""
Ledger integrity and audit log endpoints (administrators only).
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_admin_user
from db.session import get_db
from repositories.audit_repository import AuditRepository
from repositories.vote_repository import VoteRepository
from schemas.eligibility import AuditEntry
from schemas.user import CurrentUser
from schemas.vote import ChainVerification
from services.vote_ledger import VoteLedger

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/verify", response_model=ChainVerification)
async def verify_chain(
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ChainVerification:
    """
    Walk the whole vote ledger and check every hash link.

    This reads every vote record; it is meant for periodic audits, not for
    the voting hot path.
    """
    report = await VoteLedger(VoteRepository(db)).inspect_chain()
    logger.info(
        "vote_chain_verified",
        admin_id=admin.id,
        valid=report.valid,
        records=report.records_checked,
    )
    return ChainVerification.model_validate(report)


@router.get("/audit-log", response_model=list[AuditEntry])
async def list_audit_log(
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
    limit: int = Query(50, ge=1, le=500, description="Maximum entries to return"),
    operation_type: Optional[str] = Query(None, description="Filter by operation"),
) -> list[AuditEntry]:
    entries = await AuditRepository(db).list_recent(limit=limit, operation_type=operation_type)
    return [
        AuditEntry(
            id=str(e.id),
            user_id=str(e.user_id) if e.user_id else None,
            operation_type=e.operation_type,
            table_name=e.table_name,
            record_id=e.record_id,
            new_values=e.new_values,
            ip_address=e.ip_address,
            timestamp=e.timestamp,
        )
        for e in entries
    ]
