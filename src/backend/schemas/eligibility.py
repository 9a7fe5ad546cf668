"""
Voter roll and audit log schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from schemas.base import ApiModel


class VoterGrant(ApiModel):
    user_ids: list[str] = Field(..., min_length=1, max_length=1000)


class VoterGrantResult(ApiModel):
    granted: list[str]
    unknown_user_ids: list[str] = Field(default_factory=list)


class EligibleVoterEntry(ApiModel):
    user_id: str
    email: str
    full_name: str
    status: str
    added_at: Optional[datetime] = None
    voted_at: Optional[datetime] = None


class AuditEntry(ApiModel):
    id: str
    user_id: Optional[str] = None
    operation_type: str
    table_name: str
    record_id: Optional[str] = None
    new_values: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    timestamp: datetime
