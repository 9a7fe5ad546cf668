"""
Eligibility ledger model.

One row per (election, voter). No row means the voter is not eligible.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class EligibilityStatus(str, Enum):
    """Per-election voting state of a voter."""

    ELIGIBLE = "eligible"
    VOTED = "voted"
    ABSENT = "absent"  # Never stored - reported when no row exists


class EligibleVoter(Base):
    """
    Eligibility record.

    Lifecycle: created as ``eligible`` by an administrator, moved to ``voted``
    exactly once when a ballot commits, never moved back.
    """

    __tablename__ = "eligible_voters"

    election_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("elections.election_id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(String(20), default=EligibilityStatus.ELIGIBLE.value)

    added_by: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False), nullable=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    voted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
