"""
Election model.

An election owns its contests and defines when, and whether, ballots are
accepted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base


class ElectionStatus(str, Enum):
    """Election lifecycle status."""

    DRAFT = "Draft"  # Being prepared, invisible to voters
    ACTIVE = "Active"  # Accepting ballots inside the voting window
    COMPLETED = "Completed"  # Closed, results may be published
    CANCELLED = "Cancelled"  # Abandoned before completion


class Election(Base):
    """Election with a fixed voting window."""

    __tablename__ = "elections"

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_elections_window"),
    )

    id: Mapped[str] = mapped_column(
        "election_id",
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    title: Mapped[str] = mapped_column("election_name", String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    status: Mapped[str] = mapped_column(
        String(20),
        default=ElectionStatus.DRAFT.value,
        index=True,
    )

    created_by: Mapped[Optional[str]] = mapped_column(
        "creator",
        UUID(as_uuid=False),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    contests = relationship(
        "Contest",
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="Contest.display_order",
    )

    def is_within_window(self, now: datetime | None = None) -> bool:
        """Check if ``now`` falls inside [start_date, end_date]."""
        now = now or datetime.now(timezone.utc)
        return self.start_date <= now <= self.end_date

    @property
    def has_ended(self) -> bool:
        return datetime.now(timezone.utc) > self.end_date
