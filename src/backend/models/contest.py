"""
Contest and candidate models.

A contest belongs to exactly one election and a candidate to exactly one
contest, so candidate ids are always contest-scoped.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base


class ContestType(str, Enum):
    """How many candidates a voter may pick in a contest."""

    CHOOSE_ONE = "ChooseOne"  # Exactly one winner, one pick
    YES_NO = "YesNo"  # Referendum style, one pick
    MULTI_SELECT = "MultiSelect"  # Up to max_selections picks

    @property
    def fixed_max_selections(self) -> int | None:
        if self in (ContestType.CHOOSE_ONE, ContestType.YES_NO):
            return 1
        return None


class Contest(Base):
    """A single race or question on an election's ballot."""

    __tablename__ = "contests"

    __table_args__ = (
        CheckConstraint("max_selections >= 1", name="ck_contests_max_selections"),
    )

    id: Mapped[str] = mapped_column(
        "contest_id",
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    election_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("elections.election_id", ondelete="CASCADE"),
        index=True,
    )

    title: Mapped[str] = mapped_column("contest_title", String(255))
    contest_type: Mapped[str] = mapped_column(String(20), default=ContestType.CHOOSE_ONE.value)
    max_selections: Mapped[int] = mapped_column(Integer, default=1)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    election = relationship("Election", back_populates="contests")
    candidates = relationship(
        "Candidate",
        back_populates="contest",
        cascade="all, delete-orphan",
        order_by="Candidate.name",
    )


class Candidate(Base):
    """A selectable option within one contest."""

    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(
        "candidate_id",
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    contest_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("contests.contest_id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column("candidate_name", String(255))
    party: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    contest = relationship("Contest", back_populates="candidates")


# Candidate names are unique per contest, ignoring case
Index(
    "uq_candidates_contest_name_ci",
    Candidate.contest_id,
    func.lower(Candidate.name),
    unique=True,
)
