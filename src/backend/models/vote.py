"""
Vote ledger models.

Votes are append-only. Every record carries the hash of the record inserted
immediately before it (globally, across elections), so the table forms a
single hash chain ordered by ``sequence``.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class VoteRecord(Base):
    """
    One (contest, candidate) pick from a ballot.

    A ballot with K picks yields K records sharing one ``session_id``.
    """

    __tablename__ = "votes"

    id: Mapped[str] = mapped_column(
        "vote_id",
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Global insertion order, assigned under the chain head lock (gap-free)
    sequence: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)

    session_id: Mapped[str] = mapped_column(UUID(as_uuid=False), index=True)

    election_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("elections.election_id", ondelete="RESTRICT"),
    )
    contest_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("contests.contest_id", ondelete="RESTRICT"),
        index=True,
    )
    voter_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
    )
    candidate_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("candidates.candidate_id", ondelete="RESTRICT"),
        index=True,
    )

    vote_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    vote_hash: Mapped[str] = mapped_column(String(64), unique=True)  # SHA-256 hex
    # Unique: two records can never chain from the same predecessor
    previous_vote_hash: Mapped[str] = mapped_column(String(64), unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_votes_election_voter", "election_id", "voter_id"),
        Index(
            "uq_votes_voter_pick",
            "election_id",
            "voter_id",
            "contest_id",
            "candidate_id",
            unique=True,
        ),
    )


class VoteChainHead(Base):
    """
    Single-row pointer to the newest vote record.

    Appending to the ledger locks this row first, which serializes appends
    across all application instances.
    """

    __tablename__ = "vote_chain_head"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    last_sequence: Mapped[int] = mapped_column(BigInteger, default=0)
    last_vote_hash: Mapped[str] = mapped_column(String(64))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<VoteChainHead(sequence={self.last_sequence}, hash={self.last_vote_hash[:12]})>"
