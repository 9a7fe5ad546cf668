"""
Append-only vote ledger.

Every vote record stores the hash of the record committed immediately before
it, across all elections. Appends lock the single chain head row, so two
ballots can never chain from the same predecessor, even when they are
committed by different application instances.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence
from uuid import uuid4

import structlog

from core.security import GENESIS_HASH, compute_vote_hash
from models.vote import VoteRecord
from repositories.vote_repository import VoteRepository

logger = structlog.get_logger(__name__)

__all__ = [
    "GENESIS_HASH",
    "ChainReport",
    "ChainWalker",
    "VoteDraft",
    "VoteLedger",
    "compute_vote_hash",
    "find_chain_break",
]


@dataclass(frozen=True)
class VoteDraft:
    """A validated pick waiting to be hashed and appended."""

    contest_id: str
    candidate_id: str


@dataclass
class ChainReport:
    """Outcome of walking the whole ledger."""

    valid: bool
    records_checked: int
    head_sequence: int
    head_hash: str
    first_broken_sequence: Optional[int] = None
    reason: Optional[str] = None


def record_digest(record: VoteRecord) -> str:
    """Recompute the hash a stored record should carry."""
    return compute_vote_hash(
        vote_id=record.id,
        sequence=record.sequence,
        session_id=record.session_id,
        election_id=record.election_id,
        contest_id=record.contest_id,
        voter_id=record.voter_id,
        candidate_id=record.candidate_id,
        vote_timestamp=record.vote_timestamp,
        previous_vote_hash=record.previous_vote_hash,
    )


class ChainWalker:
    """Checks records one at a time in sequence order."""

    def __init__(self) -> None:
        self.previous_hash = GENESIS_HASH
        self.last_sequence = 0
        self.checked = 0

    def feed(self, record: VoteRecord) -> Optional[str]:
        """Check the next record; return a reason if the link is broken."""
        self.checked += 1
        if record.sequence != self.last_sequence + 1:
            return f"expected sequence {self.last_sequence + 1}, found {record.sequence}"
        if record.previous_vote_hash != self.previous_hash:
            return "previous_vote_hash does not match predecessor"
        if record_digest(record) != record.vote_hash:
            return "vote_hash does not match record contents"

        self.previous_hash = record.vote_hash
        self.last_sequence = record.sequence
        return None


def find_chain_break(records: Iterable[VoteRecord]) -> Optional[tuple[int, str]]:
    """Return (sequence, reason) of the first bad record, or None if intact."""
    walker = ChainWalker()
    for record in records:
        reason = walker.feed(record)
        if reason:
            return record.sequence, reason
    return None


class VoteLedger:
    """Hash-chained append and verification over ``VoteRepository``."""

    def __init__(self, repo: VoteRepository):
        self.repo = repo

    async def append(
        self,
        *,
        session_id: str,
        election_id: str,
        voter_id: str,
        drafts: Sequence[VoteDraft],
        timestamp: datetime,
    ) -> list[VoteRecord]:
        """
        Hash and stage one ballot's records.

        Must run inside the caller's transaction: the chain head stays locked
        until that transaction commits or rolls back, and nothing is durable
        until then. Records chain off each other in ``drafts`` order.
        """
        if not drafts:
            raise ValueError("Cannot append an empty ballot")

        head = await self.repo.lock_chain_head()
        previous_hash = head.last_vote_hash
        sequence = head.last_sequence

        records: list[VoteRecord] = []
        for draft in drafts:
            sequence += 1
            vote_id = str(uuid4())
            vote_hash = compute_vote_hash(
                vote_id=vote_id,
                sequence=sequence,
                session_id=session_id,
                election_id=election_id,
                contest_id=draft.contest_id,
                voter_id=voter_id,
                candidate_id=draft.candidate_id,
                vote_timestamp=timestamp,
                previous_vote_hash=previous_hash,
            )
            records.append(
                VoteRecord(
                    id=vote_id,
                    sequence=sequence,
                    session_id=session_id,
                    election_id=election_id,
                    contest_id=draft.contest_id,
                    voter_id=voter_id,
                    candidate_id=draft.candidate_id,
                    vote_timestamp=timestamp,
                    vote_hash=vote_hash,
                    previous_vote_hash=previous_hash,
                )
            )
            previous_hash = vote_hash

        await self.repo.add_records(records)
        await self.repo.advance_chain_head(head, sequence, previous_hash)
        return records

    async def inspect_chain(self) -> ChainReport:
        """
        Walk the chain in sequence order and compare its end with the head.

        The head is read once before the walk and bounds it. Ballots that
        commit while the audit runs sit past that snapshot and are left for
        the next audit.
        """
        head = await self.repo.get_chain_head()
        head_sequence = head.last_sequence if head else 0
        head_hash = head.last_vote_hash if head else GENESIS_HASH
        # Without a head row every stored record is unaccounted for
        up_to = head_sequence if head else None

        walker = ChainWalker()
        async for record in self.repo.iter_chain(up_to=up_to):
            reason = walker.feed(record)
            if reason:
                logger.warning("vote_chain_broken", sequence=record.sequence, reason=reason)
                return ChainReport(
                    valid=False,
                    records_checked=walker.checked,
                    head_sequence=walker.last_sequence,
                    head_hash=walker.previous_hash,
                    first_broken_sequence=record.sequence,
                    reason=reason,
                )

        if head_sequence != walker.last_sequence or head_hash != walker.previous_hash:
            reason = "chain head does not point at the newest record"
            logger.warning(
                "vote_chain_head_mismatch",
                head_sequence=head_sequence,
                last_sequence=walker.last_sequence,
            )
            return ChainReport(
                valid=False,
                records_checked=walker.checked,
                head_sequence=head_sequence,
                head_hash=head_hash,
                first_broken_sequence=walker.last_sequence + 1,
                reason=reason,
            )

        return ChainReport(
            valid=True,
            records_checked=walker.checked,
            head_sequence=head_sequence,
            head_hash=head_hash,
        )

    async def verify_chain(self) -> bool:
        report = await self.inspect_chain()
        return report.valid
