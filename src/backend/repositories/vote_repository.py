"""
Vote repository for database operations.

Vote rows are append-only: this repository has no update or delete for them.
"""

from typing import AsyncIterator, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import GENESIS_HASH
from models.vote import VoteChainHead, VoteRecord

CHAIN_HEAD_ID = 1


class VoteRepository:
    """Repository for vote ledger database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Chain head
    # ------------------------------------------------------------------

    async def get_chain_head(self) -> Optional[VoteChainHead]:
        """Read the chain head without locking it."""
        result = await self.db.execute(select(VoteChainHead).where(VoteChainHead.id == CHAIN_HEAD_ID))
        return result.scalar_one_or_none()

    async def lock_chain_head(self) -> VoteChainHead:
        """
        Lock the chain head row for the rest of the transaction.

        The row is created on first use; concurrent creators collapse onto one
        row via ON CONFLICT DO NOTHING and then queue on the row lock.
        """
        await self.db.execute(
            pg_insert(VoteChainHead)
            .values(id=CHAIN_HEAD_ID, last_sequence=0, last_vote_hash=GENESIS_HASH)
            .on_conflict_do_nothing(index_elements=[VoteChainHead.id])
        )
        result = await self.db.execute(
            select(VoteChainHead)
            .where(VoteChainHead.id == CHAIN_HEAD_ID)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def advance_chain_head(self, head: VoteChainHead, sequence: int, vote_hash: str) -> None:
        head.last_sequence = sequence
        head.last_vote_hash = vote_hash
        await self.db.flush()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def add_records(self, records: list[VoteRecord]) -> None:
        """Stage records in the current transaction."""
        self.db.add_all(records)
        await self.db.flush()

    async def exists_for_voter(self, election_id: str, voter_id: str) -> bool:
        """Check the ledger itself for a prior ballot by this voter."""
        result = await self.db.execute(
            select(func.count(VoteRecord.id)).where(
                and_(
                    VoteRecord.election_id == election_id,
                    VoteRecord.voter_id == voter_id,
                )
            )
        )
        count = result.scalar() or 0
        return count > 0

    async def selections_for_voter(self, election_id: str, voter_id: str) -> dict[str, list[str]]:
        """The voter's own picks, contest id -> candidate ids."""
        result = await self.db.execute(
            select(VoteRecord.contest_id, VoteRecord.candidate_id)
            .where(
                and_(
                    VoteRecord.election_id == election_id,
                    VoteRecord.voter_id == voter_id,
                )
            )
            .order_by(VoteRecord.sequence)
        )
        selections: dict[str, list[str]] = {}
        for contest_id, candidate_id in result.all():
            selections.setdefault(str(contest_id), []).append(str(candidate_id))
        return selections

    async def iter_chain(
        self, page_size: int = 500, up_to: Optional[int] = None
    ) -> AsyncIterator[VoteRecord]:
        """Yield records in sequence order, one keyset page at a time.

        With ``up_to`` the walk stops at that sequence, leaving out ballots
        committed after a chain head snapshot was taken.
        """
        after = 0
        while True:
            query = select(VoteRecord).where(VoteRecord.sequence > after)
            if up_to is not None:
                query = query.where(VoteRecord.sequence <= up_to)
            result = await self.db.execute(query.order_by(VoteRecord.sequence).limit(page_size))
            page = list(result.scalars().all())
            if not page:
                return
            for record in page:
                yield record
            after = page[-1].sequence

    # ------------------------------------------------------------------
    # Tallies
    # ------------------------------------------------------------------

    async def tally_by_candidate(self, election_id: str) -> dict[str, int]:
        """Vote count per candidate id for one election."""
        result = await self.db.execute(
            select(VoteRecord.candidate_id, func.count(VoteRecord.id).label("count"))
            .where(VoteRecord.election_id == election_id)
            .group_by(VoteRecord.candidate_id)
        )
        return {str(row.candidate_id): int(row.count) for row in result.all()}

    async def count_voters(self, election_id: str) -> int:
        """Distinct voters who cast a ballot in an election."""
        result = await self.db.execute(
            select(func.count(func.distinct(VoteRecord.voter_id))).where(
                VoteRecord.election_id == election_id
            )
        )
        return result.scalar() or 0

    async def has_votes_for_candidate(self, candidate_id: str) -> bool:
        result = await self.db.execute(
            select(func.count(VoteRecord.id)).where(VoteRecord.candidate_id == candidate_id)
        )
        return (result.scalar() or 0) > 0

    async def has_votes_for_contest(self, contest_id: str) -> bool:
        result = await self.db.execute(
            select(func.count(VoteRecord.id)).where(VoteRecord.contest_id == contest_id)
        )
        return (result.scalar() or 0) > 0
