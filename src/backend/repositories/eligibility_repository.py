"""
Eligibility ledger repository.

One row per (election, voter). A missing row means not eligible; a row moves
from ``eligible`` to ``voted`` exactly once and never back.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import Conflict, PreconditionFailed
from models.eligibility import EligibilityStatus, EligibleVoter
from models.user import User


class EligibilityRepository:
    """Repository for eligibility records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    @staticmethod
    def _status_of(row: Optional[str]) -> EligibilityStatus:
        if row is None:
            return EligibilityStatus.ABSENT
        return EligibilityStatus(row)

    async def get_status(self, election_id: str, user_id: str) -> EligibilityStatus:
        result = await self.db.execute(
            select(EligibleVoter.status).where(
                and_(
                    EligibleVoter.election_id == election_id,
                    EligibleVoter.user_id == user_id,
                )
            )
        )
        return self._status_of(result.scalar_one_or_none())

    async def get_status_for_update(self, election_id: str, user_id: str) -> EligibilityStatus:
        """
        Read the status and lock the row until the transaction ends.

        A second ballot by the same voter blocks here until the first commits,
        then sees ``voted``.
        """
        result = await self.db.execute(
            select(EligibleVoter.status)
            .where(
                and_(
                    EligibleVoter.election_id == election_id,
                    EligibleVoter.user_id == user_id,
                )
            )
            .with_for_update()
        )
        return self._status_of(result.scalar_one_or_none())

    async def mark_voted(
        self,
        election_id: str,
        user_id: str,
        voted_at: Optional[datetime] = None,
    ) -> None:
        """Move ``eligible`` to ``voted``; any other current state is refused."""
        result = await self.db.execute(
            update(EligibleVoter)
            .where(
                and_(
                    EligibleVoter.election_id == election_id,
                    EligibleVoter.user_id == user_id,
                    EligibleVoter.status == EligibilityStatus.ELIGIBLE.value,
                )
            )
            .values(
                status=EligibilityStatus.VOTED.value,
                voted_at=voted_at or datetime.now(timezone.utc),
            )
        )
        if self._get_rowcount(result) != 1:
            raise PreconditionFailed("Voter is not in the eligible state")

    async def grant(self, election_id: str, user_id: str, added_by: Optional[str] = None) -> None:
        """Make a voter eligible. Idempotent; a ``voted`` row is left as is."""
        stmt = pg_insert(EligibleVoter).values(
            election_id=election_id,
            user_id=user_id,
            status=EligibilityStatus.ELIGIBLE.value,
            added_by=added_by,
        )
        await self.db.execute(
            stmt.on_conflict_do_update(
                index_elements=[EligibleVoter.election_id, EligibleVoter.user_id],
                set_={"added_by": stmt.excluded.added_by},
            )
        )

    async def revoke(self, election_id: str, user_id: str) -> bool:
        """
        Remove a voter's eligibility.

        Returns False if there was nothing to remove. Raises ``Conflict`` if
        the voter has already voted.
        """
        status = await self.get_status_for_update(election_id, user_id)
        if status == EligibilityStatus.VOTED:
            raise Conflict("Cannot remove a voter who has already voted")
        if status == EligibilityStatus.ABSENT:
            return False

        result = await self.db.execute(
            delete(EligibleVoter).where(
                and_(
                    EligibleVoter.election_id == election_id,
                    EligibleVoter.user_id == user_id,
                    EligibleVoter.status == EligibilityStatus.ELIGIBLE.value,
                )
            )
        )
        return self._get_rowcount(result) > 0

    async def list_for_election(self, election_id: str) -> list[tuple[EligibleVoter, User]]:
        """Eligibility rows with their users, ordered by name."""
        result = await self.db.execute(
            select(EligibleVoter, User)
            .join(User, User.id == EligibleVoter.user_id)
            .where(EligibleVoter.election_id == election_id)
            .order_by(User.last_name, User.first_name)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def count_by_status(self, election_id: str) -> dict[str, int]:
        result = await self.db.execute(
            select(EligibleVoter.status, func.count().label("count"))
            .where(EligibleVoter.election_id == election_id)
            .group_by(EligibleVoter.status)
        )
        return {str(row.status): int(row.count) for row in result.all()}

    async def election_ids_for_user(self, user_id: str) -> list[str]:
        result = await self.db.execute(
            select(EligibleVoter.election_id).where(EligibleVoter.user_id == user_id)
        )
        return [str(election_id) for election_id in result.scalars().all()]
