"""
Election repository for database operations.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.contest import Contest
from models.election import Election, ElectionStatus
from models.eligibility import EligibleVoter


class ElectionRepository:
    """Repository for election database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, election_id: str) -> Optional[Election]:
        """Get an election with its contests and candidates."""
        result = await self.db.execute(
            select(Election)
            .options(selectinload(Election.contests).selectinload(Contest.candidates))
            .where(Election.id == election_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self, status: Optional[str] = None) -> list[Election]:
        query = select(Election)
        if status:
            query = query.where(Election.status == status)
        result = await self.db.execute(query.order_by(Election.start_date.desc()))
        return list(result.scalars().all())

    async def list_for_voter(self, user_id: str) -> list[Election]:
        """Non-draft elections the user is on the voter roll for."""
        result = await self.db.execute(
            select(Election)
            .join(EligibleVoter, EligibleVoter.election_id == Election.id)
            .where(
                and_(
                    EligibleVoter.user_id == user_id,
                    Election.status != ElectionStatus.DRAFT.value,
                )
            )
            .order_by(Election.start_date.desc())
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: str, is_admin: bool = False) -> list[Election]:
        if is_admin:
            return await self.list_all()
        return await self.list_for_voter(user_id)

    async def create(
        self,
        title: str,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Election:
        """Create a new election in Draft."""
        election = Election(
            id=str(uuid4()),
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
            status=ElectionStatus.DRAFT.value,
            created_by=created_by,
        )
        self.db.add(election)
        await self.db.flush()
        return election

    async def update(self, election: Election, **fields: Any) -> Election:
        """Apply non-None field updates."""
        for name, value in fields.items():
            if value is not None:
                setattr(election, name, value)
        await self.db.flush()
        return election

    async def set_status(self, election: Election, status: ElectionStatus) -> Election:
        election.status = status.value
        await self.db.flush()
        return election
