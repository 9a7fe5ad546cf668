"""
Contest and candidate repository (the contest catalog).
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import DuplicateCandidate
from models.contest import Candidate, Contest
from services.ballot_validator import ContestRule


class ContestRepository:
    """Repository for contests and their candidates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_contests(self, election_id: str) -> list[Contest]:
        """Contests of one election with candidates, in display order."""
        result = await self.db.execute(
            select(Contest)
            .options(selectinload(Contest.candidates))
            .where(Contest.election_id == election_id)
            .order_by(Contest.display_order, Contest.title)
        )
        return list(result.scalars().all())

    async def get_catalog(self, election_id: str) -> list[ContestRule]:
        """Snapshot of what may be selected in each contest."""
        contests = await self.list_contests(election_id)
        return [
            ContestRule(
                contest_id=str(contest.id),
                max_selections=contest.max_selections,
                candidate_ids=frozenset(str(candidate.id) for candidate in contest.candidates),
            )
            for contest in contests
        ]

    async def get_contest(self, election_id: str, contest_id: str) -> Optional[Contest]:
        """Get a contest, scoped to its election."""
        result = await self.db.execute(
            select(Contest)
            .options(selectinload(Contest.candidates))
            .where(
                and_(
                    Contest.id == contest_id,
                    Contest.election_id == election_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_candidate(self, contest_id: str, candidate_id: str) -> Optional[Candidate]:
        result = await self.db.execute(
            select(Candidate).where(
                and_(
                    Candidate.id == candidate_id,
                    Candidate.contest_id == contest_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def create_contest(
        self,
        election_id: str,
        title: str,
        contest_type: str,
        max_selections: int,
        display_order: int = 0,
    ) -> Contest:
        contest = Contest(
            id=str(uuid4()),
            election_id=election_id,
            title=title,
            contest_type=contest_type,
            max_selections=max_selections,
            display_order=display_order,
        )
        self.db.add(contest)
        await self.db.flush()
        return contest

    async def update_contest(
        self,
        contest: Contest,
        title: Optional[str] = None,
        contest_type: Optional[str] = None,
        max_selections: Optional[int] = None,
        display_order: Optional[int] = None,
    ) -> Contest:
        """Apply the given fields; ``None`` leaves a field unchanged."""
        if title is not None:
            contest.title = title
        if contest_type is not None:
            contest.contest_type = contest_type
        if max_selections is not None:
            contest.max_selections = max_selections
        if display_order is not None:
            contest.display_order = display_order
        await self.db.flush()
        return contest

    async def remove_contest(self, contest: Contest) -> None:
        """Delete a contest; its candidates go with it."""
        await self.db.delete(contest)
        await self.db.flush()

    async def name_taken(self, contest_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        """Whether another candidate in the contest has this name, ignoring case."""
        conditions = [
            Candidate.contest_id == contest_id,
            func.lower(Candidate.name) == name.lower(),
        ]
        if exclude_id is not None:
            conditions.append(Candidate.id != exclude_id)
        result = await self.db.execute(select(func.count(Candidate.id)).where(and_(*conditions)))
        return (result.scalar() or 0) > 0

    async def _flush_candidate(self, name: str) -> None:
        # Two admins can pass the name check at once; the unique index decides
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise DuplicateCandidate(f"Candidate '{name}' is already in this contest") from exc

    async def add_candidate(self, contest_id: str, name: str, party: Optional[str] = None) -> Candidate:
        """Add a candidate; names are unique per contest, ignoring case."""
        name = name.strip()
        if await self.name_taken(contest_id, name):
            raise DuplicateCandidate(f"Candidate '{name}' is already in this contest")

        candidate = Candidate(
            id=str(uuid4()),
            contest_id=contest_id,
            name=name,
            party=party,
        )
        self.db.add(candidate)
        await self._flush_candidate(name)
        return candidate

    async def update_candidate(
        self,
        candidate: Candidate,
        name: Optional[str] = None,
        party: Optional[str] = None,
    ) -> Candidate:
        """Rename or relabel a candidate, keeping names unique per contest."""
        if name is not None:
            name = name.strip()
            if await self.name_taken(str(candidate.contest_id), name, exclude_id=str(candidate.id)):
                raise DuplicateCandidate(f"Candidate '{name}' is already in this contest")
            candidate.name = name
        if party is not None:
            candidate.party = party
        await self._flush_candidate(candidate.name)
        return candidate

    async def remove_candidate(self, candidate: Candidate) -> None:
        await self.db.delete(candidate)
        await self.db.flush()
