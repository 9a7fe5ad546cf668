"""
Election administration.

Status changes follow a fixed table:

    Draft  -> Active | Cancelled
    Active -> Completed | Cancelled

Completed and Cancelled are terminal. Every change made here is written to
the audit log in the same transaction.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    CandidateNotFound,
    Conflict,
    ContestNotFound,
    ElectionNotFound,
    InvalidContestDefinition,
    InvalidElectionTransition,
    InvalidElectionWindow,
    VoterNotFound,
)
from models.contest import Candidate, Contest, ContestType
from models.election import Election, ElectionStatus
from repositories.audit_repository import AuditRepository
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from repositories.user_repository import UserRepository
from repositories.vote_repository import VoteRepository

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[ElectionStatus, frozenset[ElectionStatus]] = {
    ElectionStatus.DRAFT: frozenset({ElectionStatus.ACTIVE, ElectionStatus.CANCELLED}),
    ElectionStatus.ACTIVE: frozenset({ElectionStatus.COMPLETED, ElectionStatus.CANCELLED}),
    ElectionStatus.COMPLETED: frozenset(),
    ElectionStatus.CANCELLED: frozenset(),
}

# Contest and candidate edits are refused once an election is closed
EDITABLE_STATUSES = frozenset({ElectionStatus.DRAFT.value, ElectionStatus.ACTIVE.value})


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_window(start_date: datetime, end_date: datetime) -> tuple[datetime, datetime]:
    start_date, end_date = _as_utc(start_date), _as_utc(end_date)
    if end_date <= start_date:
        raise InvalidElectionWindow()
    return start_date, end_date


def validate_transition(current: str, target: ElectionStatus) -> None:
    allowed = ALLOWED_TRANSITIONS.get(ElectionStatus(current), frozenset())
    if target not in allowed:
        raise InvalidElectionTransition(f"Cannot move election from {current} to {target.value}")


def resolve_max_selections(contest_type: ContestType, requested: Optional[int]) -> int:
    """ChooseOne and YesNo always allow one pick; MultiSelect needs an explicit limit."""
    fixed = contest_type.fixed_max_selections
    if fixed is not None:
        if requested not in (None, fixed):
            raise InvalidContestDefinition(f"{contest_type.value} contests allow exactly {fixed} selection")
        return fixed
    if requested is None or requested < 1:
        raise InvalidContestDefinition("MultiSelect contests need max_selections of at least 1")
    return requested


class ElectionAdminService:
    """Administrative changes to elections, their contests and voter rolls."""

    def __init__(
        self,
        db: AsyncSession,
        elections: Optional[ElectionRepository] = None,
        contests: Optional[ContestRepository] = None,
        eligibility: Optional[EligibilityRepository] = None,
        votes: Optional[VoteRepository] = None,
        users: Optional[UserRepository] = None,
        audit: Optional[AuditRepository] = None,
    ):
        self.db = db
        self.elections = elections or ElectionRepository(db)
        self.contests = contests or ContestRepository(db)
        self.eligibility = eligibility or EligibilityRepository(db)
        self.votes = votes or VoteRepository(db)
        self.users = users or UserRepository(db)
        self.audit = audit or AuditRepository(db)

    async def _require_election(self, election_id: str) -> Election:
        election = await self.elections.get_by_id(election_id)
        if election is None:
            raise ElectionNotFound()
        return election

    async def _require_editable(self, election_id: str) -> Election:
        election = await self._require_election(election_id)
        if election.status not in EDITABLE_STATUSES:
            raise Conflict(f"Election is {election.status} and can no longer be changed")
        return election

    # ------------------------------------------------------------------
    # Elections
    # ------------------------------------------------------------------

    async def create_election(
        self,
        admin_id: str,
        title: str,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
    ) -> Election:
        start_date, end_date = validate_window(start_date, end_date)
        election = await self.elections.create(
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
            created_by=admin_id,
        )
        await self.audit.record(
            operation_type="ELECTION_CREATE",
            table_name="elections",
            user_id=admin_id,
            record_id=str(election.id),
            new_values={"title": title},
        )
        await self.db.commit()
        logger.info("election_created", election_id=str(election.id), admin_id=admin_id)
        return election

    async def update_election(
        self,
        admin_id: str,
        election_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Election:
        """Update details. The voting window may only move while in Draft."""
        election = await self._require_editable(election_id)

        if start_date is not None or end_date is not None:
            if election.status != ElectionStatus.DRAFT.value:
                raise Conflict("The voting window can only change while the election is a Draft")
            start_date, end_date = validate_window(
                start_date or election.start_date,
                end_date or election.end_date,
            )

        await self.elections.update(
            election,
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
        )
        await self.audit.record(
            operation_type="ELECTION_UPDATE",
            table_name="elections",
            user_id=admin_id,
            record_id=election_id,
            new_values={
                "title": title,
                "window_changed": start_date is not None,
            },
        )
        await self.db.commit()
        return election

    async def change_status(self, admin_id: str, election_id: str, target: ElectionStatus) -> Election:
        election = await self._require_election(election_id)
        previous = election.status
        validate_transition(previous, target)

        if target == ElectionStatus.ACTIVE:
            contests = await self.contests.list_contests(election_id)
            if not any(contest.candidates for contest in contests):
                raise Conflict("An election needs at least one contest with candidates before it opens")

        await self.elections.set_status(election, target)
        await self.audit.record(
            operation_type="ELECTION_STATUS",
            table_name="elections",
            user_id=admin_id,
            record_id=election_id,
            new_values={"from": previous, "to": target.value},
        )
        await self.db.commit()
        logger.info("election_status_changed", election_id=election_id, status=target.value)
        return election

    # ------------------------------------------------------------------
    # Contests and candidates
    # ------------------------------------------------------------------

    async def add_contest(
        self,
        admin_id: str,
        election_id: str,
        title: str,
        contest_type: ContestType,
        max_selections: Optional[int] = None,
        display_order: int = 0,
    ) -> Contest:
        await self._require_editable(election_id)
        limit = resolve_max_selections(contest_type, max_selections)
        contest = await self.contests.create_contest(
            election_id=election_id,
            title=title,
            contest_type=contest_type.value,
            max_selections=limit,
            display_order=display_order,
        )
        await self.audit.record(
            operation_type="CONTEST_CREATE",
            table_name="contests",
            user_id=admin_id,
            record_id=str(contest.id),
            new_values={"election_id": election_id, "max_selections": limit},
        )
        await self.db.commit()
        return contest

    async def _require_contest(self, election_id: str, contest_id: str) -> Contest:
        await self._require_editable(election_id)
        contest = await self.contests.get_contest(election_id, contest_id)
        if contest is None:
            raise ContestNotFound()
        return contest

    async def update_contest(
        self,
        admin_id: str,
        election_id: str,
        contest_id: str,
        title: Optional[str] = None,
        contest_type: Optional[ContestType] = None,
        max_selections: Optional[int] = None,
        display_order: Optional[int] = None,
    ) -> Contest:
        """
        Edit a contest's definition. Refused once any vote names the contest.

        Changing the type re-derives the selection limit: ChooseOne and YesNo
        fall back to one pick, MultiSelect keeps the current limit unless a new
        one is given.
        """
        contest = await self._require_contest(election_id, contest_id)
        if await self.votes.has_votes_for_contest(contest_id):
            raise Conflict("Cannot change a contest that has received votes")

        limit: Optional[int] = None
        if contest_type is not None or max_selections is not None:
            new_type = contest_type or ContestType(contest.contest_type)
            requested = max_selections
            if requested is None and new_type == ContestType.MULTI_SELECT:
                requested = contest.max_selections
            limit = resolve_max_selections(new_type, requested)

        await self.contests.update_contest(
            contest,
            title=title,
            contest_type=contest_type.value if contest_type is not None else None,
            max_selections=limit,
            display_order=display_order,
        )
        await self.audit.record(
            operation_type="CONTEST_UPDATE",
            table_name="contests",
            user_id=admin_id,
            record_id=contest_id,
            new_values={
                "title": title,
                "contest_type": contest.contest_type,
                "max_selections": contest.max_selections,
            },
        )
        await self.db.commit()
        return contest

    async def remove_contest(self, admin_id: str, election_id: str, contest_id: str) -> None:
        """Delete a contest and its candidates. Refused once any vote names it."""
        contest = await self._require_contest(election_id, contest_id)
        if await self.votes.has_votes_for_contest(contest_id):
            raise Conflict("Cannot remove a contest that has received votes")

        await self.contests.remove_contest(contest)
        await self.audit.record(
            operation_type="CONTEST_DELETE",
            table_name="contests",
            user_id=admin_id,
            record_id=contest_id,
            new_values={"election_id": election_id},
        )
        await self.db.commit()

    async def add_candidate(
        self,
        admin_id: str,
        election_id: str,
        contest_id: str,
        name: str,
        party: Optional[str] = None,
    ) -> Candidate:
        await self._require_contest(election_id, contest_id)

        candidate = await self.contests.add_candidate(contest_id, name, party)
        await self.audit.record(
            operation_type="CANDIDATE_CREATE",
            table_name="candidates",
            user_id=admin_id,
            record_id=str(candidate.id),
            new_values={"contest_id": contest_id, "name": candidate.name},
        )
        await self.db.commit()
        return candidate

    async def update_candidate(
        self,
        admin_id: str,
        election_id: str,
        contest_id: str,
        candidate_id: str,
        name: Optional[str] = None,
        party: Optional[str] = None,
    ) -> Candidate:
        """Rename or relabel a candidate. Refused once they have received votes."""
        await self._require_contest(election_id, contest_id)
        candidate = await self.contests.get_candidate(contest_id, candidate_id)
        if candidate is None:
            raise CandidateNotFound()
        if await self.votes.has_votes_for_candidate(candidate_id):
            raise Conflict("Cannot change a candidate who has received votes")

        await self.contests.update_candidate(candidate, name=name, party=party)
        await self.audit.record(
            operation_type="CANDIDATE_UPDATE",
            table_name="candidates",
            user_id=admin_id,
            record_id=candidate_id,
            new_values={"contest_id": contest_id, "name": candidate.name},
        )
        await self.db.commit()
        return candidate

    async def remove_candidate(
        self,
        admin_id: str,
        election_id: str,
        contest_id: str,
        candidate_id: str,
    ) -> None:
        await self._require_contest(election_id, contest_id)
        candidate = await self.contests.get_candidate(contest_id, candidate_id)
        if candidate is None:
            raise CandidateNotFound()
        if await self.votes.has_votes_for_candidate(candidate_id):
            raise Conflict("Cannot remove a candidate who has received votes")

        await self.contests.remove_candidate(candidate)
        await self.audit.record(
            operation_type="CANDIDATE_DELETE",
            table_name="candidates",
            user_id=admin_id,
            record_id=candidate_id,
            new_values={"contest_id": contest_id},
        )
        await self.db.commit()

    # ------------------------------------------------------------------
    # Voter roll
    # ------------------------------------------------------------------

    async def grant_voters(
        self,
        admin_id: str,
        election_id: str,
        user_ids: Iterable[str],
    ) -> tuple[list[str], list[str]]:
        """Add users to the roll. Returns (granted, unknown user ids)."""
        await self._require_editable(election_id)

        granted: list[str] = []
        unknown: list[str] = []
        for user_id in dict.fromkeys(user_ids):
            if not await self.users.exists(user_id):
                unknown.append(user_id)
                continue
            await self.eligibility.grant(election_id, user_id, added_by=admin_id)
            granted.append(user_id)

        if granted:
            await self.audit.record(
                operation_type="VOTER_GRANT",
                table_name="eligible_voters",
                user_id=admin_id,
                record_id=election_id,
                new_values={"granted": len(granted)},
            )
        await self.db.commit()
        return granted, unknown

    async def revoke_voter(self, admin_id: str, election_id: str, user_id: str) -> None:
        """Remove a voter from the roll; refused once they have voted."""
        await self._require_election(election_id)
        removed = await self.eligibility.revoke(election_id, user_id)
        if not removed:
            raise VoterNotFound()

        await self.audit.record(
            operation_type="VOTER_REVOKE",
            table_name="eligible_voters",
            user_id=admin_id,
            record_id=election_id,
            new_values={"user_id": user_id},
        )
        await self.db.commit()
