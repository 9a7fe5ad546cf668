"""
Election results.

Tallies come straight from the vote ledger. Results stay hidden from voters
until the election is Completed and its window has closed; administrators may
always see them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ElectionNotFound, Forbidden
from models.contest import Contest
from models.election import Election, ElectionStatus
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from repositories.vote_repository import VoteRepository


@dataclass
class CandidateResult:
    candidate_id: str
    name: str
    party: Optional[str]
    votes: int
    percentage: float
    is_winner: bool = False


@dataclass
class ContestResult:
    contest_id: str
    title: str
    max_selections: int
    total_votes: int
    candidates: list[CandidateResult] = field(default_factory=list)


@dataclass
class ElectionResults:
    election_id: str
    title: str
    status: str
    eligible_voters: int
    voters_participated: int
    turnout_percentage: float
    contests: list[ContestResult] = field(default_factory=list)


def results_visible(election: Election, is_admin: bool, now: Optional[datetime] = None) -> bool:
    if is_admin:
        return True
    now = now or datetime.now(timezone.utc)
    return election.status == ElectionStatus.COMPLETED.value and now > election.end_date


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part * 100.0 / whole, 2)


def tally_contest(contest: Contest, counts: dict[str, int]) -> ContestResult:
    """
    Build one contest's result from per-candidate counts.

    Winners are the candidates inside the top ``max_selections`` places with
    at least one vote; a tie on the last winning place lets all tied
    candidates win.
    """
    rows = [(candidate, counts.get(str(candidate.id), 0)) for candidate in contest.candidates]
    total = sum(votes for _, votes in rows)

    ranked = sorted((votes for _, votes in rows), reverse=True)
    cutoff = ranked[min(contest.max_selections, len(ranked)) - 1] if ranked else 0

    candidates = [
        CandidateResult(
            candidate_id=str(candidate.id),
            name=candidate.name,
            party=candidate.party,
            votes=votes,
            percentage=_percentage(votes, total),
            is_winner=votes > 0 and votes >= cutoff,
        )
        for candidate, votes in rows
    ]
    candidates.sort(key=lambda result: (-result.votes, result.name.lower()))

    return ContestResult(
        contest_id=str(contest.id),
        title=contest.title,
        max_selections=contest.max_selections,
        total_votes=total,
        candidates=candidates,
    )


class ResultsService:
    """Computes election results for display."""

    def __init__(
        self,
        db: AsyncSession,
        elections: Optional[ElectionRepository] = None,
        contests: Optional[ContestRepository] = None,
        eligibility: Optional[EligibilityRepository] = None,
        votes: Optional[VoteRepository] = None,
    ):
        self.db = db
        self.elections = elections or ElectionRepository(db)
        self.contests = contests or ContestRepository(db)
        self.eligibility = eligibility or EligibilityRepository(db)
        self.votes = votes or VoteRepository(db)

    async def get_results(
        self,
        election_id: str,
        is_admin: bool = False,
        now: Optional[datetime] = None,
    ) -> ElectionResults:
        election = await self.elections.get_by_id(election_id)
        if election is None:
            raise ElectionNotFound()
        if not results_visible(election, is_admin, now):
            raise Forbidden("Results are available once the election has completed")

        contests = await self.contests.list_contests(election_id)
        counts = await self.votes.tally_by_candidate(election_id)
        voters = await self.votes.count_voters(election_id)
        eligible = sum((await self.eligibility.count_by_status(election_id)).values())

        return ElectionResults(
            election_id=str(election.id),
            title=election.title,
            status=election.status,
            eligible_voters=eligible,
            voters_participated=voters,
            turnout_percentage=_percentage(voters, eligible),
            contests=[tally_contest(contest, counts) for contest in contests],
        )
