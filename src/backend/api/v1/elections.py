"""
Election endpoints for voters.

Ballots go through ``VoteCastingService``: the route only parses the body and
reports the outcome. Domain errors propagate and are rendered by the
application-wide ``BallotlineError`` handler.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import client_ip, get_current_user
from core.exceptions import ElectionNotFound
from db.session import get_db
from models.election import Election as ElectionModel
from models.election import ElectionStatus
from models.eligibility import EligibilityStatus
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from repositories.vote_repository import VoteRepository
from schemas.converters import contest_model_to_schema, election_model_to_detail, election_model_to_schema
from schemas.election import BallotView, Election, ElectionDetail
from schemas.user import CurrentUser
from schemas.vote import BallotSubmission, ElectionResults, VoteReceipt
from services.results_service import ResultsService
from services.vote_casting import VoteCastingService

router = APIRouter()


async def _get_visible_election(
    election_id: str,
    current_user: CurrentUser,
    db: AsyncSession,
) -> ElectionModel:
    """Drafts are only visible to administrators."""
    election = await ElectionRepository(db).get_by_id(election_id)
    if election is None:
        raise ElectionNotFound()
    if election.status == ElectionStatus.DRAFT.value and not current_user.is_admin:
        raise ElectionNotFound()
    return election


@router.get("", response_model=list[Election])
async def list_elections(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> list[Election]:
    """
    List elections visible to the caller.

    Administrators see every election; voters see the non-draft elections
    they are on the roll for.
    """
    elections = await ElectionRepository(db).list_for_user(current_user.id, is_admin=current_user.is_admin)
    return [election_model_to_schema(e) for e in elections]


@router.get("/{election_id}", response_model=ElectionDetail)
async def get_election(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionDetail:
    election = await _get_visible_election(str(election_id), current_user, db)
    contests = await ContestRepository(db).list_contests(str(election_id))
    return election_model_to_detail(election, contests)


@router.get("/{election_id}/contests", response_model=BallotView)
async def get_ballot(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> BallotView:
    """
    Contest catalog for rendering a ballot, plus the caller's own voting state.

    ``userVotes`` holds the caller's own picks so the client can show an
    already-voted ballot without submitting again.
    """
    election = await _get_visible_election(str(election_id), current_user, db)
    contests = await ContestRepository(db).list_contests(str(election_id))
    eligibility = await EligibilityRepository(db).get_status(str(election_id), current_user.id)
    user_votes = await VoteRepository(db).selections_for_voter(str(election_id), current_user.id)

    return BallotView(
        election=election_model_to_schema(election),
        contests=[contest_model_to_schema(c) for c in contests],
        is_eligible=eligibility == EligibilityStatus.ELIGIBLE,
        has_voted=eligibility == EligibilityStatus.VOTED or bool(user_votes),
        user_votes=user_votes,
    )


@router.post("/{election_id}/vote", response_model=VoteReceipt, status_code=status.HTTP_201_CREATED)
async def cast_ballot(
    election_id: UUID,
    submission: BallotSubmission,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> VoteReceipt:
    """
    Cast the caller's ballot.

    Requirements:
    - Election must be Active and inside its voting window
    - Caller must be on the election's voter roll and not have voted
    - Every selection must respect its contest's rules

    All picks are stored, and the caller marked as voted, in one transaction.
    """
    ballot = submission.to_ballot()
    receipt = await VoteCastingService(db).cast_ballot(
        str(election_id),
        current_user.id,
        ballot,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return VoteReceipt.model_validate(receipt)


@router.get("/{election_id}/results", response_model=ElectionResults)
async def get_results(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResults:
    """Results are public once an election is Completed and closed."""
    results = await ResultsService(db).get_results(str(election_id), is_admin=current_user.is_admin)
    return ElectionResults.model_validate(results)
