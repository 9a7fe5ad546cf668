"""
Admin Election Management Endpoints.

Security measures:
- All endpoints require a valid JWT and one of the configured admin roles
- Every change is written to the audit log in the same transaction
- Input validation via Pydantic schemas
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_admin_user
from core.exceptions import ElectionNotFound
from db.session import get_db
from models.contest import ContestType
from models.election import ElectionStatus
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from schemas.converters import (
    contest_model_to_schema,
    election_model_to_detail,
    election_model_to_schema,
    eligible_voter_to_entry,
)
from schemas.election import (
    Candidate,
    CandidateCreate,
    CandidateUpdate,
    Contest,
    ContestCreate,
    ContestUpdate,
    Election,
    ElectionCreate,
    ElectionDetail,
    ElectionStatusChange,
    ElectionUpdate,
)
from schemas.eligibility import EligibleVoterEntry, VoterGrant, VoterGrantResult
from schemas.user import CurrentUser
from services.election_lifecycle import ElectionAdminService

router = APIRouter()


# ============================================================================
# Elections
# ============================================================================


@router.post("", response_model=Election, status_code=status.HTTP_201_CREATED)
async def create_election(
    data: ElectionCreate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Election:
    """Create an election in Draft."""
    election = await ElectionAdminService(db).create_election(
        admin.id,
        title=data.title,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    return election_model_to_schema(election)


@router.put("/{election_id}", response_model=Election)
async def update_election(
    election_id: UUID,
    data: ElectionUpdate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Election:
    election = await ElectionAdminService(db).update_election(
        admin.id,
        str(election_id),
        title=data.title,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    return election_model_to_schema(election)


@router.post("/{election_id}/status", response_model=Election)
async def change_election_status(
    election_id: UUID,
    data: ElectionStatusChange,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Election:
    """Move an election along Draft -> Active -> Completed, or cancel it."""
    election = await ElectionAdminService(db).change_status(
        admin.id,
        str(election_id),
        ElectionStatus(data.status.value),
    )
    return election_model_to_schema(election)


@router.get("/{election_id}", response_model=ElectionDetail)
async def get_election(
    election_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionDetail:
    election = await ElectionRepository(db).get_by_id(str(election_id))
    if election is None:
        raise ElectionNotFound()
    contests = await ContestRepository(db).list_contests(str(election_id))
    return election_model_to_detail(election, contests)


# ============================================================================
# Contests and candidates
# ============================================================================


@router.post("/{election_id}/contests", response_model=Contest, status_code=status.HTTP_201_CREATED)
async def create_contest(
    election_id: UUID,
    data: ContestCreate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Contest:
    contest = await ElectionAdminService(db).add_contest(
        admin.id,
        str(election_id),
        title=data.title,
        contest_type=ContestType(data.contest_type.value),
        max_selections=data.max_selections,
        display_order=data.display_order,
    )
    # A new contest has no candidates yet
    return Contest(
        id=str(contest.id),
        title=contest.title,
        contest_type=data.contest_type,
        max_selections=contest.max_selections,
        display_order=contest.display_order,
    )


@router.put("/{election_id}/contests/{contest_id}", response_model=Contest)
async def update_contest(
    election_id: UUID,
    contest_id: UUID,
    data: ContestUpdate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Contest:
    """Edit a contest. Fails with 409 once the contest has received votes."""
    contest = await ElectionAdminService(db).update_contest(
        admin.id,
        str(election_id),
        str(contest_id),
        title=data.title,
        contest_type=ContestType(data.contest_type.value) if data.contest_type else None,
        max_selections=data.max_selections,
        display_order=data.display_order,
    )
    return contest_model_to_schema(contest)


@router.delete("/{election_id}/contests/{contest_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_contest(
    election_id: UUID,
    contest_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a contest with its candidates. Fails with 409 once it has votes."""
    await ElectionAdminService(db).remove_contest(admin.id, str(election_id), str(contest_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{election_id}/contests/{contest_id}/candidates",
    response_model=Candidate,
    status_code=status.HTTP_201_CREATED,
)
async def add_candidate(
    election_id: UUID,
    contest_id: UUID,
    data: CandidateCreate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Candidate:
    """Add a candidate. Names are unique within a contest, ignoring case."""
    candidate = await ElectionAdminService(db).add_candidate(
        admin.id,
        str(election_id),
        str(contest_id),
        name=data.name,
        party=data.party,
    )
    return Candidate(id=str(candidate.id), name=candidate.name, party=candidate.party)


@router.put(
    "/{election_id}/contests/{contest_id}/candidates/{candidate_id}",
    response_model=Candidate,
)
async def update_candidate(
    election_id: UUID,
    contest_id: UUID,
    candidate_id: UUID,
    data: CandidateUpdate,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Candidate:
    candidate = await ElectionAdminService(db).update_candidate(
        admin.id,
        str(election_id),
        str(contest_id),
        str(candidate_id),
        name=data.name,
        party=data.party,
    )
    return Candidate(id=str(candidate.id), name=candidate.name, party=candidate.party)


@router.delete(
    "/{election_id}/contests/{contest_id}/candidates/{candidate_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_candidate(
    election_id: UUID,
    contest_id: UUID,
    candidate_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Response:
    await ElectionAdminService(db).remove_candidate(
        admin.id,
        str(election_id),
        str(contest_id),
        str(candidate_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{election_id}/contests", response_model=list[Contest])
async def list_contests(
    election_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> list[Contest]:
    contests = await ContestRepository(db).list_contests(str(election_id))
    return [contest_model_to_schema(c) for c in contests]


# ============================================================================
# Voter roll
# ============================================================================


@router.get("/{election_id}/voters", response_model=list[EligibleVoterEntry])
async def list_voters(
    election_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> list[EligibleVoterEntry]:
    if await ElectionRepository(db).get_by_id(str(election_id)) is None:
        raise ElectionNotFound()
    rows = await EligibilityRepository(db).list_for_election(str(election_id))
    return [eligible_voter_to_entry(row, user) for row, user in rows]


@router.post("/{election_id}/voters", response_model=VoterGrantResult)
async def grant_voters(
    election_id: UUID,
    data: VoterGrant,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> VoterGrantResult:
    """Add users to the roll. Re-adding a voter who already voted changes nothing."""
    granted, unknown = await ElectionAdminService(db).grant_voters(
        admin.id,
        str(election_id),
        data.user_ids,
    )
    return VoterGrantResult(granted=granted, unknown_user_ids=unknown)


@router.delete("/{election_id}/voters/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_voter(
    election_id: UUID,
    user_id: UUID,
    admin: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Remove a voter from the roll. Fails with 409 once they have voted."""
    await ElectionAdminService(db).revoke_voter(admin.id, str(election_id), str(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
