"""
Schema converter functions.

Centralized helpers for converting SQLAlchemy models to Pydantic schemas, so
public and admin endpoints render elections the same way.
"""

from typing import TYPE_CHECKING

from schemas.election import Candidate, Contest, ContestTypeEnum, Election, ElectionDetail, ElectionStatusEnum
from schemas.eligibility import EligibleVoterEntry

if TYPE_CHECKING:
    from models.contest import Contest as ContestModel
    from models.election import Election as ElectionModel
    from models.eligibility import EligibleVoter
    from models.user import User


def election_model_to_schema(election: "ElectionModel") -> Election:
    return Election(
        id=str(election.id),
        title=election.title,
        description=election.description,
        start_date=election.start_date,
        end_date=election.end_date,
        status=ElectionStatusEnum(election.status),
        created_at=election.created_at,
    )


def contest_model_to_schema(contest: "ContestModel") -> Contest:
    return Contest(
        id=str(contest.id),
        title=contest.title,
        contest_type=ContestTypeEnum(contest.contest_type),
        max_selections=contest.max_selections,
        display_order=contest.display_order or 0,
        candidates=[
            Candidate(id=str(c.id), name=c.name, party=c.party)
            for c in sorted(contest.candidates, key=lambda x: x.name.lower())
        ],
    )


def election_model_to_detail(election: "ElectionModel", contests: list["ContestModel"]) -> ElectionDetail:
    base = election_model_to_schema(election)
    return ElectionDetail(
        **base.model_dump(),
        contests=[contest_model_to_schema(c) for c in contests],
    )


def eligible_voter_to_entry(row: "EligibleVoter", user: "User") -> EligibleVoterEntry:
    return EligibleVoterEntry(
        user_id=str(row.user_id),
        email=user.email,
        full_name=user.full_name,
        status=row.status,
        added_at=row.added_at,
        voted_at=row.voted_at,
    )
