"""
Vote-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.base import ApiModel
from services.ballot_validator import Ballot


class ContestSelection(ApiModel):
    """Picks for one contest."""

    contest_id: str = Field(..., min_length=1)
    candidate_ids: list[str] = Field(default_factory=list, max_length=100)


class BallotSubmission(ApiModel):
    """Body of ``POST /elections/{id}/vote``."""

    selections: list[ContestSelection] = Field(default_factory=list, max_length=200)

    def to_ballot(self) -> Ballot:
        return Ballot.from_pairs(
            (selection.contest_id, selection.candidate_ids) for selection in self.selections
        )


class VoteReceipt(ApiModel):
    """Returned once a ballot is committed."""

    session_id: str
    election_id: str
    ballot_hash: str
    vote_hash: str
    records: int
    timestamp: datetime


# ============================================================================
# Results
# ============================================================================


class CandidateResult(ApiModel):
    candidate_id: str
    name: str
    party: Optional[str] = None
    votes: int
    percentage: float
    is_winner: bool = False


class ContestResult(ApiModel):
    contest_id: str
    title: str
    max_selections: int
    total_votes: int
    candidates: list[CandidateResult]


class ElectionResults(ApiModel):
    election_id: str
    title: str
    status: str
    eligible_voters: int
    voters_participated: int
    turnout_percentage: float
    contests: list[ContestResult]


# ============================================================================
# Ledger audit
# ============================================================================


class ChainVerification(ApiModel):
    valid: bool
    records_checked: int
    head_sequence: int
    head_hash: str
    first_broken_sequence: Optional[int] = None
    reason: Optional[str] = None
