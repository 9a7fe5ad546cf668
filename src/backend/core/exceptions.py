"""
Domain exceptions.

Every failure the API reports on purpose is one of these. Each carries a
machine-readable ``code`` and the HTTP status it maps to, so route handlers
can let them propagate and ``main`` renders them uniformly as
``{"error": code, "detail": message}``.
"""

from fastapi import status


class BallotlineError(Exception):
    """Base exception for expected, client-visible failures."""

    code: str = "ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# Identity / authorization
# =============================================================================


class Unauthorized(BallotlineError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(BallotlineError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotEligible(BallotlineError):
    code = "NOT_ELIGIBLE"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not eligible to vote in this election"


# =============================================================================
# Lookups
# =============================================================================


class ElectionNotFound(BallotlineError):
    code = "ELECTION_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Election not found"


class ContestNotFound(BallotlineError):
    code = "CONTEST_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Contest not found"


class CandidateNotFound(BallotlineError):
    code = "CANDIDATE_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Candidate not found"


class VoterNotFound(BallotlineError):
    code = "VOTER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Voter is not on this election's roll"


# =============================================================================
# Voting
# =============================================================================


class ElectionNotVotable(BallotlineError):
    code = "ELECTION_NOT_VOTABLE"
    default_message = "Election is not accepting votes"


class AlreadyVoted(BallotlineError):
    code = "ALREADY_VOTED"
    default_message = "You have already voted in this election"


class BallotValidationError(BallotlineError):
    """Base class for ballot content failures."""

    code = "INVALID_BALLOT"
    default_message = "Invalid ballot"


class UnknownContest(BallotValidationError):
    code = "UNKNOWN_CONTEST"
    default_message = "Contest does not belong to this election"


class UnknownCandidate(BallotValidationError):
    code = "UNKNOWN_CANDIDATE"
    default_message = "Candidate does not belong to this contest"


class TooManySelections(BallotValidationError):
    code = "TOO_MANY_SELECTIONS"
    default_message = "Too many selections for contest"


class DuplicateSelection(BallotValidationError):
    code = "DUPLICATE_SELECTION"
    default_message = "The same selection was made more than once"


class EmptyBallot(BallotValidationError):
    code = "EMPTY_BALLOT"
    default_message = "Ballot contains no selections"


# =============================================================================
# Administration / state
# =============================================================================


class InvalidElectionTransition(BallotlineError):
    code = "INVALID_ELECTION_TRANSITION"
    default_message = "Election status change is not allowed"


class InvalidElectionWindow(BallotlineError):
    code = "INVALID_ELECTION_WINDOW"
    default_message = "Election end date must be after its start date"


class InvalidContestDefinition(BallotlineError):
    code = "INVALID_CONTEST"
    default_message = "Contest definition is not valid"


class PreconditionFailed(BallotlineError):
    code = "PRECONDITION_FAILED"
    status_code = status.HTTP_412_PRECONDITION_FAILED
    default_message = "Precondition failed"


class Conflict(BallotlineError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class DuplicateCandidate(Conflict):
    code = "DUPLICATE_CANDIDATE"
    default_message = "Candidate is already added to this contest"


class StorageFailure(BallotlineError):
    code = "STORAGE_FAILURE"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to record votes"
