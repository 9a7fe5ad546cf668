"""
Vote casting.

One code path turns an authenticated voter's ballot into committed vote
records. Everything between locking the voter's eligibility row and the
commit happens in a single transaction: either the records are appended to
the ledger AND the voter is marked ``voted``, or nothing changes.

Lock order is always eligibility row, then chain head. Every writer takes
them in that order, so two ballots can never deadlock on each other.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AlreadyVoted, BallotlineError, NotEligible, StorageFailure
from core.security import compute_ballot_hash
from models.eligibility import EligibilityStatus
from repositories.audit_repository import AuditRepository
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from repositories.vote_repository import VoteRepository
from services.ballot_validator import Ballot, BallotValidator, ensure_election_votable
from services.vote_ledger import VoteDraft, VoteLedger

logger = structlog.get_logger(__name__)

VOTE_CAST_OPERATION = "VOTE_CAST"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BallotReceipt:
    """What the voter gets back after a successful ballot."""

    session_id: str
    election_id: str
    ballot_hash: str
    vote_hash: str  # Hash of the last record appended for this ballot
    records: int
    timestamp: datetime


class VoteCastingService:
    """Casts ballots. The service owns the transaction: it commits or rolls back."""

    def __init__(
        self,
        db: AsyncSession,
        elections: Optional[ElectionRepository] = None,
        contests: Optional[ContestRepository] = None,
        eligibility: Optional[EligibilityRepository] = None,
        votes: Optional[VoteRepository] = None,
        audit: Optional[AuditRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.elections = elections or ElectionRepository(db)
        self.contests = contests or ContestRepository(db)
        self.eligibility = eligibility or EligibilityRepository(db)
        self.votes = votes or VoteRepository(db)
        self.audit = audit or AuditRepository(db)
        self.ledger = VoteLedger(self.votes)
        self.clock = clock

    async def cast_ballot(
        self,
        election_id: str,
        voter_id: str,
        ballot: Ballot,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> BallotReceipt:
        """
        Validate and record one ballot.

        Raises:
            ElectionNotFound / ElectionNotVotable: election missing, not Active
                or outside its window.
            NotEligible: the voter is not on the roll.
            AlreadyVoted: the roll or the ledger already shows a ballot.
            BallotValidationError: a specific ballot content failure.
            StorageFailure: the transaction could not be committed.
        """
        now = self.clock()
        try:
            election = await self.elections.get_by_id(election_id)
            ensure_election_votable(election, now)

            status = await self.eligibility.get_status_for_update(election_id, voter_id)
            if status == EligibilityStatus.VOTED:
                raise AlreadyVoted()
            if status != EligibilityStatus.ELIGIBLE:
                raise NotEligible()

            if await self.votes.exists_for_voter(election_id, voter_id):
                logger.warning(
                    "eligibility_ledger_divergence",
                    election_id=election_id,
                    voter_id=voter_id,
                )
                raise AlreadyVoted()

            catalog = await self.contests.get_catalog(election_id)
            BallotValidator(catalog).validate(ballot, election, now)

            session_id = str(uuid4())
            drafts = [VoteDraft(contest_id, candidate_id) for contest_id, candidate_id in ballot.picks()]
            records = await self.ledger.append(
                session_id=session_id,
                election_id=election_id,
                voter_id=voter_id,
                drafts=drafts,
                timestamp=now,
            )
            await self.eligibility.mark_voted(election_id, voter_id, voted_at=now)
            await self.audit.record(
                operation_type=VOTE_CAST_OPERATION,
                table_name="votes",
                user_id=voter_id,
                record_id=session_id,
                new_values={
                    "election_id": election_id,
                    "contests": len(ballot.selections),
                    "selections": len(records),
                },
                ip_address=ip_address,
                user_agent=user_agent,
            )

            await self.db.commit()
        except BallotlineError as exc:
            await self.db.rollback()
            logger.info(
                "ballot_rejected",
                election_id=election_id,
                voter_id=voter_id,
                error=exc.code,
            )
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "ballot_storage_failed",
                election_id=election_id,
                voter_id=voter_id,
                error=str(exc),
            )
            raise StorageFailure() from exc

        receipt = BallotReceipt(
            session_id=session_id,
            election_id=election_id,
            ballot_hash=compute_ballot_hash(
                session_id=session_id,
                election_id=election_id,
                voter_id=voter_id,
                selections=ballot.as_lists(),
                timestamp=now,
            ),
            vote_hash=records[-1].vote_hash,
            records=len(records),
            timestamp=now,
        )
        logger.info(
            "ballot_cast",
            election_id=election_id,
            session_id=session_id,
            records=len(records),
        )
        return receipt
