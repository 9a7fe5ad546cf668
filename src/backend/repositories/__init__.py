"""Repository modules for database access."""

from repositories.audit_repository import AuditRepository
from repositories.contest_repository import ContestRepository
from repositories.election_repository import ElectionRepository
from repositories.eligibility_repository import EligibilityRepository
from repositories.user_repository import UserRepository
from repositories.vote_repository import VoteRepository

__all__ = [
    "AuditRepository",
    "ContestRepository",
    "ElectionRepository",
    "EligibilityRepository",
    "UserRepository",
    "VoteRepository",
]
