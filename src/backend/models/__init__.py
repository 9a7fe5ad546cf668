"""Database models module."""

from models.audit_log import AuditLog
from models.contest import Candidate, Contest, ContestType
from models.election import Election, ElectionStatus
from models.eligibility import EligibilityStatus, EligibleVoter
from models.user import RoleName, User, UserRole, UserStatus
from models.vote import VoteChainHead, VoteRecord

__all__ = [
    "AuditLog",
    "Candidate",
    "Contest",
    "ContestType",
    "Election",
    "ElectionStatus",
    "EligibilityStatus",
    "EligibleVoter",
    "RoleName",
    "User",
    "UserRole",
    "UserStatus",
    "VoteChainHead",
    "VoteRecord",
]
