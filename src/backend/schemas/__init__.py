"""Schemas module initialization."""

from schemas.election import (
    BallotView,
    Election,
    ElectionCreate,
    ElectionDetail,
    ElectionStatusChange,
    ElectionUpdate,
)
from schemas.user import CurrentUser
from schemas.vote import BallotSubmission, ChainVerification, ElectionResults, VoteReceipt

__all__ = [
    "BallotSubmission",
    "BallotView",
    "ChainVerification",
    "CurrentUser",
    "Election",
    "ElectionCreate",
    "ElectionDetail",
    "ElectionResults",
    "ElectionStatusChange",
    "ElectionUpdate",
    "VoteReceipt",
]
