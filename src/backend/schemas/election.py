"""
Election, contest and candidate schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from schemas.base import ApiModel


class ElectionStatusEnum(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ContestTypeEnum(str, Enum):
    CHOOSE_ONE = "ChooseOne"
    YES_NO = "YesNo"
    MULTI_SELECT = "MultiSelect"


# ============================================================================
# Requests
# ============================================================================


class ElectionCreate(ApiModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: datetime
    end_date: datetime


class ElectionUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ElectionStatusChange(ApiModel):
    status: ElectionStatusEnum


class ContestCreate(ApiModel):
    """New contest. ``max_selections`` is only meaningful for MultiSelect."""

    title: str = Field(..., min_length=1, max_length=255)
    contest_type: ContestTypeEnum = ContestTypeEnum.CHOOSE_ONE
    max_selections: Optional[int] = Field(None, ge=1, le=100)
    display_order: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _multi_select_needs_limit(self) -> "ContestCreate":
        if self.contest_type == ContestTypeEnum.MULTI_SELECT and self.max_selections is None:
            raise ValueError("maxSelections is required for MultiSelect contests")
        return self


class ContestUpdate(ApiModel):
    """Partial contest edit; omitted fields are left as they are."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    contest_type: Optional[ContestTypeEnum] = None
    max_selections: Optional[int] = Field(None, ge=1, le=100)
    display_order: Optional[int] = Field(None, ge=0)


class CandidateCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    party: Optional[str] = Field(None, max_length=255)


class CandidateUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    party: Optional[str] = Field(None, max_length=255)


# ============================================================================
# Responses
# ============================================================================


class Candidate(ApiModel):
    id: str
    name: str
    party: Optional[str] = None


class Contest(ApiModel):
    id: str
    title: str
    contest_type: ContestTypeEnum
    max_selections: int
    display_order: int = 0
    candidates: list[Candidate] = Field(default_factory=list)


class Election(ApiModel):
    id: str
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: ElectionStatusEnum
    created_at: Optional[datetime] = None


class ElectionDetail(Election):
    contests: list[Contest] = Field(default_factory=list)


class BallotView(ApiModel):
    """What the client needs to render a ballot for the caller."""

    election: Election
    contests: list[Contest]
    is_eligible: bool
    has_voted: bool
    user_votes: dict[str, list[str]] = Field(default_factory=dict)
