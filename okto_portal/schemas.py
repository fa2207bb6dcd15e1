# okto_portal/schemas.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Literal

from okto_portal.constants import ProposalType, ReviewDecision, Role, VERIFICATION_REQUESTED
from okto_portal.db_types import to_utc


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# --- Intake ---

class MilestoneInput(_Schema):
    id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    deliverables: List[str] = Field(default_factory=list)
    points_allocated: int = Field(..., gt=0)
    deadline: datetime

    @field_validator("deadline")
    @classmethod
    def deadline_to_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class _ProposalFields(_Schema):
    title: str = Field(..., min_length=1, max_length=255)
    short_description: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    total_points: int = Field(..., gt=0)
    deadline: Optional[datetime] = None
    fields: List[str] = Field(default_factory=list)
    skills_required: List[str] = Field(default_factory=list)
    milestones: List[MilestoneInput] = Field(default_factory=list)

    @field_validator("deadline")
    @classmethod
    def deadline_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None

    @property
    def milestone_points(self) -> int:
        return sum(m.points_allocated for m in self.milestones)


class ProposalCreateSchema(_ProposalFields):
    type: Literal["project", "bounty"] = ProposalType.PROJECT
    submit: bool = False

    @model_validator(mode="after")
    def bounties_have_no_milestones(self):
        if self.type == ProposalType.BOUNTY and self.milestones:
            raise ValueError("Bounty proposals cannot carry milestones.")
        return self


class ProposalEditSchema(_ProposalFields):
    """Full replacement payload. The proposal type is fixed at creation."""


class BountySubmissionSchema(_Schema):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    submission_url: Optional[str] = Field(None, max_length=2048)
    submission_text: Optional[str] = None


# --- Review ---

class BountyReviewSchema(_Schema):
    decision: Literal["approve", "reject"]
    # A reviewer must always leave a rationale
    feedback: str = Field(..., min_length=1)
    # JSON integers only, no coercion from "40" or true
    points: Optional[int] = Field(None, strict=True)


class ProposalReviewSchema(_Schema):
    decision: Literal["approve", "reject"]
    feedback: Optional[str] = None

    @model_validator(mode="after")
    def rejection_needs_feedback(self):
        if self.decision == ReviewDecision.REJECT and not self.feedback:
            raise ValueError("Feedback is required when rejecting.")
        return self


class MilestoneReviewSchema(ProposalReviewSchema):

    @field_validator("feedback")
    @classmethod
    def feedback_is_not_the_verification_marker(cls, v: Optional[str]) -> Optional[str]:
        # Milestone status is read back from this column
        if v == VERIFICATION_REQUESTED:
            raise ValueError(f"Feedback cannot be the reserved value '{VERIFICATION_REQUESTED}'.")
        return v


class RoleChangeSchema(_Schema):
    role: Literal["member", "admin"] = Role.MEMBER


class ProfileUpdateSchema(_Schema):
    """Self-service profile fields. Role and balance are not accepted here."""
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    full_name: Optional[str] = Field(None, min_length=1, max_length=128)


# --- Admin bounty management ---

class BountyFieldsSchema(_Schema):
    title: str = Field(..., min_length=1, max_length=255)
    short_description: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    total_points: int = Field(..., gt=0)
    deadline: datetime
    fields: List[str] = Field(default_factory=list)
    skills_required: List[str] = Field(default_factory=list)

    @field_validator("deadline")
    @classmethod
    def deadline_to_utc(cls, v: datetime) -> datetime:
        return to_utc(v)
