# okto_portal/models/proposal.py

import uuid
from sqlalchemy import Column, String, Text, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from okto_portal.constants import ProposalStatus, ProposalType
from okto_portal.db_types import UUIDType, EnumType, JSONType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class Proposal(db.Model):
    __tablename__ = "proposals"
    __table_args__ = (
        CheckConstraint("total_points > 0", name="ck_proposals_total_points_positive"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    creator_id = Column(UUIDType, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(EnumType(*ProposalType.ALL, name="proposal_type"), nullable=False)
    status = Column(
        EnumType(*ProposalStatus.ALL, name="proposal_status"),
        nullable=False,
        default=ProposalStatus.DRAFT,
    )
    title = Column(String(255), nullable=False)
    short_description = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    total_points = Column(Integer, nullable=False)
    deadline = Column(UTCDateTime, nullable=True)
    fields = Column(JSONType, nullable=False, default=list)
    skills_required = Column(JSONType, nullable=False, default=list)
    review_feedback = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("Profile", back_populates="proposals")
    milestones = relationship(
        "Milestone",
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="[Milestone.deadline, Milestone.created_at]",
    )
    submissions = relationship("BountySubmission", back_populates="bounty", cascade="all, delete-orphan")
    project = relationship("Project", back_populates="proposal", uselist=False, cascade="all, delete-orphan")

    def to_dict(self, include_milestones: bool = True):
        """Serializes the Proposal object to a dictionary."""
        data = {
            "id": str(self.id),
            "creator_id": str(self.creator_id),
            "type": self.type,
            "status": self.status,
            "title": self.title,
            "short_description": self.short_description,
            "description": self.description,
            "total_points": self.total_points,
            "deadline": isoformat(self.deadline),
            "fields": list(self.fields or []),
            "skills_required": list(self.skills_required or []),
            "review_feedback": self.review_feedback,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_milestones:
            data["milestones"] = [m.to_dict() for m in self.milestones]
        return data
