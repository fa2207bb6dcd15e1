# okto_portal/models/milestone.py

import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from okto_portal.constants import MilestoneStatus, VERIFICATION_REQUESTED
from okto_portal.db_types import UUIDType, JSONType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class Milestone(db.Model):
    __tablename__ = "milestones"
    __table_args__ = (
        CheckConstraint("points_allocated > 0", name="ck_milestones_points_positive"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    proposal_id = Column(UUIDType, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    deliverables = Column(JSONType, nullable=False, default=list)
    points_allocated = Column(Integer, nullable=False)
    deadline = Column(UTCDateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(UTCDateTime, nullable=True)
    # Free text, or the "verification_requested" sentinel
    feedback = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    proposal = relationship("Proposal", back_populates="milestones")

    @property
    def status(self) -> str:
        if self.completed:
            return MilestoneStatus.COMPLETED
        if self.feedback == VERIFICATION_REQUESTED:
            return MilestoneStatus.VERIFICATION_REQUESTED
        return MilestoneStatus.PENDING

    def to_dict(self):
        return {
            "id": str(self.id),
            "proposal_id": str(self.proposal_id),
            "title": self.title,
            "description": self.description,
            "deliverables": list(self.deliverables or []),
            "points_allocated": self.points_allocated,
            "deadline": isoformat(self.deadline),
            "completed": bool(self.completed),
            "completed_at": isoformat(self.completed_at),
            "feedback": self.feedback,
            "status": self.status,
            "created_at": isoformat(self.created_at),
        }
