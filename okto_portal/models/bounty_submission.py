# okto_portal/models/bounty_submission.py

import uuid
from sqlalchemy import (
    Column, String, Text, Integer, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship

from okto_portal.constants import SubmissionStatus
from okto_portal.db_types import UUIDType, EnumType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class BountySubmission(db.Model):
    __tablename__ = "bounty_submissions"
    __table_args__ = (
        UniqueConstraint("bounty_id", "submitter_id", name="uq_bounty_submissions_bounty_submitter"),
        CheckConstraint("points_awarded >= 0", name="ck_bounty_submissions_points_non_negative"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    bounty_id = Column(UUIDType, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True)
    submitter_id = Column(UUIDType, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    submission_url = Column(String(2048), nullable=True)
    submission_text = Column(Text, nullable=True)
    status = Column(
        EnumType(*SubmissionStatus.ALL, name="submission_status"),
        nullable=False,
        default=SubmissionStatus.PENDING,
    )
    # Written once, at pending -> approved
    points_awarded = Column(Integer, nullable=False, default=0)
    feedback = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    bounty = relationship("Proposal", back_populates="submissions")
    submitter = relationship("Profile", back_populates="bounty_submissions")

    def to_dict(self):
        """Serializes the BountySubmission object to a dictionary."""
        return {
            "id": str(self.id),
            "bounty_id": str(self.bounty_id),
            "submitter_id": str(self.submitter_id),
            "title": self.title,
            "description": self.description,
            "submission_url": self.submission_url,
            "submission_text": self.submission_text,
            "status": self.status,
            "points_awarded": self.points_awarded,
            "feedback": self.feedback,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
