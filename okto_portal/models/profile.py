# okto_portal/models/profile.py

import uuid
from sqlalchemy import Column, String, Integer, CheckConstraint
from sqlalchemy.orm import relationship

from okto_portal.constants import Role
from okto_portal.db_types import UUIDType, EnumType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class Profile(db.Model):
    """An authenticated principal: role plus accumulated point balance."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("point_balance >= 0", name="ck_profiles_point_balance_non_negative"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    firebase_uid = Column(String(128), unique=True, nullable=False)
    email = Column(String(256), nullable=True)
    username = Column(String(64), nullable=True)
    full_name = Column(String(128), nullable=True)
    role = Column(EnumType(*Role.ALL, name="profile_role"), nullable=False, default=Role.MEMBER)
    # Only the payout ledger increments this column
    point_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    proposals = relationship("Proposal", back_populates="creator")
    bounty_submissions = relationship("BountySubmission", back_populates="submitter")
    point_credits = relationship("PointCredit", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self):
        """Serializes the Profile object to a dictionary."""
        return {
            "id": str(self.id),
            "firebase_uid": self.firebase_uid,
            "email": self.email,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "point_balance": self.point_balance,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
