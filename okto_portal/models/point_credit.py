# okto_portal/models/point_credit.py

import uuid
from sqlalchemy import (
    Column, String, Integer, Text, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship

from okto_portal.constants import CreditSource, CreditStatus
from okto_portal.db_types import UUIDType, EnumType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class PointCredit(db.Model):
    """
    One ledger row per payout. The (source_type, source_id) pair is the
    idempotency key: a submission or milestone can only ever produce one credit.
    """

    __tablename__ = "point_credits"
    __table_args__ = (
        UniqueConstraint("source_type", "source_id", name="uq_point_credits_source"),
        CheckConstraint("amount > 0", name="ck_point_credits_amount_positive"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    user_id = Column(UUIDType, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    source_type = Column(EnumType(*CreditSource.ALL, name="credit_source"), nullable=False)
    source_id = Column(UUIDType, nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(
        EnumType(*CreditStatus.ALL, name="credit_status"),
        nullable=False,
        default=CreditStatus.PENDING,
        index=True,
    )
    description = Column(Text, nullable=False)
    balance_after = Column(Integer, nullable=True)
    last_error = Column(String(500), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    applied_at = Column(UTCDateTime, nullable=True)

    user = relationship("Profile", back_populates="point_credits")

    def to_dict(self):
        """Serializes the PointCredit object to a dictionary."""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "source_type": self.source_type,
            "source_id": str(self.source_id),
            "amount": self.amount,
            "status": self.status,
            "description": self.description,
            "balance_after": self.balance_after,
            "created_at": isoformat(self.created_at),
            "applied_at": isoformat(self.applied_at),
        }
