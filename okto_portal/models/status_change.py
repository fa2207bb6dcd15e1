# okto_portal/models/status_change.py

import uuid
from sqlalchemy import Column, String, Text, ForeignKey

from okto_portal.constants import EntityType
from okto_portal.db_types import UUIDType, EnumType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class StatusChange(db.Model):
    __tablename__ = "status_changes"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    entity_type = Column(EnumType(*EntityType.ALL, name="status_entity_type"), nullable=False)
    entity_id = Column(UUIDType, nullable=False, index=True)
    changed_by = Column(UUIDType, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    old_status = Column(String(50), nullable=False)
    new_status = Column(String(50), nullable=False)
    feedback = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id),
            "changed_by": str(self.changed_by) if self.changed_by else None,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "feedback": self.feedback,
            "created_at": isoformat(self.created_at),
        }
