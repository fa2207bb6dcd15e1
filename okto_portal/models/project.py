# okto_portal/models/project.py

import uuid
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from okto_portal.constants import ProjectRole
from okto_portal.db_types import UUIDType, EnumType, UTCDateTime, utcnow, isoformat
from okto_portal.extensions import db


class Project(db.Model):
    """
    Materialized when a project-type proposal is approved.
    Progress and distributed points are computed at read time, never stored.
    """

    __tablename__ = "projects"

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    proposal_id = Column(UUIDType, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, unique=True)
    leader_id = Column(UUIDType, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    repository = Column(String(2048), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    proposal = relationship("Proposal", back_populates="project")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": str(self.id),
            "proposal_id": str(self.proposal_id),
            "leader_id": str(self.leader_id),
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "repository": self.repository,
            "members": [member.to_dict() for member in self.members],
            "created_at": isoformat(self.created_at),
        }


class ProjectMember(db.Model):
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    id = Column(UUIDType, primary_key=True, default=uuid.uuid4)
    project_id = Column(UUIDType, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUIDType, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    role = Column(EnumType(*ProjectRole.ALL, name="project_role"), nullable=False, default=ProjectRole.CONTRIBUTOR)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    project = relationship("Project", back_populates="members")

    def to_dict(self):
        return {"user_id": str(self.user_id), "role": self.role}
