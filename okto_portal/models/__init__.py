# okto_portal/models/__init__.py

from .profile import Profile
from .proposal import Proposal
from .milestone import Milestone
from .bounty_submission import BountySubmission
from .project import Project, ProjectMember
from .point_credit import PointCredit
from .status_change import StatusChange

__all__ = [
    "Profile",
    "Proposal",
    "Milestone",
    "BountySubmission",
    "Project",
    "ProjectMember",
    "PointCredit",
    "StatusChange",
]
