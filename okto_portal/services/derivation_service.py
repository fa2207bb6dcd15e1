import logging
from typing import Any, Dict, List

from sqlalchemy import func

from okto_portal.constants import ProposalType, SubmissionStatus
from okto_portal.exceptions import NotFound
from okto_portal.models import BountySubmission, Milestone, Profile, Proposal
from okto_portal.models.db_utils import get_session_scope
from okto_portal.services.lifecycle import as_uuid, get_or_404
from okto_portal.services.payout_service import payout_service

logger = logging.getLogger(__name__)


def progress_percent(completed: int, total: int) -> int:
    """Completed share of milestones as a whole percentage, rounded down; 0 with no milestones."""
    if total <= 0:
        return 0
    return (completed * 100) // total


class DerivationService:
    """Read-only views. Nothing computed here is ever written back."""

    def get_project_progress(self, proposal_id: Any) -> int:
        return self.get_progress_details(proposal_id)["progress"]

    def get_progress_details(self, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            total = (
                session.query(func.count(Milestone.id))
                .filter(Milestone.proposal_id == proposal.id)
                .scalar()
            )
            completed_count, completed_points = (
                session.query(func.count(Milestone.id), func.coalesce(func.sum(Milestone.points_allocated), 0))
                .filter(Milestone.proposal_id == proposal.id, Milestone.completed.is_(True))
                .one()
            )
            return {
                "proposal_id": str(proposal.id),
                "total_milestones": total,
                "completed_milestones": completed_count,
                "points_distributed": int(completed_points),
                "progress": progress_percent(completed_count, total),
            }

    def get_bounty_stats(self, bounty_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            bounty = session.get(Proposal, as_uuid(bounty_id, "bounty id"))
            if bounty is None or bounty.type != ProposalType.BOUNTY:
                raise NotFound("Bounty not found.")

            submissions = (
                session.query(BountySubmission.submitter_id, BountySubmission.status, BountySubmission.points_awarded)
                .filter(BountySubmission.bounty_id == bounty.id)
                .all()
            )
            by_status = {status: 0 for status in SubmissionStatus.ALL}
            for row in submissions:
                by_status[row.status] += 1

            return {
                "bounty_id": str(bounty.id),
                "total_submissions": len(submissions),
                "approved_submissions": by_status[SubmissionStatus.APPROVED],
                "pending_submissions": by_status[SubmissionStatus.PENDING],
                "rejected_submissions": by_status[SubmissionStatus.REJECTED],
                "unique_contributors": len({row.submitter_id for row in submissions}),
                "points_awarded": sum(
                    row.points_awarded for row in submissions if row.status == SubmissionStatus.APPROVED
                ),
                "total_points": bounty.total_points,
            }

    def get_project(self, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            if proposal.project is None:
                raise NotFound("No project exists for this proposal.")

            milestones = list(proposal.milestones)
            completed = [m for m in milestones if m.completed]
            data = proposal.project.to_dict()
            data.update({
                "proposal": proposal.to_dict(include_milestones=False),
                "milestones": [m.to_dict() for m in milestones],
                "progress": progress_percent(len(completed), len(milestones)),
                "points_distributed": sum(m.points_allocated for m in completed),
            })
            return data

    def get_principal_summary(self, user_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            profile = get_or_404(session, Profile, user_id, "profile")
            data = profile.to_dict()
            data["ledger"] = payout_service.get_credit_totals(session, profile.id)
            data["submission_count"] = (
                session.query(func.count(BountySubmission.id))
                .filter(BountySubmission.submitter_id == profile.id)
                .scalar()
            )
            data["proposal_count"] = (
                session.query(func.count(Proposal.id)).filter(Proposal.creator_id == profile.id).scalar()
            )
            return data

    def get_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        limit = max(1, min(int(limit), 100))
        with get_session_scope() as session:
            profiles = (
                session.query(Profile)
                .order_by(Profile.point_balance.desc(), Profile.created_at)
                .limit(limit)
                .all()
            )
            return [
                {"rank": rank, "id": str(p.id), "username": p.username, "point_balance": p.point_balance}
                for rank, p in enumerate(profiles, start=1)
            ]


derivation_service = DerivationService()
