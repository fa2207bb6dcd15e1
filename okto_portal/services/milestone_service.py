import logging
from typing import Any, Dict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from okto_portal.constants import (
    CreditSource,
    EntityType,
    MILESTONE_TRANSITIONS,
    MilestoneStatus,
    ProposalStatus,
    ReviewDecision,
    Role,
    VERIFICATION_REQUESTED,
    can_transition,
)
from okto_portal.db_types import utcnow
from okto_portal.exceptions import InvalidState
from okto_portal.models import Milestone
from okto_portal.models.db_utils import conditional_update, get_session_scope
from okto_portal.schemas import MilestoneReviewSchema
from okto_portal.services.authorization import load_principal, require_role
from okto_portal.services.lifecycle import get_or_404, parse_payload, record_status_change
from okto_portal.services.payout_service import payout_service

logger = logging.getLogger(__name__)


class MilestoneService:
    """
    Milestone lifecycle:

        pending -> verification_requested      (self-service request)
        verification_requested -> completed    (admin, credits points_allocated to the proposal creator)
        verification_requested -> pending      (admin rejection, feedback required)
    """

    def request_verification(self, actor_id: Any, milestone_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            actor = load_principal(session, actor_id)
            milestone = self._active_milestone(session, milestone_id)
            if not can_transition(MILESTONE_TRANSITIONS, milestone.status, MilestoneStatus.VERIFICATION_REQUESTED):
                raise InvalidState(
                    f"Milestone is '{milestone.status}', verification can only be requested while pending.",
                    current_status=milestone.status,
                )

            changed = conditional_update(
                session,
                Milestone,
                [
                    Milestone.id == milestone.id,
                    Milestone.completed.is_(False),
                    or_(Milestone.feedback.is_(None), Milestone.feedback != VERIFICATION_REQUESTED),
                ],
                {Milestone.feedback: VERIFICATION_REQUESTED, Milestone.updated_at: utcnow()},
            )
            session.refresh(milestone)
            if not changed:
                raise InvalidState(
                    f"Milestone is '{milestone.status}', verification can only be requested while pending.",
                    current_status=milestone.status,
                )

            record_status_change(
                session, EntityType.MILESTONE, milestone.id, actor.id,
                MilestoneStatus.PENDING, MilestoneStatus.VERIFICATION_REQUESTED,
            )
            logger.info(f"📨 Verification requested for milestone {milestone.id} by {actor.id}.")
            return milestone.to_dict()

    def review_milestone(self, actor_id: Any, milestone_id: Any, review_data: Dict[str, Any]) -> Dict[str, Any]:
        review = parse_payload(MilestoneReviewSchema, review_data)
        approving = review.decision == ReviewDecision.APPROVE
        target = MilestoneStatus.COMPLETED if approving else MilestoneStatus.PENDING

        with get_session_scope() as session:
            admin = require_role(session, actor_id, Role.ADMIN)
            milestone = self._active_milestone(session, milestone_id)
            if not can_transition(MILESTONE_TRANSITIONS, milestone.status, target):
                raise InvalidState(
                    f"Milestone is '{milestone.status}', only milestones awaiting verification can be reviewed.",
                    current_status=milestone.status,
                )

            if approving:
                values = {
                    Milestone.completed: True,
                    Milestone.completed_at: utcnow(),
                    Milestone.feedback: review.feedback or None,
                }
            else:
                values = {Milestone.feedback: review.feedback}
            values[Milestone.updated_at] = utcnow()

            changed = conditional_update(
                session,
                Milestone,
                [
                    Milestone.id == milestone.id,
                    Milestone.completed.is_(False),
                    Milestone.feedback == VERIFICATION_REQUESTED,
                ],
                values,
            )
            session.refresh(milestone)
            if not changed:
                raise InvalidState(
                    f"Milestone is '{milestone.status}', only milestones awaiting verification can be reviewed.",
                    current_status=milestone.status,
                )

            record_status_change(
                session, EntityType.MILESTONE, milestone.id, admin.id,
                MilestoneStatus.VERIFICATION_REQUESTED, target, review.feedback,
            )
            credit_id = None
            if approving:
                proposal = milestone.proposal
                credit = payout_service.record_credit(
                    session,
                    user_id=proposal.creator_id,
                    source_type=CreditSource.MILESTONE,
                    source_id=milestone.id,
                    amount=milestone.points_allocated,
                    description=f"Milestone '{milestone.title}' of '{proposal.title}' completed",
                )
                credit_id = credit.id
            result = milestone.to_dict()

        if credit_id is not None:
            payout_service.settle(credit_id, result)
        logger.info(f"✅ Milestone {result['id']} reviewed by {actor_id}: {target}.")
        return result

    @staticmethod
    def _active_milestone(session: Session, milestone_id: Any) -> Milestone:
        milestone = get_or_404(session, Milestone, milestone_id, "milestone")
        proposal = milestone.proposal
        if proposal.status != ProposalStatus.APPROVED:
            raise InvalidState(
                f"Milestones can only move while their proposal is approved (it is '{proposal.status}').",
                current_status=proposal.status,
            )
        return milestone


milestone_service = MilestoneService()
