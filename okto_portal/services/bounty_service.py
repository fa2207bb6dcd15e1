import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from okto_portal.constants import (
    CreditSource,
    EntityType,
    ProposalStatus,
    ProposalType,
    ReviewDecision,
    Role,
    SUBMISSION_TRANSITIONS,
    SubmissionStatus,
    can_transition,
)
from okto_portal.db_types import utcnow
from okto_portal.exceptions import Duplicate, Forbidden, InvalidState, NotFound, ValidationError
from okto_portal.models import BountySubmission, PointCredit, Proposal
from okto_portal.models.db_utils import conditional_update, get_session_scope
from okto_portal.schemas import BountyFieldsSchema, BountyReviewSchema, BountySubmissionSchema
from okto_portal.services.authorization import is_owner_or_admin, load_principal, require_role
from okto_portal.services.lifecycle import as_uuid, get_or_404, parse_payload, record_status_change
from okto_portal.services.payout_service import payout_service

logger = logging.getLogger(__name__)

BOUNTY_FIELDS = (
    "title",
    "short_description",
    "description",
    "total_points",
    "deadline",
    "fields",
    "skills_required",
)


class BountyService:

    # ------------------------- Admin bounty management -------------------------
    def create_bounty(self, admin_id: Any, bounty_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Publishes a bounty directly. Admin-authored bounties skip the proposal
        review and are open for submissions as soon as they are created.
        """
        payload = parse_payload(BountyFieldsSchema, bounty_data)
        with get_session_scope() as session:
            admin = require_role(session, admin_id, Role.ADMIN)
            bounty = Proposal(
                creator_id=admin.id,
                type=ProposalType.BOUNTY,
                status=ProposalStatus.APPROVED,
                **{name: getattr(payload, name) for name in BOUNTY_FIELDS},
            )
            session.add(bounty)
            session.flush()
            logger.info(f"📢 Bounty {bounty.id} published by admin {admin.id} ({bounty.total_points} points).")
            return bounty.to_dict(include_milestones=False)

    def edit_bounty(self, admin_id: Any, bounty_id: Any, bounty_data: Dict[str, Any]) -> Dict[str, Any]:
        """Replaces a bounty's details. The total cannot drop below any award already made from it."""
        payload = parse_payload(BountyFieldsSchema, bounty_data)
        with get_session_scope() as session:
            admin = require_role(session, admin_id, Role.ADMIN)
            bounty = self._bounty_or_404(session, bounty_id)
            if bounty.status in (ProposalStatus.REJECTED, ProposalStatus.COMPLETED):
                raise InvalidState(f"Bounty in '{bounty.status}' can no longer be edited.", current_status=bounty.status)

            largest_award = max((s.points_awarded for s in bounty.submissions), default=0)
            if payload.total_points < largest_award:
                raise ValidationError(
                    f"Total points cannot drop below the {largest_award} points already awarded from this bounty."
                )

            updated = conditional_update(
                session,
                Proposal,
                [Proposal.id == bounty.id, Proposal.status == bounty.status],
                {
                    **{getattr(Proposal, name): getattr(payload, name) for name in BOUNTY_FIELDS},
                    Proposal.updated_at: utcnow(),
                },
            )
            session.refresh(bounty)
            if not updated:
                raise InvalidState(
                    f"Bounty moved to '{bounty.status}' while being edited.", current_status=bounty.status
                )
            logger.info(f"✏️ Bounty {bounty.id} edited by admin {admin.id}.")
            return bounty.to_dict(include_milestones=False)

    def delete_bounty(self, admin_id: Any, bounty_id: Any) -> Dict[str, Any]:
        """
        Removes a bounty and its unreviewed or rejected submissions.

        Raises:
            InvalidState: a submission was approved or points were credited
                from this bounty; the ledger keeps its source.
        """
        with get_session_scope() as session:
            admin = require_role(session, admin_id, Role.ADMIN)
            bounty = self._bounty_or_404(session, bounty_id)

            submission_ids = [s.id for s in bounty.submissions]
            approved = sum(1 for s in bounty.submissions if s.status == SubmissionStatus.APPROVED)
            credited = 0
            if submission_ids:
                credited = (
                    session.query(PointCredit)
                    .filter(
                        PointCredit.source_type == CreditSource.BOUNTY_SUBMISSION,
                        PointCredit.source_id.in_(submission_ids),
                    )
                    .count()
                )
            if approved or credited:
                raise InvalidState(
                    f"Bounty has {approved} approved submissions and {credited} credits and cannot be deleted.",
                    current_status=bounty.status,
                )

            session.delete(bounty)
            session.flush()
            logger.info(f"🗑️ Bounty {bounty_id} and {len(submission_ids)} submissions deleted by admin {admin.id}.")
            return {"id": str(bounty_id), "deleted": True}

    @staticmethod
    def _bounty_or_404(session, bounty_id) -> Proposal:
        bounty = session.get(Proposal, as_uuid(bounty_id, "bounty id"))
        if bounty is None or bounty.type != ProposalType.BOUNTY:
            raise NotFound("Bounty not found.")
        return bounty

    # ------------------------- Intake -------------------------
    def create_bounty_submission(self, submitter_id: Any, bounty_id: Any, submission_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Records a contributor's entry against an approved bounty.

        Raises:
            NotFound: no bounty-type proposal with that id.
            InvalidState: the bounty is not open (not approved).
            ValidationError: bad payload, or the bounty deadline has passed.
            Duplicate: the submitter already has an entry for this bounty.
        """
        payload = parse_payload(BountySubmissionSchema, submission_data)
        with get_session_scope() as session:
            submitter = load_principal(session, submitter_id)
            bounty = self._bounty_or_404(session, bounty_id)
            if bounty.status != ProposalStatus.APPROVED:
                raise InvalidState("Bounty is not open for submissions.", current_status=bounty.status)
            if bounty.deadline is not None and bounty.deadline < utcnow():
                raise ValidationError(f"The deadline for this bounty passed on {bounty.deadline.isoformat()}.")

            existing = self._existing_submission_id(session, bounty.id, submitter.id)
            if existing is not None:
                raise Duplicate("You already have a submission for this bounty.", existing_id=existing)

            submission = BountySubmission(
                bounty_id=bounty.id,
                submitter_id=submitter.id,
                title=payload.title,
                description=payload.description,
                submission_url=payload.submission_url,
                submission_text=payload.submission_text,
                status=SubmissionStatus.PENDING,
                points_awarded=0,
            )
            session.add(submission)
            try:
                session.flush()
            except IntegrityError:
                # Lost a race with a concurrent submission from the same user
                session.rollback()
                existing = self._existing_submission_id(session, bounty.id, submitter.id)
                if existing is None:
                    raise
                raise Duplicate("You already have a submission for this bounty.", existing_id=existing)

            logger.info(f"📥 Submission {submission.id} created for bounty {bounty.id} by {submitter.id}.")
            return submission.to_dict()

    @staticmethod
    def _existing_submission_id(session, bounty_id, submitter_id):
        row = (
            session.query(BountySubmission.id)
            .filter(BountySubmission.bounty_id == bounty_id, BountySubmission.submitter_id == submitter_id)
            .first()
        )
        return row.id if row else None

    # ------------------------- Review & payout -------------------------
    def review_bounty(self, reviewer_id: Any, submission_id: Any, review_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Moves a pending submission to `approved` (crediting the awarded points
        to the submitter) or `rejected`. Both outcomes are terminal.

        The status write is conditioned on the submission still being pending,
        so of two concurrent approvals exactly one succeeds and the other gets
        InvalidState; only the winner records a credit.
        """
        review = parse_payload(BountyReviewSchema, review_data)
        approving = review.decision == ReviewDecision.APPROVE
        target = SubmissionStatus.APPROVED if approving else SubmissionStatus.REJECTED

        with get_session_scope() as session:
            reviewer = require_role(session, reviewer_id, Role.ADMIN)
            submission = get_or_404(session, BountySubmission, submission_id, "submission")
            if not can_transition(SUBMISSION_TRANSITIONS, submission.status, target):
                raise InvalidState(
                    f"Submission has already been {submission.status}.", current_status=submission.status
                )

            bounty = submission.bounty
            points = 0
            if approving:
                points = review.points
                if points is None or points <= 0 or points > bounty.total_points:
                    raise ValidationError(
                        f"Points awarded must be between 1 and the bounty's total of {bounty.total_points}."
                    )

            changed = conditional_update(
                session,
                BountySubmission,
                [BountySubmission.id == submission.id, BountySubmission.status == SubmissionStatus.PENDING],
                {
                    BountySubmission.status: target,
                    BountySubmission.feedback: review.feedback,
                    BountySubmission.points_awarded: points,
                    BountySubmission.updated_at: utcnow(),
                },
            )
            session.refresh(submission)
            if not changed:
                logger.warning(f"🚫 Concurrent review lost for submission {submission.id} (now '{submission.status}').")
                raise InvalidState(
                    f"Submission has already been {submission.status}.", current_status=submission.status
                )

            record_status_change(
                session, EntityType.BOUNTY_SUBMISSION, submission.id, reviewer.id,
                SubmissionStatus.PENDING, target, review.feedback,
            )
            credit_id = None
            if approving:
                credit = payout_service.record_credit(
                    session,
                    user_id=submission.submitter_id,
                    source_type=CreditSource.BOUNTY_SUBMISSION,
                    source_id=submission.id,
                    amount=points,
                    description=f"Bounty '{bounty.title}' approved",
                )
                credit_id = credit.id
            result = submission.to_dict()

        if credit_id is not None:
            payout_service.settle(credit_id, result)
        logger.info(f"✅ Submission {result['id']} {target} by {reviewer_id} ({points} points).")
        return result

    # ------------------------- Delete -------------------------
    def delete_bounty_submission(self, actor_id: Any, submission_id: Any) -> Dict[str, Any]:
        """Lets the submitter (or an admin) remove a submission that has not been reviewed yet."""
        with get_session_scope() as session:
            actor = load_principal(session, actor_id)
            submission = get_or_404(session, BountySubmission, submission_id, "submission")
            if not is_owner_or_admin(actor, submission.submitter_id):
                raise Forbidden("Only the submitter or an admin can delete this submission.")

            deleted = (
                session.query(BountySubmission)
                .filter(BountySubmission.id == submission.id, BountySubmission.status == SubmissionStatus.PENDING)
                .delete(synchronize_session=False)
            )
            if deleted != 1:
                session.refresh(submission)
                raise InvalidState(
                    "Reviewed submissions cannot be deleted.", current_status=submission.status
                )
            session.expunge(submission)
            logger.info(f"🗑️ Submission {submission_id} deleted by {actor.id}.")
            return {"id": str(submission_id), "deleted": True}

    # ------------------------- Reads -------------------------
    def get_submission(self, submission_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            submission = get_or_404(session, BountySubmission, submission_id, "submission")
            data = submission.to_dict()
            data["bounty"] = submission.bounty.to_dict(include_milestones=False)
            return data

    def list_submissions(self, bounty_id: Any, status: Optional[str] = None) -> List[Dict[str, Any]]:
        if status and status not in SubmissionStatus.ALL:
            raise ValidationError(f"Unknown submission status '{status}'.")
        with get_session_scope() as session:
            query = session.query(BountySubmission).filter(BountySubmission.bounty_id == as_uuid(bounty_id, "bounty id"))
            if status:
                query = query.filter(BountySubmission.status == status)
            return [s.to_dict() for s in query.order_by(BountySubmission.created_at).all()]


bounty_service = BountyService()
