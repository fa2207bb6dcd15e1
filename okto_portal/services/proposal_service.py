import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from flask import current_app
from sqlalchemy.orm import Session

from okto_portal.constants import (
    EntityType,
    PROPOSAL_TRANSITIONS,
    ProjectRole,
    ProposalStatus,
    ProposalType,
    ReviewDecision,
    Role,
    can_transition,
)
from okto_portal.db_types import utcnow
from okto_portal.exceptions import Forbidden, InvalidState, ValidationError
from okto_portal.models import Milestone, Project, ProjectMember, Proposal
from okto_portal.models.db_utils import conditional_update, get_session_scope
from okto_portal.schemas import (
    MilestoneInput,
    ProposalCreateSchema,
    ProposalEditSchema,
    ProposalReviewSchema,
)
from okto_portal.services.authorization import load_principal, require_role
from okto_portal.services.lifecycle import get_or_404, parse_payload, record_status_change

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "short_description",
    "description",
    "total_points",
    "deadline",
    "fields",
    "skills_required",
)


class ProposalService:

    # ------------------------- Intake -------------------------
    def create_proposal(self, creator_id: Any, proposal_data: Dict[str, Any], submit: Optional[bool] = None) -> Dict[str, Any]:
        """
        Creates a proposal (and its milestones) in `draft`.

        When `submit` is true the proposal is moved straight on to `submitted`,
        mirroring the "save as draft" / "submit" choice on the proposal form.
        """
        payload = parse_payload(ProposalCreateSchema, proposal_data)
        submit = payload.submit if submit is None else submit
        self._check_milestone_points(payload.total_points, payload.milestones)

        with get_session_scope() as session:
            creator = load_principal(session, creator_id)
            proposal = Proposal(
                creator_id=creator.id,
                type=payload.type,
                status=ProposalStatus.DRAFT,
                title=payload.title,
                short_description=payload.short_description,
                description=payload.description,
                total_points=payload.total_points,
                deadline=payload.deadline,
                fields=list(payload.fields),
                skills_required=list(payload.skills_required),
            )
            for item in payload.milestones:
                proposal.milestones.append(self._new_milestone(item))
            session.add(proposal)
            session.flush()

            if submit:
                self._transition(session, proposal, ProposalStatus.DRAFT, ProposalStatus.SUBMITTED, creator.id)

            logger.info(f"📥 Proposal {proposal.id} ({proposal.type}) created by {creator.id} in '{proposal.status}'.")
            return proposal.to_dict()

    # ------------------------- Edit & withdraw -------------------------
    def edit_proposal(self, actor_id: Any, proposal_id: Any, proposal_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replaces the proposal's editable fields and reconciles its milestones
        against the payload, all in one transaction:

        * persisted milestones missing from the payload are deleted,
        * payload milestones without an id are inserted,
        * payload milestones with a known id are updated in place.
        """
        payload = parse_payload(ProposalEditSchema, proposal_data)

        with get_session_scope() as session:
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            if proposal.status not in ProposalStatus.EDITABLE:
                raise InvalidState(
                    f"Proposal in '{proposal.status}' can no longer be edited.",
                    current_status=proposal.status,
                )

            actor = load_principal(session, actor_id)
            if proposal.creator_id != actor.id:
                raise Forbidden("Only the proposal creator can edit it.")

            if proposal.type == ProposalType.BOUNTY and payload.milestones:
                raise ValidationError("Bounty proposals cannot carry milestones.")
            self._check_milestone_points(payload.total_points, payload.milestones)

            existing = {milestone.id: milestone for milestone in proposal.milestones}
            incoming_ids = {item.id for item in payload.milestones if item.id is not None}
            unknown = incoming_ids - set(existing)
            if unknown:
                raise ValidationError(
                    f"Milestones {sorted(str(i) for i in unknown)} do not belong to this proposal."
                )

            # Status is re-checked by the write itself so a concurrent submit/review wins cleanly
            updated = conditional_update(
                session,
                Proposal,
                [Proposal.id == proposal.id, Proposal.status == proposal.status],
                {
                    **{getattr(Proposal, name): getattr(payload, name) for name in EDITABLE_FIELDS},
                    Proposal.updated_at: utcnow(),
                },
            )
            if not updated:
                session.refresh(proposal)
                raise InvalidState(
                    f"Proposal moved to '{proposal.status}' while being edited.",
                    current_status=proposal.status,
                )
            session.refresh(proposal)

            for milestone_id in set(existing) - incoming_ids:
                proposal.milestones.remove(existing[milestone_id])
            for item in payload.milestones:
                if item.id is None:
                    proposal.milestones.append(self._new_milestone(item))
                else:
                    self._apply_milestone(existing[item.id], item)
            session.flush()
            session.expire(proposal, ["milestones"])

            logger.info(
                f"✏️ Proposal {proposal.id} edited by {actor.id}: "
                f"{len(set(existing) - incoming_ids)} milestones removed, "
                f"{sum(1 for m in payload.milestones if m.id is None)} added, {len(incoming_ids)} updated."
            )
            return proposal.to_dict()

    def submit_proposal(self, actor_id: Any, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            proposal = self._owned_proposal(session, actor_id, proposal_id)
            self._transition(session, proposal, ProposalStatus.DRAFT, ProposalStatus.SUBMITTED, proposal.creator_id)
            return proposal.to_dict()

    def withdraw_proposal(self, actor_id: Any, proposal_id: Any) -> Dict[str, Any]:
        """Deletes a proposal and its milestones while it is still a draft or awaiting review."""
        with get_session_scope() as session:
            proposal = self._owned_proposal(session, actor_id, proposal_id)
            if proposal.status not in ProposalStatus.EDITABLE:
                raise InvalidState(
                    f"Proposal in '{proposal.status}' can no longer be withdrawn.",
                    current_status=proposal.status,
                )
            result = {"id": str(proposal.id), "withdrawn": True}
            session.delete(proposal)
            session.flush()
            logger.info(f"🗑️ Proposal {proposal_id} withdrawn by its creator.")
            return result

    # ------------------------- Review -------------------------
    def start_review(self, actor_id: Any, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            admin = require_role(session, actor_id, Role.ADMIN)
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            self._transition(session, proposal, ProposalStatus.SUBMITTED, ProposalStatus.UNDER_REVIEW, admin.id)
            return proposal.to_dict()

    def review_proposal(self, actor_id: Any, proposal_id: Any, review_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Approves or rejects a proposal under review. Approving a project-type
        proposal materializes its project in the same transaction.
        """
        review = parse_payload(ProposalReviewSchema, review_data)
        target = ProposalStatus.APPROVED if review.decision == ReviewDecision.APPROVE else ProposalStatus.REJECTED

        with get_session_scope() as session:
            admin = require_role(session, actor_id, Role.ADMIN)
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            self._transition(
                session,
                proposal,
                ProposalStatus.UNDER_REVIEW,
                target,
                admin.id,
                feedback=review.feedback or None,
                extra_values={Proposal.review_feedback: review.feedback or None},
            )
            if target == ProposalStatus.APPROVED and proposal.type == ProposalType.PROJECT:
                self._materialize_project(session, proposal)
            return proposal.to_dict()

    def complete_proposal(self, actor_id: Any, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            admin = require_role(session, actor_id, Role.ADMIN)
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            self._transition(session, proposal, ProposalStatus.APPROVED, ProposalStatus.COMPLETED, admin.id)
            return proposal.to_dict()

    # ------------------------- Reads -------------------------
    def get_proposal(self, proposal_id: Any) -> Dict[str, Any]:
        with get_session_scope() as session:
            proposal = get_or_404(session, Proposal, proposal_id, "proposal")
            data = proposal.to_dict()
            data["project_id"] = str(proposal.project.id) if proposal.project else None
            return data

    def list_proposals(self, status: Optional[str] = None, proposal_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if status and status not in ProposalStatus.ALL:
            raise ValidationError(f"Unknown proposal status '{status}'.")
        if proposal_type and proposal_type not in ProposalType.ALL:
            raise ValidationError(f"Unknown proposal type '{proposal_type}'.")
        with get_session_scope() as session:
            query = session.query(Proposal)
            if status:
                query = query.filter(Proposal.status == status)
            if proposal_type:
                query = query.filter(Proposal.type == proposal_type)
            proposals = query.order_by(Proposal.created_at.desc()).all()
            return [p.to_dict(include_milestones=False) for p in proposals]

    # ------------------------- Internals -------------------------
    def _owned_proposal(self, session: Session, actor_id: Any, proposal_id: Any) -> Proposal:
        proposal = get_or_404(session, Proposal, proposal_id, "proposal")
        actor = load_principal(session, actor_id)
        if proposal.creator_id != actor.id:
            raise Forbidden("Only the proposal creator can do that.")
        return proposal

    def _transition(
        self,
        session: Session,
        proposal: Proposal,
        expected: str,
        target: str,
        actor_id: UUID,
        feedback: Optional[str] = None,
        extra_values: Optional[Dict[Any, Any]] = None,
    ) -> None:
        if not can_transition(PROPOSAL_TRANSITIONS, expected, target):
            raise InvalidState(f"No transition from '{expected}' to '{target}'.", current_status=proposal.status)

        if proposal.status != expected:
            raise InvalidState(
                f"Proposal is '{proposal.status}', expected '{expected}'.",
                current_status=proposal.status,
            )

        values = {Proposal.status: target, Proposal.updated_at: utcnow()}
        values.update(extra_values or {})
        changed = conditional_update(
            session, Proposal, [Proposal.id == proposal.id, Proposal.status == expected], values
        )
        session.refresh(proposal)
        if not changed:
            raise InvalidState(
                f"Proposal is '{proposal.status}', expected '{expected}'.",
                current_status=proposal.status,
            )
        record_status_change(session, EntityType.PROPOSAL, proposal.id, actor_id, expected, target, feedback)

    def _materialize_project(self, session: Session, proposal: Proposal) -> Project:
        if proposal.project is not None:
            return proposal.project

        start = utcnow()
        if proposal.deadline:
            end = proposal.deadline
        elif proposal.milestones:
            end = max(m.deadline for m in proposal.milestones)
        else:
            end = start + timedelta(days=current_app.config.get("PROJECT_DEFAULT_DURATION_DAYS", 90))

        project = Project(proposal_id=proposal.id, leader_id=proposal.creator_id, start_date=start, end_date=end)
        project.members.append(ProjectMember(user_id=proposal.creator_id, role=ProjectRole.LEADER))
        session.add(project)
        session.flush()
        session.refresh(proposal)
        logger.info(f"🚀 Project {project.id} materialized for proposal {proposal.id}.")
        return project

    def _check_milestone_points(self, total_points: int, milestones: List[MilestoneInput]) -> None:
        if not current_app.config.get("ENFORCE_MILESTONE_POINTS_CAP", True):
            return
        allocated = sum(m.points_allocated for m in milestones)
        if allocated > total_points:
            raise ValidationError(
                f"Milestones allocate {allocated} points but the proposal only offers {total_points}."
            )

    @staticmethod
    def _new_milestone(item: MilestoneInput) -> Milestone:
        milestone = Milestone(completed=False)
        ProposalService._apply_milestone(milestone, item)
        return milestone

    @staticmethod
    def _apply_milestone(milestone: Milestone, item: MilestoneInput) -> None:
        milestone.title = item.title
        milestone.description = item.description
        milestone.deliverables = list(item.deliverables)
        milestone.points_allocated = item.points_allocated
        milestone.deadline = item.deadline


proposal_service = ProposalService()
