# okto_portal/constants.py

from typing import Dict, FrozenSet


class Role:
    MEMBER = "member"
    ADMIN = "admin"
    ALL = (MEMBER, ADMIN)


class ProposalType:
    PROJECT = "project"
    BOUNTY = "bounty"
    ALL = (PROJECT, BOUNTY)


class ProposalStatus:
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    ALL = (DRAFT, SUBMITTED, UNDER_REVIEW, APPROVED, REJECTED, COMPLETED)

    # Statuses in which the creator may still edit or withdraw
    EDITABLE = frozenset({DRAFT, SUBMITTED})
    # A project-type proposal has a materialized project only in these
    PROJECT_BEARING = frozenset({APPROVED, COMPLETED})


class SubmissionStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ALL = (PENDING, APPROVED, REJECTED)


class MilestoneStatus:
    """Derived from the `completed` flag and the feedback sentinel."""
    PENDING = "pending"
    VERIFICATION_REQUESTED = "verification_requested"
    COMPLETED = "completed"


# Sentinel stored in Milestone.feedback while an admin check is outstanding
VERIFICATION_REQUESTED = MilestoneStatus.VERIFICATION_REQUESTED


class ReviewDecision:
    APPROVE = "approve"
    REJECT = "reject"
    ALL = (APPROVE, REJECT)


class CreditStatus:
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    ALL = (PENDING, APPLIED)


class CreditSource:
    BOUNTY_SUBMISSION = "bounty_submission"
    MILESTONE = "milestone"
    ALL = (BOUNTY_SUBMISSION, MILESTONE)


class EntityType:
    PROPOSAL = "proposal"
    BOUNTY_SUBMISSION = "bounty_submission"
    MILESTONE = "milestone"
    ALL = (PROPOSAL, BOUNTY_SUBMISSION, MILESTONE)


class ProjectRole:
    LEADER = "leader"
    CONTRIBUTOR = "contributor"
    ALL = (LEADER, CONTRIBUTOR)


# Legal engine-driven transitions. Anything absent here is terminal.
PROPOSAL_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ProposalStatus.DRAFT: frozenset({ProposalStatus.SUBMITTED}),
    ProposalStatus.SUBMITTED: frozenset({ProposalStatus.UNDER_REVIEW}),
    ProposalStatus.UNDER_REVIEW: frozenset({ProposalStatus.APPROVED, ProposalStatus.REJECTED}),
    ProposalStatus.APPROVED: frozenset({ProposalStatus.COMPLETED}),
}

SUBMISSION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED}),
}

MILESTONE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    MilestoneStatus.PENDING: frozenset({MilestoneStatus.VERIFICATION_REQUESTED}),
    MilestoneStatus.VERIFICATION_REQUESTED: frozenset({MilestoneStatus.COMPLETED, MilestoneStatus.PENDING}),
}


def can_transition(table: Dict[str, FrozenSet[str]], current: str, target: str) -> bool:
    return target in table.get(current, frozenset())
