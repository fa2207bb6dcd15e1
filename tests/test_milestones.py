"""
Tests for milestone verification and the derived progress figures.
"""
import pytest

from conftest import milestone_payload, proposal_payload
from okto_portal.exceptions import Forbidden, InvalidState, ValidationError
from okto_portal.services.derivation_service import derivation_service, progress_percent
from okto_portal.services.milestone_service import milestone_service
from okto_portal.services.proposal_service import proposal_service


def complete_milestone(admin_id, actor_id, milestone_id):
    milestone_service.request_verification(actor_id, milestone_id)
    return milestone_service.review_milestone(admin_id, milestone_id, {"decision": "approve"})


@pytest.mark.parametrize("completed,total,expected", [(1, 4, 25), (0, 0, 0), (2, 3, 66), (3, 3, 100)])
def test_progress_percent(completed, total, expected):
    assert progress_percent(completed, total) == expected


def test_progress_one_of_four(admin, member, approved_project):
    complete_milestone(admin["id"], member["id"], approved_project["milestones"][0]["id"])

    assert derivation_service.get_project_progress(approved_project["id"]) == 25
    details = derivation_service.get_progress_details(approved_project["id"])
    assert details["completed_milestones"] == 1
    assert details["total_milestones"] == 4
    assert details["points_distributed"] == 100


def test_progress_without_milestones_is_zero(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload())
    assert derivation_service.get_project_progress(proposal["id"]) == 0


def test_milestone_verification_round_trip(admin, member, approved_project):
    milestone_id = approved_project["milestones"][1]["id"]

    requested = milestone_service.request_verification(member["id"], milestone_id)
    assert requested["status"] == "verification_requested"

    with pytest.raises(InvalidState):
        milestone_service.request_verification(member["id"], milestone_id)

    rejected = milestone_service.review_milestone(
        admin["id"], milestone_id, {"decision": "reject", "feedback": "Missing the demo video"}
    )
    assert rejected["status"] == "pending"
    assert rejected["feedback"] == "Missing the demo video"
    assert derivation_service.get_principal_summary(member["id"])["point_balance"] == 0

    completed = complete_milestone(admin["id"], member["id"], milestone_id)
    assert completed["status"] == "completed"
    assert completed["completed"] is True
    assert completed["completed_at"] is not None


def test_completed_milestone_credits_proposal_creator(admin, member, other_member, approved_project):
    # Anyone may ask for verification; the points go to the proposal creator
    complete_milestone(admin["id"], other_member["id"], approved_project["milestones"][0]["id"])

    assert derivation_service.get_principal_summary(member["id"])["point_balance"] == 100
    assert derivation_service.get_principal_summary(other_member["id"])["point_balance"] == 0


def test_completed_milestone_is_terminal(admin, member, approved_project):
    milestone_id = approved_project["milestones"][0]["id"]
    complete_milestone(admin["id"], member["id"], milestone_id)

    with pytest.raises(InvalidState):
        milestone_service.request_verification(member["id"], milestone_id)
    with pytest.raises(InvalidState):
        milestone_service.review_milestone(admin["id"], milestone_id, {"decision": "approve"})
    assert derivation_service.get_principal_summary(member["id"])["point_balance"] == 100


def test_review_requires_pending_verification(admin, approved_project):
    with pytest.raises(InvalidState) as excinfo:
        milestone_service.review_milestone(admin["id"], approved_project["milestones"][0]["id"], {"decision": "approve"})
    assert excinfo.value.current_status == "pending"


def test_milestone_rejection_needs_feedback(admin, member, approved_project):
    milestone_id = approved_project["milestones"][0]["id"]
    milestone_service.request_verification(member["id"], milestone_id)
    with pytest.raises(ValidationError):
        milestone_service.review_milestone(admin["id"], milestone_id, {"decision": "reject"})


def test_rejection_feedback_cannot_be_the_verification_marker(admin, member, approved_project):
    milestone_id = approved_project["milestones"][0]["id"]
    milestone_service.request_verification(member["id"], milestone_id)

    for decision in ("reject", "approve"):
        with pytest.raises(ValidationError):
            milestone_service.review_milestone(
                admin["id"], milestone_id, {"decision": decision, "feedback": " verification_requested "}
            )

    stored = proposal_service.get_proposal(approved_project["id"])["milestones"][0]
    assert stored["id"] == milestone_id
    assert stored["status"] == "verification_requested"

    rejected = milestone_service.review_milestone(
        admin["id"], milestone_id, {"decision": "reject", "feedback": "Needs a verification video"}
    )
    assert rejected["status"] == "pending"


def test_members_cannot_review_milestones(member, approved_project):
    milestone_id = approved_project["milestones"][0]["id"]
    milestone_service.request_verification(member["id"], milestone_id)
    with pytest.raises(Forbidden):
        milestone_service.review_milestone(member["id"], milestone_id, {"decision": "approve"})


def test_milestones_of_unapproved_proposal_are_frozen(member):
    proposal = proposal_service.create_proposal(
        member["id"], proposal_payload(milestones=[milestone_payload("A")]), submit=True
    )
    with pytest.raises(InvalidState) as excinfo:
        milestone_service.request_verification(member["id"], proposal["milestones"][0]["id"])
    assert excinfo.value.current_status == "submitted"
