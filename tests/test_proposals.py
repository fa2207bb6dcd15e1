"""
Tests for proposal intake, editing, withdrawal and review.
"""
import pytest

from conftest import approve_proposal, milestone_payload, proposal_payload
from okto_portal.exceptions import Forbidden, InvalidState, NotFound, ValidationError
from okto_portal.services.derivation_service import derivation_service
from okto_portal.services.proposal_service import proposal_service


def test_create_proposal_as_draft(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(milestones=[milestone_payload("Alpha")]))

    assert proposal["status"] == "draft"
    assert proposal["creator_id"] == member["id"]
    assert [m["title"] for m in proposal["milestones"]] == ["Alpha"]
    assert proposal["milestones"][0]["status"] == "pending"


def test_create_and_submit(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    assert proposal["status"] == "submitted"


def test_bounty_cannot_carry_milestones(member):
    with pytest.raises(ValidationError):
        proposal_service.create_proposal(
            member["id"], proposal_payload(type="bounty", milestones=[milestone_payload("Alpha")])
        )


def test_milestone_points_cannot_exceed_total(member):
    with pytest.raises(ValidationError):
        proposal_service.create_proposal(
            member["id"],
            proposal_payload(total_points=150, milestones=[milestone_payload("A", 100), milestone_payload("B", 100)]),
        )


def test_milestone_points_cap_can_be_disabled(app, member):
    app.config["ENFORCE_MILESTONE_POINTS_CAP"] = False
    proposal = proposal_service.create_proposal(
        member["id"],
        proposal_payload(total_points=150, milestones=[milestone_payload("A", 100), milestone_payload("B", 100)]),
    )
    assert len(proposal["milestones"]) == 2


@pytest.mark.parametrize("sent,stored", [
    ("2030-01-01T10:00:00+05:00", "2030-01-01T05:00:00+00:00"),
    ("2030-01-01T10:00:00-03:30", "2030-01-01T13:30:00+00:00"),
    ("2030-01-01T10:00:00", "2030-01-01T10:00:00+00:00"),
])
def test_deadlines_are_normalized_to_utc(member, sent, stored):
    proposal = proposal_service.create_proposal(
        member["id"], proposal_payload(deadline=sent, milestones=[milestone_payload("A", deadline=sent)])
    )
    assert proposal["deadline"] == stored
    assert proposal["milestones"][0]["deadline"] == stored

    reloaded = proposal_service.get_proposal(proposal["id"])
    assert reloaded["deadline"] == stored
    assert reloaded["milestones"][0]["deadline"] == stored


def test_edited_deadlines_are_normalized_to_utc(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(milestones=[milestone_payload("A")]))
    milestone_id = proposal["milestones"][0]["id"]

    edited = proposal_service.edit_proposal(
        member["id"],
        proposal["id"],
        proposal_payload(
            deadline="2031-06-30T23:30:00-02:00",
            milestones=[milestone_payload("A", id=milestone_id, deadline="2031-03-01T08:15:00")],
        ),
    )
    assert edited["deadline"] == "2031-07-01T01:30:00+00:00"
    assert edited["milestones"][0]["deadline"] == "2031-03-01T08:15:00+00:00"


# --- Editing ---

def test_edit_reconciles_milestones(member):
    proposal = proposal_service.create_proposal(
        member["id"],
        proposal_payload(milestones=[milestone_payload("A"), milestone_payload("B"), milestone_payload("C")]),
    )
    ids = {m["title"]: m["id"] for m in proposal["milestones"]}

    edited = proposal_service.edit_proposal(
        member["id"],
        proposal["id"],
        proposal_payload(
            title="Okto SDK examples v2",
            milestones=[
                milestone_payload("A prime", points=250, id=ids["A"]),
                milestone_payload("D", points=50),
            ],
        ),
    )

    assert edited["title"] == "Okto SDK examples v2"
    by_title = {m["title"]: m for m in edited["milestones"]}
    assert set(by_title) == {"A prime", "D"}
    assert by_title["A prime"]["id"] == ids["A"]
    assert by_title["A prime"]["points_allocated"] == 250
    assert by_title["D"]["id"] not in ids.values()

    stored = proposal_service.get_proposal(proposal["id"])
    assert {m["id"] for m in stored["milestones"]} == {ids["A"], by_title["D"]["id"]}


def test_edit_rejects_unknown_milestone_id(member, approved_project):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(milestones=[milestone_payload("A")]))
    foreign_id = approved_project["milestones"][0]["id"]

    with pytest.raises(ValidationError):
        proposal_service.edit_proposal(
            member["id"], proposal["id"], proposal_payload(milestones=[milestone_payload("X", id=foreign_id)])
        )
    assert [m["title"] for m in proposal_service.get_proposal(proposal["id"])["milestones"]] == ["A"]


def test_edit_allowed_while_submitted(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    edited = proposal_service.edit_proposal(member["id"], proposal["id"], proposal_payload(total_points=500))
    assert edited["total_points"] == 500
    assert edited["status"] == "submitted"


def test_edit_under_review_is_invalid_for_any_caller(admin, member, other_member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    proposal_service.start_review(admin["id"], proposal["id"])

    for actor in (member, other_member, admin):
        with pytest.raises(InvalidState) as excinfo:
            proposal_service.edit_proposal(actor["id"], proposal["id"], proposal_payload(title="Too late"))
        assert excinfo.value.current_status == "under_review"

    assert proposal_service.get_proposal(proposal["id"])["title"] == "Okto SDK examples"


def test_only_creator_can_edit(member, other_member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload())
    with pytest.raises(Forbidden):
        proposal_service.edit_proposal(other_member["id"], proposal["id"], proposal_payload(title="Hijacked"))


# --- Withdraw ---

def test_withdraw_draft(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(milestones=[milestone_payload("A")]))
    assert proposal_service.withdraw_proposal(member["id"], proposal["id"])["withdrawn"] is True
    with pytest.raises(NotFound):
        proposal_service.get_proposal(proposal["id"])


def test_withdraw_after_approval_is_invalid(member, approved_project):
    with pytest.raises(InvalidState):
        proposal_service.withdraw_proposal(member["id"], approved_project["id"])


# --- Review ---

def test_review_flow_materializes_project(admin, member, approved_project):
    assert approved_project["status"] == "approved"
    assert approved_project["review_feedback"] == "Looks good"

    project = derivation_service.get_project(approved_project["id"])
    assert project["leader_id"] == member["id"]
    assert project["progress"] == 0
    assert len(project["milestones"]) == 4
    assert proposal_service.get_proposal(approved_project["id"])["project_id"] == project["id"]


def test_approved_bounty_has_no_project(approved_bounty):
    with pytest.raises(NotFound):
        derivation_service.get_project(approved_bounty["id"])


def test_review_requires_under_review(admin, member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    with pytest.raises(InvalidState) as excinfo:
        proposal_service.review_proposal(admin["id"], proposal["id"], {"decision": "approve"})
    assert excinfo.value.current_status == "submitted"


def test_rejection_requires_feedback_and_is_final(admin, member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    proposal_service.start_review(admin["id"], proposal["id"])

    with pytest.raises(ValidationError):
        proposal_service.review_proposal(admin["id"], proposal["id"], {"decision": "reject"})

    rejected = proposal_service.review_proposal(
        admin["id"], proposal["id"], {"decision": "reject", "feedback": "Out of scope"}
    )
    assert rejected["status"] == "rejected"

    for attempt in (
        lambda: proposal_service.submit_proposal(member["id"], proposal["id"]),
        lambda: proposal_service.start_review(admin["id"], proposal["id"]),
        lambda: proposal_service.edit_proposal(member["id"], proposal["id"], proposal_payload()),
    ):
        with pytest.raises(InvalidState):
            attempt()


def test_members_cannot_review(member):
    proposal = proposal_service.create_proposal(member["id"], proposal_payload(submit=True))
    with pytest.raises(Forbidden):
        proposal_service.start_review(member["id"], proposal["id"])


def test_complete_approved_proposal(admin, approved_project):
    completed = proposal_service.complete_proposal(admin["id"], approved_project["id"])
    assert completed["status"] == "completed"
    with pytest.raises(InvalidState):
        proposal_service.complete_proposal(admin["id"], approved_project["id"])


def test_list_proposals_filters(member, approved_bounty):
    proposal_service.create_proposal(member["id"], proposal_payload())

    assert [p["id"] for p in proposal_service.list_proposals(proposal_type="bounty")] == [approved_bounty["id"]]
    assert len(proposal_service.list_proposals(status="draft")) == 1
    with pytest.raises(ValidationError):
        proposal_service.list_proposals(status="archived")
