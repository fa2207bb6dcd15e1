"""
Tests for bounties published, edited and removed directly by admins.
"""
import pytest

from conftest import bounty_payload, submission_payload
from okto_portal.exceptions import Forbidden, InvalidState, NotFound, ValidationError
from okto_portal.extensions import db
from okto_portal.models import BountySubmission, PointCredit, Proposal
from okto_portal.services.bounty_service import bounty_service
from okto_portal.services.proposal_service import proposal_service


@pytest.fixture
def published_bounty(admin):
    return bounty_service.create_bounty(admin["id"], bounty_payload())


def test_admin_bounty_is_open_immediately(published_bounty, admin, other_member):
    assert published_bounty["type"] == "bounty"
    assert published_bounty["status"] == "approved"
    assert published_bounty["creator_id"] == admin["id"]
    assert "milestones" not in published_bounty

    submission = bounty_service.create_bounty_submission(
        other_member["id"], published_bounty["id"], submission_payload()
    )
    assert submission["status"] == "pending"


def test_member_cannot_publish_bounty(member):
    with pytest.raises(Forbidden):
        bounty_service.create_bounty(member["id"], bounty_payload())
    assert db.session.query(Proposal).count() == 0


@pytest.mark.parametrize("missing", ["title", "short_description", "description", "total_points", "deadline"])
def test_publish_requires_core_fields(admin, missing):
    payload = bounty_payload()
    del payload[missing]
    with pytest.raises(ValidationError):
        bounty_service.create_bounty(admin["id"], payload)


def test_admin_edits_bounty(published_bounty, admin):
    edited = bounty_service.edit_bounty(
        admin["id"], published_bounty["id"], bounty_payload(title="Translate the wallet guide (ES)", total_points=300)
    )
    assert edited["title"] == "Translate the wallet guide (ES)"
    assert edited["total_points"] == 300
    assert edited["status"] == "approved"


def test_edit_cannot_drop_below_awarded_points(published_bounty, admin, other_member):
    submission = bounty_service.create_bounty_submission(
        other_member["id"], published_bounty["id"], submission_payload()
    )
    bounty_service.review_bounty(
        admin["id"], submission["id"], {"decision": "approve", "feedback": "Accurate", "points": 150}
    )

    with pytest.raises(ValidationError):
        bounty_service.edit_bounty(admin["id"], published_bounty["id"], bounty_payload(total_points=100))
    assert proposal_service.get_proposal(published_bounty["id"])["total_points"] == 200


def test_member_cannot_edit_bounty(published_bounty, member):
    with pytest.raises(Forbidden):
        bounty_service.edit_bounty(member["id"], published_bounty["id"], bounty_payload(title="Hijacked"))


def test_project_is_not_a_bounty(approved_project, admin):
    with pytest.raises(NotFound):
        bounty_service.edit_bounty(admin["id"], approved_project["id"], bounty_payload())
    with pytest.raises(NotFound):
        bounty_service.delete_bounty(admin["id"], approved_project["id"])


def test_delete_removes_unreviewed_submissions(published_bounty, admin, other_member):
    bounty_service.create_bounty_submission(other_member["id"], published_bounty["id"], submission_payload())

    assert bounty_service.delete_bounty(admin["id"], published_bounty["id"])["deleted"] is True
    with pytest.raises(NotFound):
        proposal_service.get_proposal(published_bounty["id"])
    assert db.session.query(BountySubmission).count() == 0


def test_delete_refused_once_points_were_awarded(published_bounty, admin, other_member):
    submission = bounty_service.create_bounty_submission(
        other_member["id"], published_bounty["id"], submission_payload()
    )
    bounty_service.review_bounty(
        admin["id"], submission["id"], {"decision": "approve", "feedback": "Accurate", "points": 50}
    )

    with pytest.raises(InvalidState) as excinfo:
        bounty_service.delete_bounty(admin["id"], published_bounty["id"])
    assert excinfo.value.current_status == "approved"
    assert proposal_service.get_proposal(published_bounty["id"])["id"] == published_bounty["id"]
    assert db.session.query(PointCredit).count() == 1


def test_member_cannot_delete_bounty(published_bounty, member):
    with pytest.raises(Forbidden):
        bounty_service.delete_bounty(member["id"], published_bounty["id"])
