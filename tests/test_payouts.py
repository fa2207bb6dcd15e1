"""
Tests for the points ledger: failed credit steps, reconciliation and
exactly-once application.
"""
import pytest

from conftest import submission_payload
from okto_portal.exceptions import PayoutCreditFailure
from okto_portal.extensions import db
from okto_portal.models import PointCredit
from okto_portal.services.bounty_service import bounty_service
from okto_portal.services.derivation_service import derivation_service
from okto_portal.services.payout_service import PayoutService, payout_service


@pytest.fixture
def submission(approved_bounty, other_member):
    return bounty_service.create_bounty_submission(other_member["id"], approved_bounty["id"], submission_payload())


@pytest.fixture
def broken_balance(monkeypatch):
    """Makes the balance increment fail until `state['broken']` is cleared."""
    state = {"broken": True}
    original = PayoutService._increment_balance

    def flaky_increment(self, session, user_id, amount):
        if state["broken"]:
            raise RuntimeError("profile store unavailable")
        return original(self, session, user_id, amount)

    monkeypatch.setattr(PayoutService, "_increment_balance", flaky_increment)
    return state


def test_failed_credit_keeps_the_transition(submission, admin, other_member, broken_balance):
    with pytest.raises(PayoutCreditFailure) as excinfo:
        bounty_service.review_bounty(admin["id"], submission["id"], {"decision": "approve", "feedback": "ok", "points": 70})

    failure = excinfo.value
    assert failure.entity["status"] == "approved"
    assert bounty_service.get_submission(submission["id"])["status"] == "approved"

    summary = derivation_service.get_principal_summary(other_member["id"])
    assert summary["point_balance"] == 0
    assert summary["ledger"]["pending_points"] == 70

    credit = db.session.get(PointCredit, failure.credit_id)
    assert credit.status == "PENDING"
    assert "profile store unavailable" in credit.last_error


def test_reconciliation_applies_pending_credit_once(submission, admin, other_member, broken_balance):
    with pytest.raises(PayoutCreditFailure):
        bounty_service.review_bounty(admin["id"], submission["id"], {"decision": "approve", "feedback": "ok", "points": 70})

    assert payout_service.reconcile_pending_credits() == {"pending": 1, "applied": 0, "skipped": 0, "failed": 1}

    broken_balance["broken"] = False
    assert payout_service.reconcile_pending_credits() == {"pending": 1, "applied": 1, "skipped": 0, "failed": 0}
    assert payout_service.reconcile_pending_credits() == {"pending": 0, "applied": 0, "skipped": 0, "failed": 0}

    summary = derivation_service.get_principal_summary(other_member["id"])
    assert summary["point_balance"] == 70
    assert summary["ledger"] == {"applied_points": 70, "applied_count": 1, "pending_points": 0, "pending_count": 0}


def test_apply_credit_is_idempotent(submission, admin, other_member):
    bounty_service.review_bounty(admin["id"], submission["id"], {"decision": "approve", "feedback": "ok", "points": 15})
    credit_id = db.session.query(PointCredit.id).scalar()

    assert payout_service.apply_credit(credit_id) is None
    assert derivation_service.get_principal_summary(other_member["id"])["point_balance"] == 15


def test_user_credits_are_listed_newest_first(approved_bounty, admin, other_member):
    submission = bounty_service.create_bounty_submission(other_member["id"], approved_bounty["id"], submission_payload())
    bounty_service.review_bounty(admin["id"], submission["id"], {"decision": "approve", "feedback": "ok", "points": 5})

    credits = payout_service.get_user_credits(other_member["id"])
    assert [c["amount"] for c in credits] == [5]
    assert credits[0]["source_id"] == submission["id"]
    assert credits[0]["status"] == "APPLIED"


def test_reconcile_task_and_cli(app, submission, admin, other_member, broken_balance):
    from okto_portal.tasks import reconcile_pending_credits

    with pytest.raises(PayoutCreditFailure):
        bounty_service.review_bounty(admin["id"], submission["id"], {"decision": "approve", "feedback": "ok", "points": 20})

    runner = app.test_cli_runner()
    result = runner.invoke(args=["reconcile-credits"])
    assert result.exit_code == 1
    assert "failed: 1" in result.output

    broken_balance["broken"] = False
    assert reconcile_pending_credits() == {"pending": 1, "applied": 1, "skipped": 0, "failed": 0}
    assert runner.invoke(args=["reconcile-credits"]).exit_code == 0
    assert derivation_service.get_principal_summary(other_member["id"])["point_balance"] == 20


def test_grant_role_cli(app):
    result = app.test_cli_runner().invoke(args=["grant-role", "ops-uid", "admin"])
    assert result.exit_code == 0
    assert "is now 'admin'" in result.output
