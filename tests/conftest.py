"""
Shared fixtures: an app bound to a throwaway SQLite file, Firebase token
verification replaced by a `token-<uid>` lookup, and helpers that walk
proposals through their lifecycle.
"""
from datetime import datetime, timedelta, timezone

import pytest
from firebase_admin import auth as firebase_auth

from okto_portal import create_app
from okto_portal.extensions import db
from okto_portal.services.profile_service import profile_service
from okto_portal.services.proposal_service import proposal_service


def fake_verify_id_token(id_token, *args, **kwargs):
    if not id_token.startswith("token-"):
        raise ValueError("Token signature could not be verified")
    uid = id_token[len("token-"):]
    return {"uid": uid, "email": f"{uid}@okto.test", "name": uid}


def auth_header(uid):
    return {"Authorization": f"Bearer token-{uid}"}


def in_days(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def proposal_payload(**overrides):
    payload = {
        "type": "project",
        "title": "Okto SDK examples",
        "short_description": "Sample apps for the SDK",
        "description": "A set of runnable sample applications covering the public SDK.",
        "total_points": 1000,
        "fields": ["developer-tools"],
        "skills_required": ["python"],
        "milestones": [],
    }
    payload.update(overrides)
    return payload


def milestone_payload(title, points=100, days=30, **overrides):
    payload = {
        "title": title,
        "description": f"{title} deliverable",
        "deliverables": [f"{title}.md"],
        "points_allocated": points,
        "deadline": in_days(days),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Create a test Flask application backed by a per-test SQLite file."""
    monkeypatch.setattr(firebase_auth, "verify_id_token", fake_verify_id_token)
    test_app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'okto_portal.db'}",
        # Shared across the threads of the concurrency tests
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
        "RATELIMIT_ENABLED": False,
        "LOG_FILE_PATH": None,
        "CELERY_BROKER_URL": None,
    })

    with test_app.app_context():
        db.create_all()
        yield test_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()


@pytest.fixture
def admin(app):
    return profile_service.grant_role_by_uid("admin-uid", "admin")


@pytest.fixture
def member(app):
    return profile_service.grant_role_by_uid("member-uid", "member")


@pytest.fixture
def other_member(app):
    return profile_service.grant_role_by_uid("other-uid", "member")


def approve_proposal(admin_id, proposal_id):
    proposal_service.start_review(admin_id, proposal_id)
    return proposal_service.review_proposal(admin_id, proposal_id, {"decision": "approve", "feedback": "Looks good"})


@pytest.fixture
def approved_bounty(admin, member):
    bounty = proposal_service.create_proposal(
        member["id"],
        proposal_payload(type="bounty", title="Fix the docs", total_points=100, deadline=in_days(14)),
        submit=True,
    )
    return approve_proposal(admin["id"], bounty["id"])


@pytest.fixture
def approved_project(admin, member):
    project = proposal_service.create_proposal(
        member["id"],
        proposal_payload(milestones=[milestone_payload(f"M{i}", days=10 * i) for i in range(1, 5)]),
        submit=True,
    )
    return approve_proposal(admin["id"], project["id"])


def bounty_payload(**overrides):
    payload = {
        "title": "Translate the wallet guide",
        "short_description": "Spanish translation",
        "description": "Translate the embedded wallet guide into Spanish.",
        "total_points": 200,
        "deadline": in_days(21),
        "fields": ["docs"],
        "skills_required": ["spanish"],
    }
    payload.update(overrides)
    return payload


def submission_payload(**overrides):
    payload = {
        "title": "Docs fix",
        "description": "Rewrote the quick-start guide.",
        "submission_url": "https://github.com/okto/docs/pull/12",
    }
    payload.update(overrides)
    return payload
