# okto_portal/utils/auth.py

import http
import logging
from functools import wraps

from firebase_admin import auth as firebase_auth
from flask import g, jsonify, request

from okto_portal.services.profile_service import profile_service

logger = logging.getLogger(__name__)
KEY_ERROR = "error"


class FirebaseUser:
    """Lightweight object to hold Firebase-authenticated user info."""
    def __init__(self, uid, email=None, username=None, profile_id=None, role=None):
        self.firebase_uid = uid
        self.email = email
        self.username = username
        self.profile_id = profile_id
        self.role = role


def require_firebase_token(f):
    """
    Decorator to protect routes with a Firebase ID token.

    The verified uid is resolved to a profile (created as a member on first
    sight) and exposed as `g.user` and `g.principal_id`. Roles are read from
    the database again by each service call, never trusted from the token.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({KEY_ERROR: "Missing or invalid Authorization header"}), http.HTTPStatus.UNAUTHORIZED

        id_token = auth_header.split("Bearer ", 1)[1].strip()

        try:
            decoded_token = firebase_auth.verify_id_token(id_token)
        except Exception as e:
            logger.error(f"Firebase token verification failed: {e}")
            return jsonify({KEY_ERROR: "Invalid, expired, or revoked token"}), http.HTTPStatus.UNAUTHORIZED

        uid = decoded_token.get("uid")
        if not uid:
            return jsonify({KEY_ERROR: "Invalid token: no UID"}), http.HTTPStatus.UNAUTHORIZED

        email = decoded_token.get("email")
        username = decoded_token.get("name") or (email.split("@")[0] if email else None)
        profile = profile_service.get_or_create_profile(uid, email=email, username=username)

        g.user = FirebaseUser(
            uid=uid,
            email=email,
            username=username,
            profile_id=profile["id"],
            role=profile["role"],
        )
        g.principal_id = profile["id"]

        return f(*args, **kwargs)
    return decorated
