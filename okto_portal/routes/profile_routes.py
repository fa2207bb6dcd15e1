import http
import logging
import uuid
from typing import Tuple

from flask import Blueprint, Response, g, jsonify, request

from okto_portal.schemas import ProfileUpdateSchema, RoleChangeSchema
from okto_portal.services.derivation_service import derivation_service
from okto_portal.services.payout_service import payout_service
from okto_portal.services.profile_service import profile_service
from okto_portal.utils.auth import require_firebase_token
from okto_portal.utils.validation import validate_with

logger = logging.getLogger(__name__)
profile_bp = Blueprint('profiles', __name__, url_prefix='/api/v1')


@profile_bp.route('/me', methods=['GET'])
@require_firebase_token
def get_me() -> Tuple[Response, int]:
    """Returns the caller's profile, balance and ledger summary."""
    summary = derivation_service.get_principal_summary(g.principal_id)
    return jsonify({"status": "success", "profile": summary}), http.HTTPStatus.OK


@profile_bp.route('/me', methods=['PUT'])
@require_firebase_token
@validate_with(ProfileUpdateSchema)
def update_me() -> Tuple[Response, int]:
    """Updates the caller's username or full name. The balance is ledger-owned and cannot be set here."""
    profile = profile_service.update_profile(g.principal_id, g.validated_data)
    return jsonify({"status": "success", "profile": profile}), http.HTTPStatus.OK


@profile_bp.route('/me/credits', methods=['GET'])
@require_firebase_token
def get_my_credits() -> Tuple[Response, int]:
    limit = request.args.get('limit', 20, type=int)
    credits = payout_service.get_user_credits(g.principal_id, limit=max(1, min(limit, 100)))
    return jsonify({"status": "success", "credits": credits}), http.HTTPStatus.OK


@profile_bp.route('/leaderboard', methods=['GET'])
@require_firebase_token
def get_leaderboard() -> Tuple[Response, int]:
    limit = request.args.get('limit', 10, type=int)
    return jsonify({"status": "success", "leaderboard": derivation_service.get_leaderboard(limit)}), http.HTTPStatus.OK


@profile_bp.route('/profiles/<uuid:profile_id>/role', methods=['PUT'])
@require_firebase_token
@validate_with(RoleChangeSchema)
def set_role(profile_id: uuid.UUID) -> Tuple[Response, int]:
    """Admin-only role change."""
    role_data: RoleChangeSchema = g.validated_data
    logger.info(f"📥 API: Role change for {profile_id} to '{role_data.role}' requested by {g.principal_id}.")
    profile = profile_service.set_role(g.principal_id, profile_id, role_data)
    return jsonify({"status": "success", "profile": profile}), http.HTTPStatus.OK
