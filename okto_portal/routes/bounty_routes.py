import http
import logging
import uuid
from typing import Tuple

from flask import Blueprint, Response, g, jsonify, request

from okto_portal.extensions import limiter
from okto_portal.schemas import BountyFieldsSchema, BountyReviewSchema, BountySubmissionSchema
from okto_portal.services.bounty_service import bounty_service
from okto_portal.services.derivation_service import derivation_service
from okto_portal.utils.auth import require_firebase_token
from okto_portal.utils.validation import validate_with

logger = logging.getLogger(__name__)
bounty_bp = Blueprint('bounties', __name__, url_prefix='/api/v1')


@bounty_bp.route('/bounties', methods=['POST'])
@require_firebase_token
@validate_with(BountyFieldsSchema)
def create_bounty() -> Tuple[Response, int]:
    """Admin-only. The bounty is published as approved and open for submissions."""
    logger.info(f"📥 API: Bounty publish request from {g.principal_id}.")
    bounty = bounty_service.create_bounty(g.principal_id, g.validated_data)
    return jsonify({"status": "success", "bounty": bounty}), http.HTTPStatus.CREATED


@bounty_bp.route('/bounties/<uuid:bounty_id>', methods=['PUT'])
@require_firebase_token
@validate_with(BountyFieldsSchema)
def edit_bounty(bounty_id: uuid.UUID) -> Tuple[Response, int]:
    bounty = bounty_service.edit_bounty(g.principal_id, bounty_id, g.validated_data)
    return jsonify({"status": "success", "bounty": bounty}), http.HTTPStatus.OK


@bounty_bp.route('/bounties/<uuid:bounty_id>', methods=['DELETE'])
@require_firebase_token
def delete_bounty(bounty_id: uuid.UUID) -> Tuple[Response, int]:
    result = bounty_service.delete_bounty(g.principal_id, bounty_id)
    return jsonify({"status": "success", **result}), http.HTTPStatus.OK


@bounty_bp.route('/bounties/<uuid:bounty_id>/submissions', methods=['POST'])
@require_firebase_token
@limiter.limit("10 per minute")
@validate_with(BountySubmissionSchema)
def create_submission(bounty_id: uuid.UUID) -> Tuple[Response, int]:
    """Records the caller's entry for a bounty. One entry per contributor per bounty."""
    logger.info(f"📥 API: Bounty submission for {bounty_id} from user {g.principal_id}.")
    submission = bounty_service.create_bounty_submission(g.principal_id, bounty_id, g.validated_data)
    return jsonify({
        "status": "success",
        "message": "Submission received.",
        "submission": submission,
    }), http.HTTPStatus.CREATED


@bounty_bp.route('/bounties/<uuid:bounty_id>/submissions', methods=['GET'])
@require_firebase_token
def list_submissions(bounty_id: uuid.UUID) -> Tuple[Response, int]:
    submissions = bounty_service.list_submissions(bounty_id, status=request.args.get('status'))
    return jsonify({"status": "success", "submissions": submissions}), http.HTTPStatus.OK


@bounty_bp.route('/bounties/<uuid:bounty_id>/stats', methods=['GET'])
@require_firebase_token
def get_stats(bounty_id: uuid.UUID) -> Tuple[Response, int]:
    return jsonify({"status": "success", "stats": derivation_service.get_bounty_stats(bounty_id)}), http.HTTPStatus.OK


@bounty_bp.route('/submissions/<uuid:submission_id>', methods=['GET'])
@require_firebase_token
def get_submission(submission_id: uuid.UUID) -> Tuple[Response, int]:
    return jsonify({"status": "success", "submission": bounty_service.get_submission(submission_id)}), http.HTTPStatus.OK


@bounty_bp.route('/submissions/<uuid:submission_id>/review', methods=['POST'])
@require_firebase_token
@validate_with(BountyReviewSchema)
def review_submission(submission_id: uuid.UUID) -> Tuple[Response, int]:
    """
    Admin approval or rejection. When the status change commits but the
    points credit does not, the response is 202 with the pending credit id.
    """
    review: BountyReviewSchema = g.validated_data
    logger.info(f"📥 API: Review '{review.decision}' for submission {submission_id} from {g.principal_id}.")
    submission = bounty_service.review_bounty(g.principal_id, submission_id, review)
    return jsonify({"status": "success", "submission": submission}), http.HTTPStatus.OK


@bounty_bp.route('/submissions/<uuid:submission_id>', methods=['DELETE'])
@require_firebase_token
def delete_submission(submission_id: uuid.UUID) -> Tuple[Response, int]:
    result = bounty_service.delete_bounty_submission(g.principal_id, submission_id)
    return jsonify({"status": "success", **result}), http.HTTPStatus.OK
