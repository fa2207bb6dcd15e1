import http
import logging
import uuid
from typing import Tuple

from flask import Blueprint, Response, g, jsonify

from okto_portal.schemas import MilestoneReviewSchema
from okto_portal.services.milestone_service import milestone_service
from okto_portal.utils.auth import require_firebase_token
from okto_portal.utils.validation import validate_with

logger = logging.getLogger(__name__)
milestone_bp = Blueprint('milestones', __name__, url_prefix='/api/v1/milestones')


@milestone_bp.route('/<uuid:milestone_id>/request-verification', methods=['POST'])
@require_firebase_token
def request_verification(milestone_id: uuid.UUID) -> Tuple[Response, int]:
    milestone = milestone_service.request_verification(g.principal_id, milestone_id)
    return jsonify({
        "status": "success",
        "message": "Verification requested.",
        "milestone": milestone,
    }), http.HTTPStatus.OK


@milestone_bp.route('/<uuid:milestone_id>/review', methods=['POST'])
@require_firebase_token
@validate_with(MilestoneReviewSchema)
def review_milestone(milestone_id: uuid.UUID) -> Tuple[Response, int]:
    review: MilestoneReviewSchema = g.validated_data
    logger.info(f"📥 API: Review '{review.decision}' for milestone {milestone_id} from {g.principal_id}.")
    milestone = milestone_service.review_milestone(g.principal_id, milestone_id, review)
    return jsonify({"status": "success", "milestone": milestone}), http.HTTPStatus.OK
