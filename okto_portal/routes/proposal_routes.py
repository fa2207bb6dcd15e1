import http
import logging
import uuid
from typing import Tuple

from flask import Blueprint, Response, g, jsonify, request

from okto_portal.extensions import limiter
from okto_portal.schemas import ProposalCreateSchema, ProposalEditSchema, ProposalReviewSchema
from okto_portal.services.derivation_service import derivation_service
from okto_portal.services.proposal_service import proposal_service
from okto_portal.utils.auth import require_firebase_token
from okto_portal.utils.validation import validate_with

logger = logging.getLogger(__name__)
proposal_bp = Blueprint('proposals', __name__, url_prefix='/api/v1')


# --- Intake & edits ---

@proposal_bp.route('/proposals', methods=['POST'])
@require_firebase_token
@limiter.limit("20 per hour")
@validate_with(ProposalCreateSchema)
def create_proposal() -> Tuple[Response, int]:
    """Creates a proposal authored by the authenticated user, as a draft or submitted."""
    proposal_data: ProposalCreateSchema = g.validated_data
    logger.info(f"📥 API: Received {proposal_data.type} proposal from user {g.principal_id}.")
    proposal = proposal_service.create_proposal(g.principal_id, proposal_data)
    return jsonify({
        "status": "success",
        "message": "Proposal created successfully.",
        "proposal": proposal,
    }), http.HTTPStatus.CREATED


@proposal_bp.route('/proposals', methods=['GET'])
@require_firebase_token
def list_proposals() -> Tuple[Response, int]:
    proposals = proposal_service.list_proposals(
        status=request.args.get('status'),
        proposal_type=request.args.get('type'),
    )
    return jsonify({"status": "success", "proposals": proposals}), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>', methods=['GET'])
@require_firebase_token
def get_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    return jsonify({"status": "success", "proposal": proposal_service.get_proposal(proposal_id)}), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>', methods=['PUT'])
@require_firebase_token
@validate_with(ProposalEditSchema)
def edit_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    """Replaces the proposal's fields and milestone list."""
    proposal = proposal_service.edit_proposal(g.principal_id, proposal_id, g.validated_data)
    return jsonify({
        "status": "success",
        "message": "Proposal updated.",
        "proposal": proposal,
    }), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>/submit', methods=['POST'])
@require_firebase_token
def submit_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    proposal = proposal_service.submit_proposal(g.principal_id, proposal_id)
    return jsonify({"status": "success", "proposal": proposal}), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>', methods=['DELETE'])
@require_firebase_token
def withdraw_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    result = proposal_service.withdraw_proposal(g.principal_id, proposal_id)
    return jsonify({"status": "success", **result}), http.HTTPStatus.OK


# --- Admin review ---

@proposal_bp.route('/proposals/<uuid:proposal_id>/start-review', methods=['POST'])
@require_firebase_token
def start_review(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    proposal = proposal_service.start_review(g.principal_id, proposal_id)
    return jsonify({"status": "success", "proposal": proposal}), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>/review', methods=['POST'])
@require_firebase_token
@validate_with(ProposalReviewSchema)
def review_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    review: ProposalReviewSchema = g.validated_data
    logger.info(f"📥 API: Review '{review.decision}' for proposal {proposal_id} from {g.principal_id}.")
    proposal = proposal_service.review_proposal(g.principal_id, proposal_id, review)
    return jsonify({"status": "success", "proposal": proposal}), http.HTTPStatus.OK


@proposal_bp.route('/proposals/<uuid:proposal_id>/complete', methods=['POST'])
@require_firebase_token
def complete_proposal(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    proposal = proposal_service.complete_proposal(g.principal_id, proposal_id)
    return jsonify({"status": "success", "proposal": proposal}), http.HTTPStatus.OK


# --- Derived views ---

@proposal_bp.route('/proposals/<uuid:proposal_id>/progress', methods=['GET'])
@require_firebase_token
def get_progress(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    details = derivation_service.get_progress_details(proposal_id)
    return jsonify({"status": "success", **details}), http.HTTPStatus.OK


@proposal_bp.route('/projects/<uuid:proposal_id>', methods=['GET'])
@require_firebase_token
def get_project(proposal_id: uuid.UUID) -> Tuple[Response, int]:
    return jsonify({"status": "success", "project": derivation_service.get_project(proposal_id)}), http.HTTPStatus.OK
