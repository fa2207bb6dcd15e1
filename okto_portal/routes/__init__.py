# okto_portal/routes/__init__.py
"""
Imports all blueprint instances from the route modules and registers them,
together with the JSON error handlers, on the Flask app.
"""
import http
import logging

from flask import Flask, jsonify, request

from okto_portal.exceptions import LifecycleError, PayoutCreditFailure

from .bounty_routes import bounty_bp
from .milestone_routes import milestone_bp
from .profile_routes import profile_bp
from .proposal_routes import proposal_bp

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask):

    @app.errorhandler(LifecycleError)
    def handle_lifecycle_error(e: LifecycleError):
        if isinstance(e, PayoutCreditFailure):
            logger.error(f"💥 API: {request.method} {request.path} committed with a pending credit {e.credit_id}.")
        else:
            logger.warning(f"🚫 API: {request.method} {request.path} refused ({type(e).__name__}): {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"status": "error", "error": "Endpoint not found"}), http.HTTPStatus.NOT_FOUND

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"status": "error", "error": "Method not allowed"}), http.HTTPStatus.METHOD_NOT_ALLOWED

    @app.errorhandler(429)
    def handle_rate_limit(e):
        logger.warning(f"🚫 Rate limit exceeded from {request.remote_addr} to {request.path}")
        return jsonify({"status": "error", "error": "Rate limit exceeded. Please try again later."}), http.HTTPStatus.TOO_MANY_REQUESTS

    @app.errorhandler(500)
    def handle_internal_error(e):
        logger.error(f"💥 500 Internal Server Error on {request.path}: {e}", exc_info=True)
        return jsonify({"status": "error", "error": "An internal server error occurred."}), http.HTTPStatus.INTERNAL_SERVER_ERROR


def register_routes(app: Flask):
    """Register all blueprints with the Flask app."""

    # The url_prefix is already defined in each blueprint
    app.register_blueprint(profile_bp)
    app.register_blueprint(proposal_bp)
    app.register_blueprint(bounty_bp)
    app.register_blueprint(milestone_bp)
    register_error_handlers(app)

    logger.info("✅ All application blueprints registered.")
