# okto_portal/utils/validation.py

import logging
from functools import wraps
from typing import Callable, Type

from flask import g, jsonify, request
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


def validate_with(schema: Type[BaseModel]) -> Callable:
    """
    Decorator for Flask routes that validates the JSON body against a Pydantic schema.

    Usage:
        @bp.route('/proposals', methods=['POST'])
        @validate_with(ProposalCreateSchema)
        def create():
            payload = g.validated_data
            ...

    The validated model is stored on `g.validated_data`; failures return 400
    with the pydantic error list.
    """
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            json_data = request.get_json(silent=True)
            if json_data is None:
                logger.warning(f"🚫 Non-JSON body sent to {request.path}")
                return jsonify({"status": "error", "error": "Request body must be JSON"}), 400
            try:
                g.validated_data = schema.model_validate(json_data)
            except ValidationError as e:
                errors = e.errors(include_url=False, include_context=False, include_input=False)
                logger.warning(f"🚫 Request validation error on {request.path}: {errors}")
                return jsonify({"status": "error", "error": "Invalid request data", "errors": errors}), 400

            return f(*args, **kwargs)
        return wrapped
    return decorator
