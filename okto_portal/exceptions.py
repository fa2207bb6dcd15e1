# okto_portal/exceptions.py

from typing import Any, Dict, Optional


class LifecycleError(Exception):
    """Base class for errors raised by the contribution lifecycle services."""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "error", "error": self.message}


class ValidationError(LifecycleError):
    """Malformed or missing input. The caller can correct it and retry."""

    http_status = 400


class Forbidden(LifecycleError):
    """The actor lacks the role or ownership the operation requires."""

    http_status = 403


class NotFound(LifecycleError):
    http_status = 404


class InvalidState(LifecycleError):
    """The requested transition does not apply to the entity's current status."""

    http_status = 409

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class Duplicate(LifecycleError):
    """A conflicting entity already exists."""

    http_status = 409

    def __init__(self, message: str, existing_id: Any):
        super().__init__(message)
        self.existing_id = existing_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["existing_submission_id"] = str(self.existing_id)
        return data


class PayoutCreditFailure(LifecycleError):
    """
    The status transition was committed but crediting the balance failed.

    The transition is not rolled back. The pending credit stays in the ledger
    and is applied by reconciliation.
    """

    http_status = 202

    def __init__(self, message: str, credit_id: Any, entity: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.credit_id = credit_id
        self.entity = entity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "pending_credit",
            "message": self.message,
            "credit_id": str(self.credit_id),
            "entity": self.entity,
        }
