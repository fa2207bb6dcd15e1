# okto_portal/services/lifecycle.py
"""Helpers shared by the proposal, bounty and milestone lifecycle services."""

import logging
import uuid
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from okto_portal.exceptions import NotFound, ValidationError
from okto_portal.models import StatusChange

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_payload(schema: Type[SchemaT], data: Union[SchemaT, Dict[str, Any]]) -> SchemaT:
    """Validates raw input against a pydantic schema, raising the engine's ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid payload: {details}") from e


def as_uuid(value: Any, label: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(f"Invalid {label}: must be a UUID.")


def get_or_404(session: Session, model, entity_id: Any, label: str):
    entity = session.get(model, as_uuid(entity_id, f"{label} id"))
    if entity is None:
        raise NotFound(f"{label.capitalize()} not found.")
    return entity


def record_status_change(
    session: Session,
    entity_type: str,
    entity_id: uuid.UUID,
    changed_by: Optional[uuid.UUID],
    old_status: str,
    new_status: str,
    feedback: Optional[str] = None,
) -> StatusChange:
    change = StatusChange(
        entity_type=entity_type,
        entity_id=entity_id,
        changed_by=changed_by,
        old_status=old_status,
        new_status=new_status,
        feedback=feedback,
    )
    session.add(change)
    logger.info(f"🔁 {entity_type} {entity_id}: {old_status} -> {new_status} (by {changed_by})")
    return change
