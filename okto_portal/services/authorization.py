# okto_portal/services/authorization.py
"""
Single authorization guard for every mutating lifecycle operation.

Roles are always re-read from the profiles table inside the caller's
transaction, never taken from a client-side flag or a cached session object.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from okto_portal.constants import Role
from okto_portal.exceptions import Forbidden
from okto_portal.models import Profile
from okto_portal.services.lifecycle import as_uuid

logger = logging.getLogger(__name__)

# Higher rank satisfies any lower requirement
ROLE_RANK = {Role.MEMBER: 0, Role.ADMIN: 1}


class AuthorizationResult(BaseModel):
    allowed: bool
    principal_id: Optional[str] = None
    role: Optional[str] = None
    required_role: str
    reason: Optional[str] = None


def authorize(principal: Optional[Profile], required_role: str) -> AuthorizationResult:
    if principal is None:
        return AuthorizationResult(allowed=False, required_role=required_role, reason="Unknown principal.")

    allowed = ROLE_RANK.get(principal.role, -1) >= ROLE_RANK[required_role]
    return AuthorizationResult(
        allowed=allowed,
        principal_id=str(principal.id),
        role=principal.role,
        required_role=required_role,
        reason=None if allowed else f"Role '{required_role}' required.",
    )


def load_principal(session: Session, principal_id: Any) -> Profile:
    principal = session.get(Profile, as_uuid(principal_id, "principal id"))
    if principal is None:
        raise Forbidden("Unknown principal.")
    # The identity map may hold a profile loaded earlier in the request
    session.refresh(principal)
    return principal


def require_role(session: Session, principal_id: Any, required_role: str) -> Profile:
    """Loads the principal fresh from the store and raises Forbidden unless it holds `required_role`."""
    principal = load_principal(session, principal_id)
    result = authorize(principal, required_role)
    if not result.allowed:
        logger.warning(f"🚫 Principal {principal_id} denied: {result.reason}")
        raise Forbidden(result.reason)
    return principal


def is_owner_or_admin(principal: Profile, owner_id: Any) -> bool:
    return principal.id == owner_id or authorize(principal, Role.ADMIN).allowed
