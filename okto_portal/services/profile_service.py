import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from okto_portal.constants import Role
from okto_portal.exceptions import ValidationError
from okto_portal.models import Profile
from okto_portal.models.db_utils import get_session_scope
from okto_portal.schemas import ProfileUpdateSchema, RoleChangeSchema
from okto_portal.services.authorization import load_principal, require_role
from okto_portal.services.lifecycle import get_or_404, parse_payload

logger = logging.getLogger(__name__)


class ProfileService:

    def get_or_create_profile(self, firebase_uid: str, email: Optional[str] = None, username: Optional[str] = None) -> Dict[str, Any]:
        """Resolves the identity provider's stable uid to a profile, creating a member profile on first sight."""
        with get_session_scope() as session:
            profile = session.query(Profile).filter_by(firebase_uid=firebase_uid).first()
            if profile:
                return profile.to_dict()

            profile = Profile(firebase_uid=firebase_uid, email=email, username=username, role=Role.MEMBER, point_balance=0)
            session.add(profile)
            try:
                session.flush()
            except IntegrityError:
                # Another request created it first
                session.rollback()
                profile = session.query(Profile).filter_by(firebase_uid=firebase_uid).one()
                return profile.to_dict()

            logger.info(f"👤 Created profile {profile.id} for uid {firebase_uid}.")
            return profile.to_dict()

    def update_profile(self, actor_id: Any, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Updates the caller's own display fields. Fields left out of the payload
        keep their value; role and point_balance are ignored if sent.
        """
        payload = parse_payload(ProfileUpdateSchema, profile_data)
        changes = payload.model_dump(include={"username", "full_name"}, exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("Nothing to update: send a username or full_name.")

        with get_session_scope() as session:
            profile = load_principal(session, actor_id)
            for name, value in changes.items():
                setattr(profile, name, value)
            session.flush()
            logger.info(f"👤 Profile {profile.id} updated fields {sorted(changes)}.")
            return profile.to_dict()

    def set_role(self, actor_id: Any, profile_id: Any, role_data: Dict[str, Any]) -> Dict[str, Any]:
        """Grants or revokes admin. Balances are never touched here."""
        payload = parse_payload(RoleChangeSchema, role_data)
        with get_session_scope() as session:
            admin = require_role(session, actor_id, Role.ADMIN)
            profile = get_or_404(session, Profile, profile_id, "profile")
            if profile.id == admin.id and payload.role != Role.ADMIN:
                raise ValidationError("Admins cannot revoke their own admin role.")
            profile.role = payload.role
            session.flush()
            logger.info(f"🛡️ Profile {profile.id} role set to '{payload.role}' by {admin.id}.")
            return profile.to_dict()

    def grant_role_by_uid(self, firebase_uid: str, role: str) -> Dict[str, Any]:
        """Operator path used by the CLI to bootstrap the first admin."""
        if role not in Role.ALL:
            raise ValidationError(f"Unknown role '{role}'.")
        with get_session_scope() as session:
            profile = session.query(Profile).filter_by(firebase_uid=firebase_uid).first()
            if profile is None:
                profile = Profile(firebase_uid=firebase_uid, role=role, point_balance=0)
                session.add(profile)
            else:
                profile.role = role
            session.flush()
            return profile.to_dict()


profile_service = ProfileService()
