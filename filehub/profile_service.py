"""
Profile service.

Accounts (registration, login, password changes), own-profile edits,
dashboard preferences and admin role management.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .auth import create_access_token, hash_password, verify_password
from .config import settings
from .constants import ROLE_SUPERADMIN, ROLE_USER
from .db_models import DBProfile, DBUserPreference
from .exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .permissions import is_superadmin, require_admin
from .sanitization import sanitize_name, validate_avatar_url

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for accounts, profiles and roles."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Accounts
    # =========================================================================

    def register(self, email: str, password: str, full_name: Optional[str] = None) -> DBProfile:
        """
        Create an account.

        The configured bootstrap email is promoted to superadmin so a fresh
        install has someone who can hand out roles.

        Raises:
            DuplicateEmailError: If the email already has a profile
        """
        email = email.strip().lower()

        existing = self.db.query(DBProfile).filter(DBProfile.email == email).first()
        if existing:
            raise DuplicateEmailError(email)

        role = ROLE_USER
        if settings.bootstrap_superadmin_email and email == settings.bootstrap_superadmin_email:
            role = ROLE_SUPERADMIN

        profile = DBProfile(
            email=email,
            hashed_password=hash_password(password),
            full_name=sanitize_name(full_name, "Full name") if full_name and full_name.strip() else None,
            role=role,
        )
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)

        logger.info(f"Registered profile {profile.id} with role {role}")
        return profile

    def login(self, email: str, password: str) -> str:
        """
        Verify credentials and issue an access token.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        email = email.strip().lower()
        profile = self.db.query(DBProfile).filter(DBProfile.email == email).first()

        if not profile or not verify_password(password, profile.hashed_password):
            logger.info(f"Failed login for {email}")
            raise InvalidCredentialsError()

        profile.last_sign_in_at = datetime.utcnow()
        self.db.commit()

        return create_access_token(data={"sub": profile.id})

    def change_password(self, profile: DBProfile, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, profile.hashed_password):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")

        profile.hashed_password = hash_password(new_password)
        self.db.commit()
        logger.info(f"Password changed for {profile.id}")

    # =========================================================================
    # Profiles
    # =========================================================================

    def get_profile(self, profile_id: str) -> DBProfile:
        profile = self.db.query(DBProfile).filter(DBProfile.id == profile_id).first()
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        return profile

    def update_own_profile(self, profile: DBProfile, changes: dict) -> DBProfile:
        """Apply full_name / avatar_url from a partial update; blank clears."""
        if "full_name" in changes:
            full_name = changes["full_name"]
            profile.full_name = sanitize_name(full_name, "Full name") if full_name and full_name.strip() else None
        if "avatar_url" in changes:
            profile.avatar_url = validate_avatar_url(changes["avatar_url"])

        self.db.commit()
        self.db.refresh(profile)
        return profile

    # =========================================================================
    # Preferences
    # =========================================================================

    def get_preferences(self, profile: DBProfile) -> DBUserPreference:
        """Caller's preferences, created with defaults on first read."""
        preferences = (
            self.db.query(DBUserPreference)
            .filter(DBUserPreference.user_id == profile.id)
            .first()
        )
        if preferences is None:
            preferences = DBUserPreference(
                user_id=profile.id,
                hide_recent_activity=False,
                hide_recent_files=False,
            )
            self.db.add(preferences)
            self.db.commit()
            self.db.refresh(preferences)
        return preferences

    def update_preferences(self, profile: DBProfile, changes: dict) -> DBUserPreference:
        preferences = self.get_preferences(profile)
        for key in ("hide_recent_activity", "hide_recent_files"):
            if changes.get(key) is not None:
                setattr(preferences, key, changes[key])

        self.db.commit()
        self.db.refresh(preferences)
        return preferences

    # =========================================================================
    # Admin
    # =========================================================================

    def list_users(self, caller: DBProfile) -> List[DBProfile]:
        """All profiles, newest first (admin only)."""
        require_admin(caller, "list users")
        return self.db.query(DBProfile).order_by(DBProfile.created_at.desc()).all()

    def update_user_role(self, caller: DBProfile, user_id: str, role: str) -> DBProfile:
        """
        Change another profile's role.

        Only a superadmin may grant or revoke superadmin. Admins may not
        change their own role.
        """
        require_admin(caller, "change user roles")

        target = self.get_profile(user_id)
        if target.id == caller.id:
            raise ValidationError("You cannot change your own role")

        touches_superadmin = role == ROLE_SUPERADMIN or target.role == ROLE_SUPERADMIN
        if touches_superadmin and not is_superadmin(caller):
            raise PermissionDeniedError("Only a superadmin can grant or revoke the superadmin role")

        previous = target.role
        target.role = role
        self.db.commit()
        self.db.refresh(target)

        logger.info(f"Role of {target.id} changed from {previous} to {role} by {caller.id}")
        return target
