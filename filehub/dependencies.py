"""
Shared Dependencies for FileHub.

Provides:
- Authentication dependencies (get_current_user, get_current_admin)
- Object storage dependency (get_storage)
"""

import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .auth import decode_access_token
from .database import get_db
from .db_models import DBProfile
from .permissions import require_admin
from .storage import LocalObjectStorage, get_object_storage

logger = logging.getLogger(__name__)

# =============================================================================
# OAuth2 Scheme
# =============================================================================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# =============================================================================
# Authentication Dependencies
# =============================================================================

def get_profile_from_token(token: str, db: Session) -> DBProfile:
    """
    Resolve a bearer token to its profile.

    Shared by the HTTP dependency and the WebSocket handshake.

    Raises:
        ValueError: If the token is invalid or the profile no longer exists
    """
    payload = decode_access_token(token)
    profile_id = payload.get("sub")
    if not profile_id:
        raise ValueError("Token has no subject")

    profile = db.query(DBProfile).filter(DBProfile.id == profile_id).first()
    if profile is None:
        raise ValueError("Profile not found")
    return profile


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> DBProfile:
    """
    Get current profile from JWT token.

    Raises:
        HTTPException 401: If token is invalid or the profile was deleted
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return get_profile_from_token(token, db)
    except ValueError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise credentials_exception


def get_current_admin(current_user: DBProfile = Depends(get_current_user)) -> DBProfile:
    """Like get_current_user but 403s for non-admins."""
    require_admin(current_user, "access admin endpoints")
    return current_user

# =============================================================================
# Storage Dependency
# =============================================================================

def get_storage() -> LocalObjectStorage:
    """
    Object storage bucket for dependency injection.

    Tests override this with a bucket in a temporary directory.
    """
    return get_object_storage()
