"""
Profiles Router for FileHub.

Endpoints:
- GET /profiles/me - Caller's profile
- PATCH /profiles/me - Update caller's name and avatar
- GET /profiles/me/preferences - Dashboard preferences
- PATCH /profiles/me/preferences - Update dashboard preferences
- GET /profiles/{profile_id} - Another profile
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import Preferences, PreferencesUpdate, Profile, ProfileUpdate
from ..profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/profiles",
    tags=["profiles"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Own Profile
# =============================================================================

@router.get("/me", response_model=Profile)
async def get_own_profile(current_user: DBProfile = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=Profile)
async def update_own_profile(
    update: ProfileUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Only the fields present in the body are changed; blank values clear them."""
    return ProfileService(db).update_own_profile(
        current_user,
        update.model_dump(exclude_unset=True),
    )

# =============================================================================
# Preferences
# =============================================================================

@router.get("/me/preferences", response_model=Preferences)
async def get_preferences(
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ProfileService(db).get_preferences(current_user)


@router.patch("/me/preferences", response_model=Preferences)
async def update_preferences(
    update: PreferencesUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ProfileService(db).update_preferences(
        current_user,
        update.model_dump(exclude_unset=True),
    )

# =============================================================================
# Other Profiles
# =============================================================================

@router.get("/{profile_id}", response_model=Profile)
async def get_profile(
    profile_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ProfileService(db).get_profile(profile_id)
