"""
Admin Router for FileHub.

Endpoints:
- GET /admin/users - All profiles, newest first
- PUT /admin/users/{user_id}/role - Change a profile's role
- GET /admin/stats - Row counts
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..analytics_service import AnalyticsService
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_admin
from ..models import AdminStats, Profile, RoleUpdate
from ..profile_service import ProfileService

# Initialize logger
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Admin role required"}},
)


@router.get("/users", response_model=List[Profile])
async def list_users(
    admin: DBProfile = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return ProfileService(db).list_users(admin)


@router.put("/users/{user_id}/role", response_model=Profile)
async def update_user_role(
    request: Request,
    user_id: str,
    update: RoleUpdate,
    admin: DBProfile = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Change a profile's role.

    Only a superadmin may grant or revoke superadmin.
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] {admin.id} setting role of {user_id} to {update.role}")
    return ProfileService(db).update_user_role(admin, user_id, update.role)


@router.get("/stats", response_model=AdminStats)
async def admin_stats(
    admin: DBProfile = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return AnalyticsService(db).get_admin_stats(admin)
