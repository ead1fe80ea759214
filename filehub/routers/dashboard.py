"""
Dashboard Router for FileHub.

Endpoints:
- GET /dashboard - Stats plus recent files and messages
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..analytics_service import AnalyticsService
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import Dashboard

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["dashboard"],
    responses={401: {"description": "Unauthorized"}},
)


@router.get("/dashboard", response_model=Dashboard)
async def get_dashboard(
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Landing-page summary.

    recent_files and recent_posts are null when the caller's preferences
    hide them.
    """
    return AnalyticsService(db).get_dashboard(current_user)
