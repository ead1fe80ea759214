"""
Analytics service for the dashboard and the admin page.

Provides:
- Dashboard statistics (files, uploads today, messages, users)
- Recent visible files and messages, honoring the caller's preferences
- Admin row counts
"""

import logging
from datetime import datetime, time
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from .constants import ALL_ROLES, RECENT_ITEMS_LIMIT
from .db_models import DBFile, DBNotification, DBPost, DBProfile
from .permissions import apply_file_visibility, hidden_categories_for, is_admin, require_admin
from .profile_service import ProfileService

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for generating dashboard and admin statistics."""

    def __init__(self, db: Session):
        """Initialize analytics service with database session."""
        self.db = db

    def get_dashboard_stats(self, caller: DBProfile) -> Dict[str, int]:
        """
        Headline counts of what the caller can see.

        uploads_today counts files created since midnight UTC.
        """
        midnight = datetime.combine(datetime.utcnow().date(), time.min)
        files = apply_file_visibility(self.db.query(DBFile), hidden_categories_for(self.db, caller))

        posts = self.db.query(DBPost)
        if not is_admin(caller):
            posts = posts.filter(DBPost.is_admin_post.is_(False))

        return {
            "total_files": files.count(),
            "uploads_today": files.filter(DBFile.created_at >= midnight).count(),
            "total_messages": posts.count(),
            "total_users": self.db.query(DBProfile).count(),
        }

    def get_dashboard(self, caller: DBProfile) -> Dict[str, Any]:
        """
        Stats plus the five most recent files and messages the caller may see.

        Each recent list is None when the caller's preferences hide it.
        """
        preferences = ProfileService(self.db).get_preferences(caller)

        recent_files = None
        if not preferences.hide_recent_files:
            files = apply_file_visibility(self.db.query(DBFile), hidden_categories_for(self.db, caller))
            recent_files = files.order_by(DBFile.created_at.desc()).limit(RECENT_ITEMS_LIMIT).all()

        recent_posts = None
        if not preferences.hide_recent_activity:
            posts = self.db.query(DBPost)
            if not is_admin(caller):
                posts = posts.filter(DBPost.is_admin_post.is_(False))
            recent_posts = posts.order_by(DBPost.created_at.desc()).limit(RECENT_ITEMS_LIMIT).all()

        return {
            "stats": self.get_dashboard_stats(caller),
            "recent_files": recent_files,
            "recent_posts": recent_posts,
            "preferences": preferences,
        }

    def get_admin_stats(self, caller: DBProfile) -> Dict[str, Any]:
        """Row counts for the admin page (admin only)."""
        require_admin(caller, "view admin statistics")

        role_counts = dict(
            self.db.query(DBProfile.role, func.count(DBProfile.id))
            .group_by(DBProfile.role)
            .all()
        )

        return {
            "total_users": self.db.query(DBProfile).count(),
            "total_files": self.db.query(DBFile).count(),
            "total_posts": self.db.query(DBPost).count(),
            "total_notifications": self.db.query(DBNotification).count(),
            "users_by_role": {role: role_counts.get(role, 0) for role in ALL_ROLES},
        }
