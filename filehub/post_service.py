"""
Message (post) service.

Admin posts are announcements: only admins may create them and non-admins
never see them in listings. Creating an announcement, or a message that
references a file or folder, notifies every profile; a reference into a
hidden folder only notifies admins.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .constants import (
    MAX_POST_CONTENT_LENGTH,
    MAX_TITLE_LENGTH,
    NOTIFICATION_ADMIN_POST,
    NOTIFICATION_FILE_REFERENCE,
)
from .db_models import DBCategory, DBFile, DBPost, DBProfile, new_id
from .exceptions import NotFoundError, PermissionDeniedError
from .notification_service import NotificationService
from .permissions import can_modify, change_audience, hidden_categories_for, is_admin, require_owner_or_admin
from .sanitization import sanitize_name, sanitize_text_content

logger = logging.getLogger(__name__)


class PostService:
    """Service for messages and announcements."""

    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    # =========================================================================
    # Reference checks
    # =========================================================================

    def resolve_file_reference(self, caller: DBProfile, file_id: Optional[str]) -> Optional[DBFile]:
        """The referenced file, which must exist and be visible to the caller."""
        if file_id is None:
            return None
        record = self.db.query(DBFile).filter(DBFile.id == file_id).first()
        if record is None or (
            record.category_id is not None
            and record.category_id in hidden_categories_for(self.db, caller)
        ):
            raise NotFoundError("Referenced file", file_id)
        return record

    def resolve_category_reference(self, caller: DBProfile, category_id: Optional[str]) -> Optional[DBCategory]:
        """The referenced folder, which must exist and be visible to the caller."""
        if category_id is None:
            return None
        category = self.db.query(DBCategory).filter(DBCategory.id == category_id).first()
        if category is None or category.id in hidden_categories_for(self.db, caller):
            raise NotFoundError("Referenced folder", category_id)
        return category

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get(self, post_id: str) -> DBPost:
        post = self.db.query(DBPost).filter(DBPost.id == post_id).first()
        if post is None:
            raise NotFoundError("Message", post_id)
        return post

    def get_post(self, caller: DBProfile, post_id: str) -> DBPost:
        """Single message; admin posts 404 for non-admins."""
        post = self._get(post_id)
        if post.is_admin_post and not is_admin(caller):
            raise NotFoundError("Message", post_id)
        return post

    def list_posts(self, caller: DBProfile, admin_only: bool = False) -> List[DBPost]:
        """
        Messages, newest first.

        Admins see everything; non-admins never see admin posts.
        admin_only=True returns only admin posts and is admin-only itself.
        """
        query = self.db.query(DBPost)

        if admin_only:
            if not is_admin(caller):
                raise PermissionDeniedError("Admin role required to list announcements")
            query = query.filter(DBPost.is_admin_post.is_(True))
        elif not is_admin(caller):
            query = query.filter(DBPost.is_admin_post.is_(False))

        return query.order_by(DBPost.created_at.desc()).all()

    def can_modify_post(self, caller: DBProfile, post_id: str) -> bool:
        return can_modify(caller, self.get_post(caller, post_id).author_id)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_post(
        self,
        caller: DBProfile,
        title: str,
        content: str,
        is_admin_post: bool = False,
        referenced_file_id: Optional[str] = None,
        referenced_category_id: Optional[str] = None,
    ) -> Tuple[DBPost, List[Dict[str, Any]]]:
        """
        Create a message and fan out its notifications.

        Returns:
            (post row, notification deliveries for the change feed)
        """
        if is_admin_post and not is_admin(caller):
            raise PermissionDeniedError("Only admins can create admin posts")

        referenced_file = self.resolve_file_reference(caller, referenced_file_id)
        referenced_category = self.resolve_category_reference(caller, referenced_category_id)

        post = DBPost(
            id=new_id(),
            title=sanitize_name(title, "Title", MAX_TITLE_LENGTH),
            content=sanitize_text_content(content, MAX_POST_CONTENT_LENGTH),
            author_id=caller.id,
            is_admin_post=is_admin_post,
            referenced_file_id=referenced_file_id,
            referenced_category_id=referenced_category_id,
        )
        self.db.add(post)

        deliveries = []
        if is_admin_post:
            deliveries += self.notifications.notify_all_profiles(
                f"New announcement: {post.title}",
                NOTIFICATION_ADMIN_POST,
                post.id,
            )

        # A file reference takes precedence over a folder reference in the text
        reference_text = None
        recipients = None
        if referenced_file is not None:
            reference_text = f"New message referencing file: {referenced_file.name}"
            recipients = change_audience(self.db, referenced_file.category_id)
        elif referenced_category is not None:
            reference_text = f"New message referencing folder: {referenced_category.name}"
            recipients = change_audience(self.db, referenced_category.id)

        # Names from hidden folders only reach admins
        if reference_text and recipients is None:
            deliveries += self.notifications.notify_all_profiles(
                reference_text,
                NOTIFICATION_FILE_REFERENCE,
                post.id,
            )
        elif reference_text:
            deliveries += self.notifications.fan_out(
                reference_text,
                NOTIFICATION_FILE_REFERENCE,
                post.id,
                recipients,
            )

        self.db.commit()
        self.db.refresh(post)

        logger.info(f"Created message {post.id} (admin={is_admin_post}) with {len(deliveries)} notification(s)")
        return post, deliveries

    def update_post(self, caller: DBProfile, post_id: str, changes: dict) -> DBPost:
        """Author or admin; explicit nulls clear references."""
        post = self.get_post(caller, post_id)
        require_owner_or_admin(caller, post.author_id, "edit this message")

        if "title" in changes and changes["title"] is not None:
            post.title = sanitize_name(changes["title"], "Title", MAX_TITLE_LENGTH)
        if "content" in changes and changes["content"] is not None:
            post.content = sanitize_text_content(changes["content"], MAX_POST_CONTENT_LENGTH)
        if "referenced_file_id" in changes:
            self.resolve_file_reference(caller, changes["referenced_file_id"])
            post.referenced_file_id = changes["referenced_file_id"]
        if "referenced_category_id" in changes:
            self.resolve_category_reference(caller, changes["referenced_category_id"])
            post.referenced_category_id = changes["referenced_category_id"]

        self.db.commit()
        self.db.refresh(post)

        logger.info(f"Updated message {post.id}")
        return post

    def delete_post(self, caller: DBProfile, post_id: str) -> int:
        """
        Delete a message, its comments and every notification about it.

        Returns:
            Number of notifications removed
        """
        post = self.get_post(caller, post_id)
        require_owner_or_admin(caller, post.author_id, "delete this message")

        removed_notifications = self.notifications.delete_related(post.id)
        # Comments go through the relationship cascade
        self.db.delete(post)
        self.db.commit()

        logger.info(f"Deleted message {post_id} and {removed_notifications} notification(s)")
        return removed_notifications
