"""
Comment service.

Comments hang off a message. Creating one notifies the message's author
unless the commenter is the author.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .constants import MAX_COMMENT_LENGTH, NOTIFICATION_COMMENT
from .db_models import DBComment, DBProfile, new_id
from .exceptions import NotFoundError
from .notification_service import NotificationService
from .permissions import can_modify, require_owner_or_admin
from .post_service import PostService
from .sanitization import sanitize_text_content

logger = logging.getLogger(__name__)


class CommentService:
    """Service for comments on messages."""

    def __init__(self, db: Session):
        self.db = db
        self.posts = PostService(db)
        self.notifications = NotificationService(db)

    def _get(self, comment_id: str) -> DBComment:
        comment = self.db.query(DBComment).filter(DBComment.id == comment_id).first()
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment

    def get_comment(self, caller: DBProfile, comment_id: str) -> DBComment:
        """Comment on a message the caller can see."""
        comment = self._get(comment_id)
        try:
            self.posts.get_post(caller, comment.post_id)
        except NotFoundError:
            raise NotFoundError("Comment", comment_id)
        return comment

    def list_comments(self, caller: DBProfile, post_id: str) -> List[DBComment]:
        """Comments on a message, oldest first."""
        self.posts.get_post(caller, post_id)
        return (
            self.db.query(DBComment)
            .filter(DBComment.post_id == post_id)
            .order_by(DBComment.created_at.asc())
            .all()
        )

    def count_comments(self, caller: DBProfile, post_id: str) -> int:
        self.posts.get_post(caller, post_id)
        return self.db.query(DBComment).filter(DBComment.post_id == post_id).count()

    def can_modify_comment(self, caller: DBProfile, comment_id: str) -> bool:
        return can_modify(caller, self.get_comment(caller, comment_id).user_id)

    def create_comment(
        self,
        caller: DBProfile,
        post_id: str,
        content: str,
        referenced_file_id: Optional[str] = None,
        referenced_category_id: Optional[str] = None,
    ) -> Tuple[DBComment, List[Dict[str, Any]]]:
        """
        Add a comment and notify the message's author.

        Returns:
            (comment row, notification deliveries for the change feed)
        """
        post = self.posts.get_post(caller, post_id)
        self.posts.resolve_file_reference(caller, referenced_file_id)
        self.posts.resolve_category_reference(caller, referenced_category_id)

        comment = DBComment(
            id=new_id(),
            post_id=post.id,
            user_id=caller.id,
            content=sanitize_text_content(content, MAX_COMMENT_LENGTH, "Comment"),
            referenced_file_id=referenced_file_id,
            referenced_category_id=referenced_category_id,
        )
        self.db.add(comment)

        deliveries = []
        if post.author_id and post.author_id != caller.id:
            deliveries = self.notifications.fan_out(
                f"New comment on your message: {post.title}",
                NOTIFICATION_COMMENT,
                post.id,
                [post.author_id],
            )

        self.db.commit()
        self.db.refresh(comment)

        logger.info(f"Created comment {comment.id} on message {post.id}")
        return comment, deliveries

    def update_comment(self, caller: DBProfile, comment_id: str, changes: dict) -> DBComment:
        comment = self.get_comment(caller, comment_id)
        require_owner_or_admin(caller, comment.user_id, "edit this comment")

        if "content" in changes and changes["content"] is not None:
            comment.content = sanitize_text_content(changes["content"], MAX_COMMENT_LENGTH, "Comment")
        if "referenced_file_id" in changes:
            self.posts.resolve_file_reference(caller, changes["referenced_file_id"])
            comment.referenced_file_id = changes["referenced_file_id"]
        if "referenced_category_id" in changes:
            self.posts.resolve_category_reference(caller, changes["referenced_category_id"])
            comment.referenced_category_id = changes["referenced_category_id"]

        self.db.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(self, caller: DBProfile, comment_id: str) -> str:
        """Delete a comment. Returns the message id it belonged to."""
        comment = self.get_comment(caller, comment_id)
        require_owner_or_admin(caller, comment.user_id, "delete this comment")

        post_id = comment.post_id
        self.db.delete(comment)
        self.db.commit()

        logger.info(f"Deleted comment {comment_id} from message {post_id}")
        return post_id
