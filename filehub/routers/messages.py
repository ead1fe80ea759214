"""
Messages Router for FileHub.

Endpoints:
- GET /messages - List messages (admin_only=true for announcements)
- POST /messages - Create message or announcement
- GET /messages/{post_id} - Single message
- PATCH /messages/{post_id} - Update message (author or admin)
- DELETE /messages/{post_id} - Delete message, its comments and notifications
- GET /messages/{post_id}/can-modify - Whether the caller may edit/delete
- GET /messages/{post_id}/comments - Comments, oldest first
- POST /messages/{post_id}/comments - Add a comment
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..comment_service import CommentService
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import CanModify, Comment, CommentCreate, Post, PostCreate, PostUpdate
from ..post_service import PostService
from ..realtime import ChangeAction, broadcast_change, push_notifications

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/messages",
    tags=["messages"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Message Endpoints
# =============================================================================

@router.get("", response_model=List[Post])
async def list_messages(
    admin_only: bool = Query(False, description="Only announcements (admins only)"),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return PostService(db).list_posts(current_user, admin_only=admin_only)


@router.post("", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_message(
    create: PostCreate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a message.

    Announcements (is_admin_post) require an admin and notify everyone, as
    do messages that reference a file or folder.
    """
    post, deliveries = PostService(db).create_post(
        current_user,
        title=create.title,
        content=create.content,
        is_admin_post=create.is_admin_post,
        referenced_file_id=create.referenced_file_id,
        referenced_category_id=create.referenced_category_id,
    )
    await broadcast_change("posts", ChangeAction.INSERT, post.id)
    await push_notifications(deliveries)
    return post


@router.get("/{post_id}", response_model=Post)
async def get_message(
    post_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return PostService(db).get_post(current_user, post_id)


@router.patch("/{post_id}", response_model=Post)
async def update_message(
    post_id: str,
    update: PostUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    post = PostService(db).update_post(current_user, post_id, update.model_dump(exclude_unset=True))
    await broadcast_change("posts", ChangeAction.UPDATE, post.id)
    return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    post_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a message with its comments and the notifications about it."""
    PostService(db).delete_post(current_user, post_id)
    await broadcast_change("posts", ChangeAction.DELETE, post_id)
    await broadcast_change("comments", ChangeAction.DELETE, None)


@router.get("/{post_id}/can-modify", response_model=CanModify)
async def can_modify_message(
    post_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CanModify(can_modify=PostService(db).can_modify_post(current_user, post_id))

# =============================================================================
# Comment Endpoints
# =============================================================================

@router.get("/{post_id}/comments", response_model=List[Comment])
async def list_comments(
    post_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CommentService(db).list_comments(current_user, post_id)


@router.post("/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    create: CommentCreate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a comment; the message's author is notified unless they wrote it."""
    comment, deliveries = CommentService(db).create_comment(
        current_user,
        post_id,
        content=create.content,
        referenced_file_id=create.referenced_file_id,
        referenced_category_id=create.referenced_category_id,
    )
    await broadcast_change("comments", ChangeAction.INSERT, comment.id)
    await push_notifications(deliveries)
    return comment
