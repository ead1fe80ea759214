"""
Comments Router for FileHub.

Endpoints:
- GET /comments/count?post_id= - Number of comments on a message
- PATCH /comments/{comment_id} - Edit comment (author or admin)
- DELETE /comments/{comment_id} - Delete comment (author or admin)
- GET /comments/{comment_id}/can-modify - Whether the caller may edit/delete
"""

import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..comment_service import CommentService
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import CanModify, Comment, CommentCount, CommentUpdate
from ..realtime import ChangeAction, broadcast_change

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/comments",
    tags=["comments"],
    responses={401: {"description": "Unauthorized"}},
)


@router.get("/count", response_model=CommentCount)
async def count_comments(
    post_id: str = Query(..., description="Message to count comments for"),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    count = CommentService(db).count_comments(current_user, post_id)
    return CommentCount(post_id=post_id, count=count)


@router.patch("/{comment_id}", response_model=Comment)
async def update_comment(
    comment_id: str,
    update: CommentUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    comment = CommentService(db).update_comment(
        current_user,
        comment_id,
        update.model_dump(exclude_unset=True),
    )
    await broadcast_change("comments", ChangeAction.UPDATE, comment.id)
    return comment


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    CommentService(db).delete_comment(current_user, comment_id)
    await broadcast_change("comments", ChangeAction.DELETE, comment_id)


@router.get("/{comment_id}/can-modify", response_model=CanModify)
async def can_modify_comment(
    comment_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CanModify(can_modify=CommentService(db).can_modify_comment(current_user, comment_id))
