"""
Categories Router for FileHub.

Endpoints:
- GET /categories - Visible folders ordered by name (root_only=true for top level)
- POST /categories - Create folder (admin)
- GET /categories/{category_id} - Single folder
- PATCH /categories/{category_id} - Update folder (admin)
- DELETE /categories/{category_id} - Delete folder (admin)
- GET /categories/{category_id}/breadcrumbs - Root-first path to the folder
- GET /categories/{category_id}/children - Visible sub-folders
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..category_service import CategoryService
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import Breadcrumb, Category, CategoryCreate, CategoryUpdate
from ..permissions import change_audience
from ..realtime import ChangeAction, broadcast_change

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Read Endpoints
# =============================================================================

@router.get("", response_model=List[Category])
async def list_categories(
    root_only: bool = Query(False, description="Only return top-level folders"),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = CategoryService(db)
    if root_only:
        return service.list_children(current_user, None)
    return service.list_categories(current_user)


@router.get("/{category_id}", response_model=Category)
async def get_category(
    category_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CategoryService(db).get_category(current_user, category_id)


@router.get("/{category_id}/breadcrumbs", response_model=List[Breadcrumb])
async def get_breadcrumbs(
    category_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CategoryService(db).breadcrumbs(current_user, category_id)


@router.get("/{category_id}/children", response_model=List[Category])
async def get_children(
    category_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CategoryService(db).list_children(current_user, category_id)

# =============================================================================
# Admin Endpoints
# =============================================================================

@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    create: CategoryCreate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    category = CategoryService(db).create_category(
        current_user,
        name=create.name,
        description=create.description,
        parent_id=create.parent_id,
        admin_only=create.admin_only,
    )
    await broadcast_change("categories", ChangeAction.INSERT, category.id, change_audience(db, category.id))
    return category


@router.patch("/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    update: CategoryUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Partial update. "parent_id": null moves the folder to the root.

    Raises:
        400: If the new parent is the folder itself or one of its sub-folders
    """
    # A folder visible before the change must reach everyone who saw it
    audience = change_audience(db, category_id)
    category = CategoryService(db).update_category(
        current_user,
        category_id,
        update.model_dump(exclude_unset=True),
    )
    if audience is not None:
        audience = change_audience(db, category.id)
    await broadcast_change("categories", ChangeAction.UPDATE, category.id, audience)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a folder; its files become uncategorized and sub-folders move up."""
    audience = change_audience(db, category_id)
    CategoryService(db).delete_category(current_user, category_id)
    await broadcast_change("categories", ChangeAction.DELETE, category_id, audience)
    # Detached files are uncategorized now, so everyone refetches
    await broadcast_change("files", ChangeAction.UPDATE, None)
