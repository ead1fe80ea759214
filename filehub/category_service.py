"""
Category (folder) service.

Folders form a tree through parent_id. Admins manage folders; everyone reads
them, except that non-admins never see a folder that is admin_only or that
sits below an admin_only folder.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .db_models import DBCategory, DBComment, DBFile, DBPost, DBProfile
from .exceptions import CategoryCycleError, NotFoundError
from .permissions import hidden_categories_for, hidden_category_ids, require_admin
from .sanitization import sanitize_description, sanitize_name

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for the folder tree."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get(self, category_id: str) -> DBCategory:
        category = self.db.query(DBCategory).filter(DBCategory.id == category_id).first()
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def get_category(self, caller: DBProfile, category_id: str) -> DBCategory:
        """Single folder; hidden folders 404 for non-admins."""
        category = self._get(category_id)
        if category.id in hidden_categories_for(self.db, caller):
            raise NotFoundError("Category", category_id)
        return category

    def list_categories(self, caller: DBProfile) -> List[DBCategory]:
        """Every visible folder, ordered by name."""
        hidden = hidden_categories_for(self.db, caller)
        query = self.db.query(DBCategory)
        if hidden:
            query = query.filter(DBCategory.id.notin_(hidden))
        return query.order_by(DBCategory.name.asc()).all()

    def list_children(self, caller: DBProfile, parent_id: Optional[str] = None) -> List[DBCategory]:
        """Visible direct sub-folders of parent_id (root folders when None)."""
        hidden = hidden_categories_for(self.db, caller)

        query = self.db.query(DBCategory)
        if parent_id is None:
            query = query.filter(DBCategory.parent_id.is_(None))
        else:
            if parent_id in hidden:
                raise NotFoundError("Category", parent_id)
            self._get(parent_id)
            query = query.filter(DBCategory.parent_id == parent_id)

        if hidden:
            query = query.filter(DBCategory.id.notin_(hidden))
        return query.order_by(DBCategory.name.asc()).all()

    def breadcrumbs(self, caller: DBProfile, category_id: str) -> List[DBCategory]:
        """
        Root-first ancestor chain ending at category_id.

        The walk stops at a missing parent or a node it has already visited.
        """
        current = self.get_category(caller, category_id)

        trail = []
        visited = set()
        while current is not None and current.id not in visited:
            visited.add(current.id)
            trail.append(current)
            if current.parent_id is None:
                break
            current = self.db.query(DBCategory).filter(DBCategory.id == current.parent_id).first()

        trail.reverse()
        return trail

    # =========================================================================
    # Admin operations
    # =========================================================================

    def _ensure_no_cycle(self, category_id: str, new_parent_id: str) -> None:
        """Reject a parent that is the folder itself or one of its descendants."""
        visited = set()
        current_id = new_parent_id
        while current_id is not None and current_id not in visited:
            if current_id == category_id:
                raise CategoryCycleError(category_id, new_parent_id)
            visited.add(current_id)
            row = self.db.query(DBCategory.parent_id).filter(DBCategory.id == current_id).first()
            current_id = row.parent_id if row else None

    def create_category(
        self,
        caller: DBProfile,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        admin_only: bool = False,
    ) -> DBCategory:
        require_admin(caller, "create folders")

        if parent_id is not None:
            self._get(parent_id)

        category = DBCategory(
            name=sanitize_name(name, "Folder name"),
            description=sanitize_description(description),
            parent_id=parent_id,
            admin_only=admin_only,
            created_by=caller.id,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)

        logger.info(f"Created folder {category.id} '{category.name}' (parent={parent_id}, admin_only={admin_only})")
        return category

    def update_category(self, caller: DBProfile, category_id: str, changes: dict) -> DBCategory:
        """
        Apply a partial update.

        changes only holds the fields the client sent; an explicit
        parent_id of None moves the folder to the root.
        """
        require_admin(caller, "edit folders")
        category = self._get(category_id)

        if "name" in changes and changes["name"] is not None:
            category.name = sanitize_name(changes["name"], "Folder name")
        if "description" in changes:
            category.description = sanitize_description(changes["description"])
        if "admin_only" in changes and changes["admin_only"] is not None:
            category.admin_only = changes["admin_only"]
        if "parent_id" in changes:
            new_parent_id = changes["parent_id"]
            if new_parent_id is not None:
                self._get(new_parent_id)
                self._ensure_no_cycle(category.id, new_parent_id)
            category.parent_id = new_parent_id

        self.db.commit()
        self.db.refresh(category)

        logger.info(f"Updated folder {category.id}")
        return category

    def delete_category(self, caller: DBProfile, category_id: str) -> None:
        """
        Delete a folder.

        Its files and any post/comment references are detached (set to
        NULL), and its sub-folders move up to its own parent. Sub-folders
        that were hidden only through this folder are marked admin_only so
        the move does not expose them.
        """
        require_admin(caller, "delete folders")
        category = self._get(category_id)

        hidden = hidden_category_ids(self.db)
        keep_children_hidden = category.id in hidden and category.parent_id not in hidden

        detached_files = (
            self.db.query(DBFile)
            .filter(DBFile.category_id == category.id)
            .update({DBFile.category_id: None}, synchronize_session=False)
        )
        self.db.query(DBPost).filter(DBPost.referenced_category_id == category.id).update(
            {DBPost.referenced_category_id: None}, synchronize_session=False
        )
        self.db.query(DBComment).filter(DBComment.referenced_category_id == category.id).update(
            {DBComment.referenced_category_id: None}, synchronize_session=False
        )
        child_changes = {DBCategory.parent_id: category.parent_id}
        if keep_children_hidden:
            child_changes[DBCategory.admin_only] = True
        moved_children = (
            self.db.query(DBCategory)
            .filter(DBCategory.parent_id == category.id)
            .update(child_changes, synchronize_session=False)
        )

        self.db.delete(category)
        self.db.commit()

        logger.info(
            f"Deleted folder {category_id}: detached {detached_files} file(s), "
            f"re-parented {moved_children} sub-folder(s)"
        )
