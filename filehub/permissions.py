"""
Role and visibility checks shared by every service.

- Admin checks (core_admin and superadmin count as admin)
- Author-or-admin modification checks
- Folder visibility: a folder is hidden from non-admins when it, or any of
  its ancestors, is admin_only
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .constants import ADMIN_ROLES, ROLE_SUPERADMIN
from .db_models import DBCategory, DBFile, DBProfile
from .exceptions import PermissionDeniedError

logger = logging.getLogger(__name__)


# =============================================================================
# Role Checks
# =============================================================================

def is_admin(profile: Optional[DBProfile]) -> bool:
    return profile is not None and profile.role in ADMIN_ROLES


def is_superadmin(profile: Optional[DBProfile]) -> bool:
    return profile is not None and profile.role == ROLE_SUPERADMIN


def require_admin(profile: DBProfile, action: str = "perform this action") -> None:
    """Raise PermissionDeniedError unless the profile is an admin."""
    if not is_admin(profile):
        logger.warning(f"Non-admin {profile.id} attempted to {action}")
        raise PermissionDeniedError(f"Admin role required to {action}")


def can_modify(profile: DBProfile, owner_id: Optional[str]) -> bool:
    """Authors may modify their own rows; admins may modify anything."""
    if is_admin(profile):
        return True
    return owner_id is not None and owner_id == profile.id


def require_owner_or_admin(profile: DBProfile, owner_id: Optional[str], action: str) -> None:
    if not can_modify(profile, owner_id):
        raise PermissionDeniedError(f"Only the author or an admin can {action}")


# =============================================================================
# Folder Visibility
# =============================================================================

def _category_index(db: Session) -> Dict[str, Tuple[Optional[str], bool]]:
    rows = db.query(DBCategory.id, DBCategory.parent_id, DBCategory.admin_only).all()
    return {row.id: (row.parent_id, bool(row.admin_only)) for row in rows}


def hidden_category_ids(db: Session) -> Set[str]:
    """
    Ids of folders that are admin_only or sit below an admin_only folder.

    Each folder's parent chain is walked once; results are memoized so the
    whole tree costs one query plus a linear pass. A revisited node ends the
    walk, so a corrupted cyclic chain cannot loop forever.
    """
    index = _category_index(db)
    hidden: Dict[str, bool] = {}

    for start_id in index:
        chain = []
        seen = set()
        current = start_id
        result = False

        while current is not None and current in index:
            if current in hidden:
                result = hidden[current]
                break
            if current in seen:
                break
            seen.add(current)
            chain.append(current)

            parent_id, admin_only = index[current]
            if admin_only:
                result = True
                break
            current = parent_id

        # Every node on the walked chain shares the answer
        for node in chain:
            hidden[node] = result

    return {category_id for category_id, is_hidden in hidden.items() if is_hidden}


def hidden_categories_for(db: Session, profile: DBProfile) -> Set[str]:
    """Folders the caller may not see; always empty for admins."""
    if is_admin(profile):
        return set()
    return hidden_category_ids(db)


def is_category_visible(db: Session, profile: DBProfile, category_id: Optional[str]) -> bool:
    if category_id is None or is_admin(profile):
        return True
    return category_id not in hidden_category_ids(db)


def apply_file_visibility(query, hidden: Set[str]):
    """Restrict a DBFile query to files outside the hidden folders."""
    if not hidden:
        return query
    return query.filter(
        or_(DBFile.category_id.is_(None), DBFile.category_id.notin_(hidden))
    )


def change_audience(db: Session, *category_ids: Optional[str]) -> Optional[List[str]]:
    """
    Profiles that may hear about a change touching these folders.

    Returns None when everyone may (no folders given, or any of them is
    visible). When every folder given is hidden, only admin ids are returned.
    """
    hidden = hidden_category_ids(db)
    if not category_ids or any(category_id is None or category_id not in hidden for category_id in category_ids):
        return None

    rows = db.query(DBProfile.id).filter(DBProfile.role.in_(ADMIN_ROLES)).all()
    return [row.id for row in rows]
