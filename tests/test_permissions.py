"""
Tests for role checks and admin-only folder inheritance.
"""

from types import SimpleNamespace

import pytest

from filehub.constants import ROLE_CORE_ADMIN, ROLE_SUPERADMIN, ROLE_USER
from filehub.db_models import DBCategory
from filehub.exceptions import PermissionDeniedError
from filehub.permissions import (
    can_modify,
    change_audience,
    hidden_categories_for,
    hidden_category_ids,
    is_admin,
    is_category_visible,
    is_superadmin,
    require_admin,
)


def profile(role, profile_id="p1"):
    return SimpleNamespace(id=profile_id, role=role)


def add_folder(db, folder_id, parent_id=None, admin_only=False):
    db.add(DBCategory(id=folder_id, name=folder_id, parent_id=parent_id, admin_only=admin_only))
    db.flush()


# =============================================================================
# Role Checks
# =============================================================================

@pytest.mark.parametrize("role,admin,superadmin", [
    (ROLE_USER, False, False),
    (ROLE_CORE_ADMIN, True, False),
    (ROLE_SUPERADMIN, True, True),
])
def test_role_predicates(role, admin, superadmin):
    assert is_admin(profile(role)) is admin
    assert is_superadmin(profile(role)) is superadmin


def test_require_admin_message():
    with pytest.raises(PermissionDeniedError, match="Admin role required to delete files"):
        require_admin(profile(ROLE_USER), "delete files")

    require_admin(profile(ROLE_CORE_ADMIN), "delete files")


def test_can_modify():
    author = profile(ROLE_USER, "author")

    assert can_modify(author, "author") is True
    assert can_modify(author, "someone-else") is False
    assert can_modify(author, None) is False
    assert can_modify(profile(ROLE_CORE_ADMIN), None) is True

# =============================================================================
# Folder Visibility
# =============================================================================

def test_admin_only_is_inherited(db_session):
    add_folder(db_session, "public")
    add_folder(db_session, "public-child", parent_id="public")
    add_folder(db_session, "private", admin_only=True)
    add_folder(db_session, "private-child", parent_id="private")
    add_folder(db_session, "private-grandchild", parent_id="private-child")
    db_session.commit()

    assert hidden_category_ids(db_session) == {"private", "private-child", "private-grandchild"}


def test_admins_see_everything(db_session):
    add_folder(db_session, "private", admin_only=True)
    db_session.commit()

    assert hidden_categories_for(db_session, profile(ROLE_CORE_ADMIN)) == set()
    assert hidden_categories_for(db_session, profile(ROLE_USER)) == {"private"}
    assert is_category_visible(db_session, profile(ROLE_USER), "private") is False
    assert is_category_visible(db_session, profile(ROLE_USER), None) is True


def test_cyclic_chain_terminates(db_session):
    add_folder(db_session, "a")
    add_folder(db_session, "b", parent_id="a")
    add_folder(db_session, "c", parent_id="b")
    add_folder(db_session, "hidden-leaf", parent_id="c")
    db_session.query(DBCategory).filter_by(id="hidden-leaf").update({"admin_only": True})
    # Close the loop a -> c -> b -> a
    db_session.query(DBCategory).filter_by(id="a").update({"parent_id": "c"})
    db_session.commit()

    assert hidden_category_ids(db_session) == {"hidden-leaf"}


def test_cycle_below_admin_only_folder(db_session):
    add_folder(db_session, "root", admin_only=True)
    add_folder(db_session, "x", parent_id="root")
    add_folder(db_session, "y", parent_id="x")
    db_session.commit()

    assert hidden_category_ids(db_session) == {"root", "x", "y"}


def test_change_audience(db_session, account_factory):
    admin = account_factory("root@example.com", ROLE_SUPERADMIN)
    account_factory("member@example.com")
    add_folder(db_session, "open")
    add_folder(db_session, "private", admin_only=True)
    add_folder(db_session, "inner", parent_id="private")

    assert change_audience(db_session) is None
    assert change_audience(db_session, None) is None
    assert change_audience(db_session, "open") is None
    assert change_audience(db_session, "inner", "open") is None
    assert change_audience(db_session, "inner") == [admin.id]
    assert change_audience(db_session, "private", "inner") == [admin.id]
