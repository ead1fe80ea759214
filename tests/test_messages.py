"""
Tests for messages, announcements and comments, including the
notifications each one fans out.
"""

from datetime import datetime, timedelta

from filehub.constants import (
    NOTIFICATION_ADMIN_POST,
    NOTIFICATION_COMMENT,
    NOTIFICATION_FILE_REFERENCE,
)
from filehub.db_models import DBComment, DBNotification


def post_message(client, account, **fields):
    body = {"title": "Hello", "content": "Body text"}
    body.update(fields)
    response = client.post("/messages", json=body, headers=account.headers)
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Announcements
# =============================================================================

def test_users_cannot_create_admin_posts(client, user):
    response = client.post(
        "/messages",
        json={"title": "Hi", "content": "x", "is_admin_post": True},
        headers=user.headers,
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only admins can create admin posts"


def test_announcement_notifies_every_profile(client, core_admin, user, other_user, db_session):
    post = post_message(client, core_admin, title="Maintenance", is_admin_post=True)

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_ADMIN_POST).all()
    assert sorted(r.user_id for r in rows) == sorted([core_admin.id, user.id, other_user.id])
    assert {r.content for r in rows} == {"New announcement: Maintenance"}
    assert {r.related_id for r in rows} == {post["id"]}


def test_plain_message_sends_no_notifications(client, user, other_user, db_session):
    post_message(client, user)
    assert db_session.query(DBNotification).count() == 0


def test_users_never_see_admin_posts(client, core_admin, user):
    announcement = post_message(client, core_admin, is_admin_post=True)
    regular = post_message(client, user)

    listed = [p["id"] for p in client.get("/messages", headers=user.headers).json()]
    assert listed == [regular["id"]]
    assert client.get(f"/messages/{announcement['id']}", headers=user.headers).status_code == 404

    admin_listed = {p["id"] for p in client.get("/messages", headers=core_admin.headers).json()}
    assert admin_listed == {announcement["id"], regular["id"]}


def test_admin_only_listing(client, core_admin, user):
    announcement = post_message(client, core_admin, is_admin_post=True)
    post_message(client, user)

    response = client.get("/messages", params={"admin_only": True}, headers=core_admin.headers)
    assert [p["id"] for p in response.json()] == [announcement["id"]]

    assert client.get("/messages", params={"admin_only": True}, headers=user.headers).status_code == 403

# =============================================================================
# References
# =============================================================================

def test_file_reference_notifies_every_profile(client, user, other_user, upload, db_session):
    uploaded = upload(user, "plan.txt")
    post = post_message(client, other_user, referenced_file_id=uploaded["id"])

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_FILE_REFERENCE).all()
    assert len(rows) == 2
    assert {r.content for r in rows} == {"New message referencing file: plan.txt"}
    assert {r.related_id for r in rows} == {post["id"]}


def test_folder_reference_text(client, core_admin, user, make_folder, db_session):
    folder = make_folder(core_admin, "Designs")
    post_message(client, user, referenced_category_id=folder["id"])

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_FILE_REFERENCE).all()
    assert {r.content for r in rows} == {"New message referencing folder: Designs"}


def test_missing_reference_is_404(client, user):
    response = client.post(
        "/messages",
        json={"title": "x", "content": "y", "referenced_file_id": "missing"},
        headers=user.headers,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Referenced file not found"


def test_hidden_folder_cannot_be_referenced_by_users(client, core_admin, user, make_folder):
    private = make_folder(core_admin, "Private", admin_only=True)

    response = client.post(
        "/messages",
        json={"title": "x", "content": "y", "referenced_category_id": private["id"]},
        headers=user.headers,
    )

    assert response.status_code == 404


def test_references_into_hidden_folders_only_notify_admins(
    client, core_admin, superadmin, user, make_folder, upload, db_session
):
    private = make_folder(core_admin, "Private", admin_only=True)
    uploaded = upload(core_admin, "salaries.csv", category_id=private["id"])

    post_message(client, core_admin, referenced_file_id=uploaded["id"])
    post_message(client, core_admin, referenced_category_id=private["id"])

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_FILE_REFERENCE).all()
    assert len(rows) == 4
    assert {r.user_id for r in rows} == {core_admin.id, superadmin.id}

# =============================================================================
# Edit / Delete
# =============================================================================

def test_author_and_admin_can_modify(client, user, other_user, core_admin):
    post = post_message(client, user)

    def can_modify(account):
        return client.get(f"/messages/{post['id']}/can-modify", headers=account.headers).json()["can_modify"]

    assert can_modify(user) is True
    assert can_modify(core_admin) is True
    assert can_modify(other_user) is False


def test_other_user_cannot_edit_message(client, user, other_user):
    post = post_message(client, user)

    response = client.patch(f"/messages/{post['id']}", json={"title": "Hijacked"}, headers=other_user.headers)
    assert response.status_code == 403

    response = client.patch(f"/messages/{post['id']}", json={"title": "Edited"}, headers=user.headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Edited"


def test_delete_removes_comments_and_notifications(client, core_admin, user, db_session):
    post = post_message(client, core_admin, is_admin_post=True)
    client.post(f"/messages/{post['id']}/comments", json={"content": "Noted"}, headers=user.headers)

    response = client.delete(f"/messages/{post['id']}", headers=core_admin.headers)

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.query(DBComment).filter_by(post_id=post["id"]).count() == 0
    assert db_session.query(DBNotification).filter_by(related_id=post["id"]).count() == 0

# =============================================================================
# Comments
# =============================================================================

def test_comment_notifies_author(client, user, other_user, db_session):
    post = post_message(client, user, title="Lunch?")

    response = client.post(f"/messages/{post['id']}/comments", json={"content": "Yes"}, headers=other_user.headers)

    assert response.status_code == 201
    assert response.json()["user_id"] == other_user.id
    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_COMMENT).all()
    assert [(r.user_id, r.content, r.related_id) for r in rows] == [
        (user.id, "New comment on your message: Lunch?", post["id"])
    ]


def test_self_comment_sends_no_notification(client, user, db_session):
    post = post_message(client, user)

    client.post(f"/messages/{post['id']}/comments", json={"content": "Bump"}, headers=user.headers)

    assert db_session.query(DBNotification).filter_by(type=NOTIFICATION_COMMENT).count() == 0


def test_comments_listed_oldest_first_and_counted(client, user, other_user, db_session):
    post = post_message(client, user)
    now = datetime.utcnow()
    for offset, text in [(2, "third"), (0, "first"), (1, "second")]:
        db_session.add(DBComment(
            post_id=post["id"],
            user_id=other_user.id,
            content=text,
            created_at=now + timedelta(seconds=offset),
        ))
    db_session.commit()

    listed = client.get(f"/messages/{post['id']}/comments", headers=user.headers).json()
    assert [c["content"] for c in listed] == ["first", "second", "third"]

    count = client.get("/comments/count", params={"post_id": post["id"]}, headers=user.headers).json()
    assert count == {"post_id": post["id"], "count": 3}


def test_comment_edit_permissions(client, user, other_user, core_admin):
    post = post_message(client, user)
    comment = client.post(
        f"/messages/{post['id']}/comments", json={"content": "Mine"}, headers=other_user.headers
    ).json()

    assert client.patch(
        f"/comments/{comment['id']}", json={"content": "Not yours"}, headers=user.headers
    ).status_code == 403

    edited = client.patch(f"/comments/{comment['id']}", json={"content": "Edited"}, headers=other_user.headers)
    assert edited.json()["content"] == "Edited"

    assert client.get(f"/comments/{comment['id']}/can-modify", headers=core_admin.headers).json() == {
        "can_modify": True
    }
    assert client.delete(f"/comments/{comment['id']}", headers=core_admin.headers).status_code == 204


def test_comments_on_hidden_admin_post_are_404(client, core_admin, user):
    post = post_message(client, core_admin, is_admin_post=True)

    response = client.get(f"/messages/{post['id']}/comments", headers=user.headers)
    assert response.status_code == 404
