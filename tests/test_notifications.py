"""
Tests for the caller-scoped notification endpoints.
"""

import pytest

from filehub.db_models import DBNotification


@pytest.fixture
def notify(db_session):
    """notify(account, content) -> notification id"""

    def _notify(account, content="Something happened", is_read=False):
        row = DBNotification(user_id=account.id, content=content, type="comment", is_read=is_read)
        db_session.add(row)
        db_session.commit()
        return row.id

    return _notify


def test_list_only_returns_own_notifications(client, user, other_user, notify):
    mine = notify(user, "for alice")
    notify(other_user, "for bob")

    listed = client.get("/notifications", headers=user.headers).json()

    assert [n["id"] for n in listed] == [mine]
    assert listed[0]["user_id"] == user.id


def test_unread_only_filter_and_count(client, user, notify):
    unread = notify(user)
    notify(user, is_read=True)

    listed = client.get("/notifications", params={"unread_only": True}, headers=user.headers).json()
    assert [n["id"] for n in listed] == [unread]

    assert client.get("/notifications/unread-count", headers=user.headers).json() == {"count": 1}


def test_mark_read(client, user, notify):
    notification_id = notify(user)

    response = client.post(f"/notifications/{notification_id}/read", headers=user.headers)

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert client.get("/notifications/unread-count", headers=user.headers).json() == {"count": 0}


def test_other_users_notification_is_404(client, user, other_user, notify, db_session):
    theirs = notify(other_user)

    assert client.post(f"/notifications/{theirs}/read", headers=user.headers).status_code == 404
    assert client.delete(f"/notifications/{theirs}", headers=user.headers).status_code == 404

    db_session.expire_all()
    row = db_session.query(DBNotification).filter_by(id=theirs).one()
    assert row.is_read is False


def test_mark_all_read_only_touches_caller(client, user, other_user, notify):
    notify(user)
    notify(user)
    notify(other_user)

    response = client.post("/notifications/read-all", headers=user.headers)

    assert response.json() == {"affected": 2}
    assert client.get("/notifications/unread-count", headers=other_user.headers).json() == {"count": 1}


def test_delete_one_and_all(client, user, other_user, notify, db_session):
    first = notify(user)
    notify(user)
    notify(other_user)

    assert client.delete(f"/notifications/{first}", headers=user.headers).status_code == 204

    response = client.delete("/notifications", headers=user.headers)
    assert response.json() == {"affected": 1}

    db_session.expire_all()
    assert db_session.query(DBNotification).filter_by(user_id=user.id).count() == 0
    assert db_session.query(DBNotification).filter_by(user_id=other_user.id).count() == 1
