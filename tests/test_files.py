"""
Tests for file upload, search, visibility, deletion and signed downloads.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from filehub.config import settings
from filehub.constants import JWT_ALGORITHM, NOTIFICATION_FILE_UPLOAD, SIGNED_URL_PURPOSE
from filehub.db_models import DBFile, DBNotification, DBPost
from filehub.exceptions import StorageError
from filehub.notification_service import NotificationService

from conftest import b64


# =============================================================================
# Upload
# =============================================================================

def test_upload_stores_bytes_and_metadata(client, user, upload, storage):
    body = upload(user, "Quarterly Report.PDF", data=b"%PDF-1.4 fake", description="Q3")

    assert body["name"] == "Quarterly Report.PDF"
    assert body["file_size"] == len(b"%PDF-1.4 fake")
    assert body["file_type"] == "application/pdf"
    assert body["uploaded_by"] == user.id
    assert body["description"] == "Q3"
    assert body["file_path"].startswith(f"{user.id}/")
    assert body["file_path"].endswith(".pdf")
    assert storage.read(body["file_path"]) == b"%PDF-1.4 fake"


def test_upload_uses_display_name_and_declared_type(user, upload):
    body = upload(user, "raw.bin", name="Pretty Name", content_type="Text/Plain")

    assert body["name"] == "Pretty Name"
    assert body["file_type"] == "text/plain"


def test_upload_accepts_data_url_prefix(client, user):
    response = client.post(
        "/files",
        json={"filename": "a.txt", "content": "data:text/plain;base64," + b64(b"abc")},
        headers=user.headers,
    )

    assert response.status_code == 201
    assert response.json()["file_size"] == 3


def test_upload_notifies_every_profile_once(client, user, other_user, core_admin, upload, db_session):
    body = upload(user, "shared.txt")

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_FILE_UPLOAD).all()
    assert sorted(r.user_id for r in rows) == sorted([user.id, other_user.id, core_admin.id])
    assert all(r.related_id == body["id"] for r in rows)
    assert all(r.content == "New file uploaded: shared.txt" for r in rows)


def test_upload_rejects_invalid_base64(client, user):
    response = client.post(
        "/files",
        json={"filename": "bad.txt", "content": "not base64!!"},
        headers=user.headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid base64 content")


def test_upload_too_large_is_413(client, user, monkeypatch, db_session):
    monkeypatch.setattr(settings, "max_upload_size_mb", 0)

    response = client.post(
        "/files",
        json={"filename": "big.txt", "content": b64(b"hello world")},
        headers=user.headers,
    )

    assert response.status_code == 413
    assert db_session.query(DBFile).count() == 0


def test_upload_rejects_path_in_filename(client, user):
    response = client.post(
        "/files",
        json={"filename": "../etc/passwd", "content": b64(b"x")},
        headers=user.headers,
    )
    assert response.status_code == 400


def test_upload_into_hidden_folder_is_404_for_users(client, core_admin, user, make_folder):
    private = make_folder(core_admin, "Private", admin_only=True)

    response = client.post(
        "/files",
        json={"filename": "a.txt", "content": b64(b"x"), "category_id": private["id"]},
        headers=user.headers,
    )

    assert response.status_code == 404


def test_rejected_description_leaves_no_object(client, user, storage, db_session):
    response = client.post(
        "/files",
        json={"filename": "a.txt", "content": b64(b"x"), "description": "bad\x00desc"},
        headers=user.headers,
    )

    assert response.status_code == 400
    assert storage.list(user.id) == []
    assert db_session.query(DBFile).count() == 0


def test_failed_upload_removes_stored_object(client, user, storage, db_session):
    with patch.object(NotificationService, "notify_all_profiles", side_effect=RuntimeError("fan-out failed")):
        with pytest.raises(RuntimeError):
            client.post("/files", json={"filename": "a.txt", "content": b64(b"x")}, headers=user.headers)

    assert storage.list(user.id) == []
    assert db_session.query(DBFile).count() == 0


def test_upload_into_hidden_folder_only_notifies_admins(
    client, core_admin, superadmin, user, make_folder, upload, db_session
):
    private = make_folder(core_admin, "Private", admin_only=True)
    upload(core_admin, "payroll.xlsx", category_id=private["id"])

    rows = db_session.query(DBNotification).filter_by(type=NOTIFICATION_FILE_UPLOAD).all()
    assert sorted(r.user_id for r in rows) == sorted([core_admin.id, superadmin.id])


def test_upload_requires_auth(client):
    response = client.post("/files", json={"filename": "a.txt", "content": b64(b"x")})
    assert response.status_code == 401

# =============================================================================
# Search and Browse
# =============================================================================

def test_search_filters(client, core_admin, user, make_folder, upload):
    folder = make_folder(core_admin, "Docs")
    in_folder = upload(user, "Budget.xlsx", category_id=folder["id"])
    loose = upload(user, "budget-notes.txt")
    other = upload(user, "holiday.jpg")

    by_query = client.get("/files", params={"query": "BUDGET"}, headers=user.headers).json()
    assert {f["id"] for f in by_query} == {in_folder["id"], loose["id"]}

    by_folder = client.get("/files", params={"category_id": folder["id"]}, headers=user.headers).json()
    assert [f["id"] for f in by_folder] == [in_folder["id"]]

    uncategorized = client.get("/files", params={"uncategorized": True}, headers=user.headers).json()
    assert {f["id"] for f in uncategorized} == {loose["id"], other["id"]}


def test_search_treats_wildcards_literally(client, user, upload):
    upload(user, "plain.txt")
    percent = upload(user, "100%.txt")

    results = client.get("/files", params={"query": "%"}, headers=user.headers).json()
    assert [f["id"] for f in results] == [percent["id"]]


def test_files_in_admin_only_folders_are_hidden(client, core_admin, user, make_folder, upload):
    private = make_folder(core_admin, "Private", admin_only=True)
    nested = make_folder(core_admin, "Nested", parent_id=private["id"])
    secret = upload(core_admin, "secret.txt", category_id=nested["id"])
    public = upload(core_admin, "public.txt")

    listed = {f["id"] for f in client.get("/files", headers=user.headers).json()}
    assert listed == {public["id"]}
    assert client.get(f"/files/{secret['id']}", headers=user.headers).status_code == 404
    assert client.get(f"/files/{secret['id']}/download-url", headers=user.headers).status_code == 404

    admin_listed = {f["id"] for f in client.get("/files", headers=core_admin.headers).json()}
    assert admin_listed == {public["id"], secret["id"]}


def test_browse_root_and_folder(client, core_admin, user, make_folder, upload):
    folder = make_folder(core_admin, "Docs")
    make_folder(core_admin, "Hidden", admin_only=True)
    root_file = upload(user, "root.txt")
    folder_file = upload(user, "inside.txt", category_id=folder["id"])

    root = client.get("/files/browse", headers=user.headers).json()
    assert root["current_folder"] is None
    assert root["breadcrumbs"] == []
    assert [f["name"] for f in root["folders"]] == ["Docs"]
    assert [f["id"] for f in root["files"]] == [root_file["id"]]

    inside = client.get("/files/browse", params={"category_id": folder["id"]}, headers=user.headers).json()
    assert inside["current_folder"]["id"] == folder["id"]
    assert [b["name"] for b in inside["breadcrumbs"]] == ["Docs"]
    assert [f["id"] for f in inside["files"]] == [folder_file["id"]]

# =============================================================================
# Update
# =============================================================================

def test_uploader_can_rename_file(client, user, upload):
    body = upload(user, "draft.txt")

    response = client.patch(f"/files/{body['id']}", json={"name": "final.txt"}, headers=user.headers)

    assert response.status_code == 200
    assert response.json()["name"] == "final.txt"


def test_other_user_cannot_update_file(client, user, other_user, upload):
    body = upload(user, "mine.txt")

    response = client.patch(f"/files/{body['id']}", json={"name": "theirs.txt"}, headers=other_user.headers)

    assert response.status_code == 403


def test_admin_can_move_file_out_of_folder(client, core_admin, user, make_folder, upload):
    folder = make_folder(core_admin, "Docs")
    body = upload(user, "a.txt", category_id=folder["id"])

    response = client.patch(f"/files/{body['id']}", json={"category_id": None}, headers=core_admin.headers)

    assert response.status_code == 200
    assert response.json()["category_id"] is None

# =============================================================================
# Delete
# =============================================================================

def test_only_admins_delete_files(client, user, upload):
    body = upload(user, "mine.txt")

    response = client.delete(f"/files/{body['id']}", headers=user.headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin role required to delete files"


def test_admin_delete_removes_row_object_and_post_reference(
    client, core_admin, user, upload, storage, db_session
):
    body = upload(user, "doomed.txt")
    post = client.post(
        "/messages",
        json={"title": "See file", "content": "Look", "referenced_file_id": body["id"]},
        headers=user.headers,
    ).json()

    response = client.delete(f"/files/{body['id']}", headers=core_admin.headers)

    assert response.status_code == 204
    assert not storage.exists(body["file_path"])
    db_session.expire_all()
    assert db_session.query(DBFile).filter_by(id=body["id"]).first() is None
    assert db_session.query(DBPost).filter_by(id=post["id"]).one().referenced_file_id is None


def test_delete_survives_storage_failure(client, core_admin, user, upload, storage, db_session):
    body = upload(user, "stuck.txt")

    with patch.object(storage, "remove", side_effect=StorageError("disk unavailable")) as remove:
        response = client.delete(f"/files/{body['id']}", headers=core_admin.headers)

    remove.assert_called_once_with([body["file_path"]])

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.query(DBFile).filter_by(id=body["id"]).first() is None


def test_delete_missing_file_is_404(client, core_admin):
    assert client.delete("/files/nope", headers=core_admin.headers).status_code == 404

# =============================================================================
# Signed Downloads
# =============================================================================

def test_signed_url_serves_object(client, user, upload):
    body = upload(user, "hello.txt", data=b"hello world")

    signed = client.get(f"/files/{body['id']}/download-url", headers=user.headers).json()
    assert signed["name"] == "hello.txt"
    assert signed["expires_in"] == settings.signed_url_expire_seconds

    # No bearer header: the token in the URL is the credential
    response = client.get(signed["url"])

    assert response.status_code == 200
    assert response.content == b"hello world"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["cache-control"] == "private, no-store"


def test_storage_rejects_foreign_token(client, user, upload):
    body = upload(user, "hello.txt")
    forged = jwt.encode(
        {
            "typ": SIGNED_URL_PURPOSE,
            "bucket": "files",
            "path": body["file_path"],
            "exp": datetime.utcnow() + timedelta(minutes=1),
        },
        "some-other-secret",
        algorithm=JWT_ALGORITHM,
    )

    response = client.get(f"/storage/files/{body['file_path']}", params={"token": forged})

    assert response.status_code == 403


def test_storage_rejects_token_for_other_object(client, user, upload):
    first = upload(user, "one.txt")
    second = upload(user, "two.txt")
    signed = client.get(f"/files/{first['id']}/download-url", headers=user.headers).json()
    token = signed["url"].split("token=", 1)[1]

    response = client.get(f"/storage/files/{second['file_path']}", params={"token": token})

    assert response.status_code == 403


def test_download_redirects_to_signed_url(client, user, upload):
    body = upload(user, "hello.txt")

    response = client.get(f"/files/{body['id']}/download", headers=user.headers, follow_redirects=False)

    assert response.status_code == 307
    assert "/storage/files/" in response.headers["location"]
    assert "token=" in response.headers["location"]


def test_preview_reports_kind(client, user, upload):
    image = upload(user, "pic.png", data=b"\x89PNG fake")
    archive = upload(user, "bundle.zip", data=b"PK fake")

    image_preview = client.get(f"/files/{image['id']}/preview", headers=user.headers).json()
    assert image_preview["kind"] == "image"
    assert image_preview["file_type"] == "image/png"
    assert "token=" in image_preview["url"]

    archive_preview = client.get(f"/files/{archive['id']}/preview", headers=user.headers).json()
    assert archive_preview["kind"] == "none"
