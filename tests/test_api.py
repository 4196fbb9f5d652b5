"""API endpoint tests."""

import uuid
from pathlib import Path

import pytest

from app.core.config import get_settings
from app.core.errors import DuplicateUsername, StorageError
from app.core.storage_utils import LocalBlobSink, get_blob_sink
from app.main import app
from app.repositories.user_repo import UserRepository
from app.schemas.user import Registration
from app.services.user_service import UserService

settings = get_settings()
BLOB_DIR = Path(settings.STORAGE_DIR)


def _register(client, username, role="normal", files=None, **extra):
    data = {"username": username, "password": "pw123", "email": f"{username}@example.com"}
    data["role"] = role
    data.update(extra)
    return client.post("/users", data=data, files=files)


def _create_upload(client, **overrides):
    data = {"name": "Sunset", "category": "Nature", "uploader": "bob"}
    data.update(overrides)
    files = {"file": ("sunset.png", b"\x89PNG fake", "image/png")}
    return client.post("/uploads", data=data, files=files)


def _portfolio(count, size=5):
    return [("portfolio", (f"{i}.png", b"x" * size, "image/png")) for i in range(count)]


# -------- Users --------


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_route(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"message": "Route not found"}


def test_register_normal_user(client):
    response = _register(client, "alice")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Registration successful"
    user = body["user"]
    assert user["username"] == "alice"
    assert user["role"] == "normal"
    assert user["approved"] is True
    assert user["likedImages"] == []
    assert "password" not in user
    assert "passwordHash" not in user


def test_register_requires_username_and_password(client):
    response = client.post("/users", data={"username": "alice"})
    assert response.status_code == 400
    assert response.json() == {"message": "Username and password are required"}


def test_register_duplicate_username(client):
    assert _register(client, "alice").status_code == 201

    response = _register(client, "alice")
    assert response.status_code == 400
    assert response.json()["message"] == "Username already exists"


def test_register_cannot_self_assign_admin(client):
    response = _register(client, "mallory", role="admin")
    assert response.status_code == 400

    assert client.get("/users/username/mallory").status_code == 404


def test_artist_registration_and_approval_end_to_end(client, notifier, admin):
    response = _register(client, "bob", role="artist", files=_portfolio(2))

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Artist registration successful, awaiting admin approval"
    bob = body["user"]
    assert bob["approved"] is False
    assert bob["reviewedAt"] is None
    assert len(bob["portfolio"]) == 2
    for item in bob["portfolio"]:
        assert item["path"].startswith("/files/")
        assert client.get(item["path"]).status_code == 200

    response = client.put(
        f"/users/{bob['id']}/approve",
        json={"approved": True, "adminId": str(admin.id)},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Artist approved"
    assert response.json()["user"]["approved"] is True

    fetched = client.get("/users/username/bob").json()
    assert fetched["approved"] is True
    assert notifier.calls == [("bob@example.com", "bob", True)]


def test_reject_message(client, admin, artist):
    response = client.put(
        f"/users/{artist.id}/approve",
        json={"approved": False, "adminId": str(admin.id)},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Artist rejected"
    assert response.json()["user"]["approved"] is False


def test_portfolio_ignored_for_normal_users(client):
    response = _register(client, "alice", files=_portfolio(1))

    assert response.status_code == 201
    assert response.json()["user"]["portfolio"] == []
    assert list(BLOB_DIR.iterdir()) == []


def test_oversized_portfolio_on_normal_user_is_not_read(client):
    """Files a non-artist sends are dropped unread, so their size never matters."""
    files = _portfolio(1, size=settings.MAX_UPLOAD_BYTES + 1)
    response = _register(client, "alice", files=files)

    assert response.status_code == 201
    assert response.json()["user"]["portfolio"] == []


def test_too_many_portfolio_files(client):
    files = _portfolio(settings.MAX_PORTFOLIO_FILES + 1)
    response = _register(client, "bob", role="artist", files=files)

    assert response.status_code == 400
    assert "portfolio files" in response.json()["message"]
    assert list(BLOB_DIR.iterdir()) == []
    assert client.get("/users/username/bob").status_code == 404


def test_failed_registration_leaves_no_blobs(session, user_repo):
    """A username lost to a concurrent registration removes the written files."""
    user_repo.create_user(session, "bob", "", "pw", "normal")
    repo = UserRepository()
    repo.get_by_username = lambda *args: None
    service = UserService(repo)
    sink = LocalBlobSink(BLOB_DIR, "/files")

    with pytest.raises(DuplicateUsername):
        service.register(
            session,
            Registration(username="bob", password="pw", role="artist"),
            [("one.png", b"1"), ("two.png", b"2")],
            sink,
        )

    assert list(BLOB_DIR.iterdir()) == []


def test_approve_requires_approved_field(client, admin, artist):
    response = client.put(f"/users/{artist.id}/approve", json={"adminId": str(admin.id)})
    assert response.status_code == 400
    assert response.json()["message"] == "Approved status is required"


def test_approve_by_non_admin_forbidden(client, notifier, artist):
    carol = _register(client, "carol").json()["user"]

    response = client.put(
        f"/users/{artist.id}/approve",
        json={"approved": True, "adminId": carol["id"]},
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"
    assert client.get("/users/username/bob").json()["approved"] is False
    assert notifier.calls == []


@pytest.mark.parametrize("admin_id", ["not-a-uuid", "", "12345"])
def test_approve_with_malformed_admin_id_forbidden(client, notifier, artist, admin_id):
    response = client.put(
        f"/users/{artist.id}/approve",
        json={"approved": True, "adminId": admin_id},
    )
    assert response.status_code == 403
    assert notifier.calls == []


def test_approve_unknown_target(client, admin):
    response = client.put(
        f"/users/{uuid.uuid4()}/approve",
        json={"approved": True, "adminId": str(admin.id)},
    )
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_approve_non_artist_target(client, admin):
    carol = _register(client, "carol").json()["user"]

    response = client.put(
        f"/users/{carol['id']}/approve",
        json={"approved": False, "adminId": str(admin.id)},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Only artist accounts can be approved/rejected"
    assert client.get("/users/username/carol").json()["approved"] is True


def test_login(client):
    _register(client, "alice")

    response = client.post("/users/login", json={"username": "alice", "password": "pw123"})
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"
    assert response.json()["user"]["username"] == "alice"


def test_login_wrong_password(client):
    _register(client, "alice")

    response = client.post("/users/login", json={"username": "alice", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}


def test_login_missing_fields(client):
    response = client.post("/users/login", json={"username": "alice"})
    assert response.status_code == 400


def test_list_users_strips_credentials(client, admin):
    _register(client, "alice")

    users = client.get("/users").json()
    assert [u["username"] for u in users] == ["root", "alice"]
    assert all("passwordHash" not in u and "password" not in u for u in users)


def test_get_unknown_username(client):
    response = client.get("/users/username/ghost")
    assert response.status_code == 404
    assert response.json() == {"message": "User not found"}


def test_update_liked_images(client):
    alice = _register(client, "alice").json()["user"]

    response = client.put(f"/users/{alice['id']}", json={"likedImages": ["a", "b", "a"]})
    assert response.status_code == 200
    assert response.json()["message"] == "User updated"
    assert response.json()["user"]["likedImages"] == ["a", "b"]

    missing = client.put(f"/users/{uuid.uuid4()}", json={"likedImages": []})
    assert missing.status_code == 404


def test_delete_user_requires_admin(client, admin, artist):
    response = client.request("DELETE", f"/users/{artist.id}", json={})
    assert response.status_code == 403

    response = client.request("DELETE", f"/users/{artist.id}", json={"adminId": "garbage"})
    assert response.status_code == 403

    response = client.request("DELETE", f"/users/{artist.id}", json={"adminId": str(admin.id)})
    assert response.status_code == 200
    assert response.json()["message"] == "User bob deleted successfully"
    assert response.json()["user"]["username"] == "bob"

    response = client.request("DELETE", f"/users/{artist.id}", json={"adminId": str(admin.id)})
    assert response.status_code == 404


# -------- Uploads --------


def test_upload_like_toggle_end_to_end(client):
    response = _create_upload(client)
    assert response.status_code == 201
    assert response.json()["message"] == "Upload successful"
    upload = response.json()["upload"]
    assert upload["likeCount"] == 0
    assert upload["downloads"] == 0
    assert upload["storagePath"].startswith("/files/")

    liked = client.put(f"/uploads/{upload['id']}/like", json={"userName": "carol"})
    assert liked.status_code == 200
    assert liked.json()["message"] == "Like updated"
    assert liked.json()["upload"]["likeCount"] == 1
    assert liked.json()["upload"]["likedBy"] == ["carol"]

    unliked = client.put(f"/uploads/{upload['id']}/like", json={"userName": "carol"})
    assert unliked.json()["upload"]["likeCount"] == 0
    assert unliked.json()["upload"]["likedBy"] == []


def test_stored_file_is_retrievable(client):
    upload = _create_upload(client).json()["upload"]

    response = client.get(upload["storagePath"])
    assert response.status_code == 200
    assert response.content == b"\x89PNG fake"


@pytest.mark.parametrize("missing", ["name", "category", "uploader"])
def test_create_upload_missing_field(client, missing):
    response = _create_upload(client, **{missing: ""})
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required fields"
    assert client.get("/uploads").json() == []


def test_create_upload_missing_file(client):
    response = client.post(
        "/uploads", data={"name": "Sunset", "category": "Nature", "uploader": "bob"}
    )
    assert response.status_code == 400


def test_create_upload_too_large(client):
    files = {"file": ("big.png", b"x" * (settings.MAX_UPLOAD_BYTES + 1), "image/png")}
    response = client.post(
        "/uploads",
        data={"name": "Big", "category": "Nature", "uploader": "bob"},
        files=files,
    )
    assert response.status_code == 400
    assert client.get("/uploads").json() == []


def test_blob_failure_creates_no_upload(client):
    class BrokenSink:
        def put(self, original_filename, data):
            raise StorageError()

        def delete(self, path):
            pass

    app.dependency_overrides[get_blob_sink] = lambda: BrokenSink()

    response = _create_upload(client)
    assert response.status_code == 500
    assert response.json() == {"message": "Could not store uploaded file"}
    assert client.get("/uploads").json() == []


def test_like_requires_username(client):
    upload = _create_upload(client).json()["upload"]
    response = client.put(f"/uploads/{upload['id']}/like", json={})
    assert response.status_code == 400
    assert response.json() == {"message": "userName is required"}


def test_like_unknown_upload(client):
    response = client.put(f"/uploads/{uuid.uuid4()}/like", json={"userName": "carol"})
    assert response.status_code == 404


def test_download_counter(client):
    upload = _create_upload(client).json()["upload"]

    client.put(f"/uploads/{upload['id']}/download")
    response = client.put(f"/uploads/{upload['id']}/download")

    assert response.status_code == 200
    assert response.json()["message"] == "Download updated"
    assert response.json()["upload"]["downloads"] == 2
    assert client.put(f"/uploads/{uuid.uuid4()}/download").status_code == 404


def test_delete_upload(client):
    upload = _create_upload(client).json()["upload"]

    response = client.delete(f"/uploads/{upload['id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Upload deleted successfully"}
    assert client.get("/uploads").json() == []
    assert client.get(upload["storagePath"]).status_code == 404


def test_delete_unknown_upload_changes_nothing(client):
    upload = _create_upload(client).json()["upload"]

    response = client.delete(f"/uploads/{uuid.uuid4()}")
    assert response.status_code == 404
    assert [u["id"] for u in client.get("/uploads").json()] == [upload["id"]]
