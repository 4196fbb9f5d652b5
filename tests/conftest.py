"""Pytest configuration and fixtures."""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

# Point the app at throwaway storage before anything under app/ is imported;
# settings and the engine are built at import time.
_TMP = Path(tempfile.mkdtemp(prefix="pinsync-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_DIR"] = str(_TMP / "blobs")
os.environ["MAX_UPLOAD_BYTES"] = str(64 * 1024)
os.environ.pop("SMTP_HOST", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.core.notifications import get_notifier  # noqa: E402
from app.database import create_db_and_tables, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.repositories.upload_repo import UploadRepository  # noqa: E402
from app.repositories.user_repo import UserRepository  # noqa: E402
from app.schemas.upload import UploadCreate  # noqa: E402

BLOB_DIR = Path(os.environ["STORAGE_DIR"])


class RecordingNotifier:
    """Notification sink double that remembers every decision."""

    def __init__(self, fail: bool = False):
        self.calls: list[tuple[str, str, bool]] = []
        self.fail = fail

    def notify_decision(self, email: str, username: str, approved: bool) -> None:
        self.calls.append((email, username, approved))
        if self.fail:
            raise RuntimeError("smtp down")


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the schema once; remove the temp dir at the end."""
    create_db_and_tables()
    yield
    engine.dispose()
    shutil.rmtree(_TMP, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_state():
    """Wipe every table and stored blob after each test."""
    yield
    with Session(engine) as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            session.exec(table.delete())
        session.commit()
    if BLOB_DIR.exists():
        for path in BLOB_DIR.iterdir():
            path.unlink()


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
def client(notifier):
    """Test client with the notification sink replaced by a recorder."""
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_repo():
    return UserRepository()


@pytest.fixture
def upload_repo():
    return UploadRepository()


@pytest.fixture
def admin(session, user_repo):
    """An admin provisioned the same way create_admin does it."""
    return user_repo.create_user(
        session, username="root", email="root@example.com", credential="rootpass", role="admin"
    )


@pytest.fixture
def artist(session, user_repo):
    return user_repo.create_user(
        session, username="bob", email="bob@example.com", credential="bobpass", role="artist"
    )


@pytest.fixture
def upload(session, upload_repo):
    return upload_repo.create(
        session,
        UploadCreate(name="Sunset", category="Nature", uploader="bob"),
        storage_path="/files/1700000000000-sunset.png",
        uploader="bob",
    )
