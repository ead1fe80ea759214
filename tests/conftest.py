"""
Shared test fixtures for all test modules.

Provides:
- Test environment setup (TESTING=true, secret key, throwaway storage root)
- db_engine / db_session: in-memory SQLite shared through a StaticPool
- storage: object storage bucket in a temporary directory
- client: TestClient with get_db and get_storage overridden
- user / other_user / core_admin / superadmin: registered profiles with auth headers
"""

import os
import tempfile

# =============================================================================
# Test Environment Configuration
# =============================================================================

# Must happen before anything imports filehub.config
os.environ['TESTING'] = 'true'
os.environ['FILEHUB_SECRET_KEY'] = os.environ.get('FILEHUB_SECRET_KEY', 'test-secret-key-for-testing')
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['FILEHUB_STORAGE_ROOT'] = tempfile.mkdtemp(prefix='filehub-test-')
os.environ['FILEHUB_PUBLIC_BASE_URL'] = 'http://testserver'

import base64
from dataclasses import dataclass
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from filehub.auth import create_access_token, hash_password
from filehub.config import settings
from filehub.constants import ROLE_CORE_ADMIN, ROLE_SUPERADMIN, ROLE_USER
from filehub.database import enable_sqlite_foreign_keys, get_db
from filehub.db_models import Base, DBProfile
from filehub.dependencies import get_storage
from filehub.main import app
from filehub.storage import LocalObjectStorage

TEST_PASSWORD = "correct-horse-battery"

# Hashing is slow; every fixture profile shares one hash
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory database with all tables, shared across sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """
    Session for arranging data and checking results directly.

    Call db_session.expire_all() before reading rows an API call changed.
    """
    session = session_factory()
    yield session
    session.close()

# =============================================================================
# Storage Fixture
# =============================================================================

@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(
        root=str(tmp_path / "storage"),
        bucket="files",
        secret_key=settings.secret_key,
        public_base_url="http://testserver",
    )

# =============================================================================
# API Client
# =============================================================================

@pytest.fixture
def client(session_factory, storage):
    """TestClient wired to the test database and storage bucket."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()

# =============================================================================
# Profile Fixtures
# =============================================================================

@dataclass
class Account:
    """A profile created for a test plus its bearer headers."""
    id: str
    email: str
    role: str
    headers: Dict[str, str]


def make_account(db: Session, email: str, role: str = ROLE_USER, full_name: str = None) -> Account:
    profile = DBProfile(
        email=email,
        hashed_password=_TEST_PASSWORD_HASH,
        full_name=full_name,
        role=role,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)

    token = create_access_token(data={"sub": profile.id})
    return Account(
        id=profile.id,
        email=profile.email,
        role=profile.role,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest.fixture
def account_factory(db_session):
    """account_factory(email, role=ROLE_USER) -> Account"""

    def _factory(email: str, role: str = ROLE_USER, full_name: str = None) -> Account:
        return make_account(db_session, email, role, full_name)

    return _factory


@pytest.fixture
def user(db_session) -> Account:
    return make_account(db_session, "alice@example.com", full_name="Alice")


@pytest.fixture
def other_user(db_session) -> Account:
    return make_account(db_session, "bob@example.com", full_name="Bob")


@pytest.fixture
def core_admin(db_session) -> Account:
    return make_account(db_session, "carol@example.com", ROLE_CORE_ADMIN, full_name="Carol")


@pytest.fixture
def superadmin(db_session) -> Account:
    return make_account(db_session, "dave@example.com", ROLE_SUPERADMIN, full_name="Dave")

# =============================================================================
# Helpers
# =============================================================================

def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def upload(client):
    """Upload helper: upload(account, filename, data=b"...", **fields) -> response JSON."""

    def _upload(account: Account, filename: str = "notes.txt", data: bytes = b"hello world", **fields):
        body = {"filename": filename, "content": b64(data)}
        body.update(fields)
        response = client.post("/files", json=body, headers=account.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _upload


@pytest.fixture
def make_folder(client):
    """Folder helper: make_folder(admin, name, parent_id=None, admin_only=False) -> response JSON."""

    def _make_folder(account: Account, name: str, parent_id: str = None, admin_only: bool = False):
        response = client.post(
            "/categories",
            json={"name": name, "parent_id": parent_id, "admin_only": admin_only},
            headers=account.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_folder
