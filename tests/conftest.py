from types import SimpleNamespace
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from lapcms.core.config import Settings
from lapcms.core.errors import ExternalServiceError
from lapcms.core.security import get_password_hash
from lapcms.deps import get_storage
from lapcms.main import create_app
from lapcms.models.site import Site
from lapcms.models.user import User, UserRole
from lapcms.services.auth import AuthService


class FakeStorage:
    """In-memory stand-in for the object store."""

    def __init__(self):
        self.objects = {}
        self.fail = False

    def upload_file(self, file_content, file_name, content_type, folder="images"):
        if self.fail:
            raise ExternalServiceError("Failed to upload image", code="UPLOAD_FAILED")
        key = f"{folder}/{len(self.objects) + 1}-{file_name}"
        self.objects[key] = (file_content, content_type)
        return key

    def get_public_url(self, key):
        return f"http://storage.test/lap-cms-uploads/{key}"


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        ENVIRONMENT="test",
        SECRET_KEY="test-secret",
        BCRYPT_ROUNDS=4,
        STORAGE_INIT_ON_STARTUP=False,
        SDK_TEST_API_KEY="sdk-test-key",
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def app(settings, storage):
    app = create_app(settings)
    app.dependency_overrides[get_storage] = lambda: storage
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which creates the tables
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db(app, client):
    return app.state.db


@pytest.fixture
def make_user(db, settings):
    """
    Creates a user (and by default a site) directly in the database.
    Returns a plain namespace so nothing is bound to a closed session.
    """
    def _make_user(
        email: str = "user@example.com",
        password: str = "password",
        role: UserRole = UserRole.USER,
        name: str = "Test User",
        with_site: bool = True,
        site_domain: Optional[str] = None,
        site_active: bool = True,
    ):
        with db.session() as session:
            user = User(
                email=email,
                name=name,
                role=role,
                password_hash=get_password_hash(password, rounds=settings.BCRYPT_ROUNDS),
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            site = None
            if with_site:
                site = Site(user_id=user.id, name=f"{name} Site", domain=site_domain, is_active=site_active)
                session.add(site)
                session.commit()
                session.refresh(site)

            return SimpleNamespace(
                id=user.id,
                email=user.email,
                password=password,
                role=role,
                site_id=site.id if site else None,
                api_key=site.api_key if site else None,
            )

    return _make_user


@pytest.fixture
def auth_headers(db, settings):
    """Bearer headers for a fresh login session of `user`."""
    def _auth_headers(user):
        with db.session() as session:
            service = AuthService(session, settings)
            entry = service.open_session(user.id, "testclient", None)
            token = service.create_access_token(user.id, user.email, entry.id)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role=UserRole.ADMIN, name="Admin User")
