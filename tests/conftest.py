"""Pytest fixtures for FastAPI testing.

Loads `.env.test` before any application module reads settings, builds a
clean SQLite schema for the session and provides an `AsyncClient` bound to
the app plus factories for users and tokens.
"""
import pathlib
import uuid

import pytest
from dotenv import load_dotenv

ROOT = pathlib.Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=str(ROOT / ".env.test"), override=True)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def prepare_database():
    """Create clean schema for the test session."""
    from prairiemed.core.database import engine, Base

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(prepare_database):
    """Yield a SQLAlchemy session for direct DB access in tests."""
    from prairiemed.core.database import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def auth_config():
    from prairiemed.core.config import AuthConfig

    return AuthConfig.from_settings()


@pytest.fixture
def auth_service(auth_config):
    from prairiemed.services.auth_service import AuthService

    return AuthService(auth_config)


@pytest.fixture
def make_user(db_session):
    """Factory: create a user with the given password (hashed unless legacy=True) and roles."""
    from sqlalchemy import select
    from prairiemed.core.security import hash_password
    from prairiemed.models.user import Role, User

    def _make(
        password="Secret-pass1",
        roles=(),
        legacy=False,
        is_active=True,
        email=None,
        organization_id=None,
        facility_id=None,
        locale="en",
    ):
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=password if legacy else hash_password(password),
            is_active=is_active,
            organization_id=organization_id,
            facility_id=facility_id,
            first_name="Test",
            last_name="User",
            locale=locale,
        )
        for name in roles:
            role = db_session.execute(
                select(Role).where(Role.name == name.lower())
            ).scalar_one_or_none()
            if role is None:
                role = Role(name=name)
                db_session.add(role)
            user.roles.append(role)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def app(prepare_database):
    from prairiemed.main import create_app

    return create_app()


@pytest.fixture
async def async_client(app):
    """Provide an httpx AsyncClient configured with the FastAPI app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
