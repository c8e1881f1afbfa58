import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from visitrack.api import auth as auth_api
from visitrack.config import settings
from visitrack.core.security import create_access_token, get_password_hash
from visitrack.database import Base, create_tables, get_db
from visitrack.main import app
from visitrack.models import User
from visitrack.services.active_users import ActiveUserStore

API_KEY = "test-api-key"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "API_SECRET_TOKEN", API_KEY)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.active_users = ActiveUserStore()
    auth_api.limiter.reset()

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db):
    user = User(
        username="admin",
        email="admin@example.com",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        is_active=True,
        is_superuser=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def api_headers():
    return {"Authorization": f"ApiKey {API_KEY}"}


@pytest.fixture
def auth_headers(admin_user):
    token = create_access_token({"sub": admin_user.username})
    return {"Authorization": f"Bearer {token}"}
