import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models_sqlalchemy as models
from api_endpoints import app, get_db
from service_results import CallerContext

# ---------- TEST FIXTURES ----------

# Use in-memory SQLite for test isolation
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine):
    """A new DB session for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    Session = sessionmaker(bind=connection)
    session = Session()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def committing_session():
    """A session on its own fresh database whose commits and rollbacks are real."""
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    models.Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


# ---------- MOCK EXTERNAL GEOCODER ----------

class OfflineGeocoder:
    def search(self, query):
        return []


@pytest.fixture(autouse=True)
def no_live_geocoder(monkeypatch):
    # Destination search must never reach the real geocoder from tests
    monkeypatch.setattr("destinations.NominatimGeocoder", lambda *a, **k: OfflineGeocoder())


# ---------- DOMAIN HELPERS ----------

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(is_admin=False, email=None):
        counter["n"] += 1
        user = models.User(
            first_name="Test",
            last_name=f"User{counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash="x",
            is_admin=is_admin,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return CallerContext(user_id=user.id, is_admin=is_admin)

    return _make_user
