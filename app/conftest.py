import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api_endpoints import app, get_db
import models_sqlalchemy as models

# ---------- TEST FIXTURES ----------

# Use in-memory SQLite for test isolation
TEST_DATABASE_URL = "sqlite:///:memory:"

@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database per test, shared by the TestClient worker threads."""
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

# ---------- ORM HELPERS ----------

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role="guest", name=None):
        counter["n"] += 1
        user = models.User(
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user

@pytest.fixture
def make_listing(db_session):
    def _make_listing(host, price_cents=100000, max_guests=4):
        listing = models.Listing(
            host_id=host.id,
            title="Lake House",
            description="Quiet house by the lake",
            address_line1="1 Shore Road",
            city="Udaipur",
            state="Rajasthan",
            country="India",
            latitude=24.58,
            longitude=73.71,
            price_per_night_cents=price_cents,
            max_guests=max_guests,
            bedrooms=2,
            bathrooms=1,
            amenities="wifi,kitchen",
        )
        db_session.add(listing)
        db_session.commit()
        return listing

    return _make_listing
