"""Pytest configuration and fixtures."""

import os

# Settings are cached on first import, so configure them before anything loads
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("APP_ENCRYPTION_KEY", "test-encryption-key-0123456789abcdef")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from erasure_api.auth.api_key import compute_key_digest, compute_key_prefix
from erasure_api.db.base import Base
from erasure_api.db.session import get_db
from erasure_api.main import app
from erasure_api.models import APIKey, Connector, ConnectorToken, Org, Partner, User
from erasure_api.utils.common import hash_token

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")

TEST_API_KEY = "test-api-key-0001"
OTHER_API_KEY = "other-api-key-0002"
TEST_CONNECTOR_TOKEN = "test-connector-token"
ENCRYPTION_KEY = os.environ["APP_ENCRYPTION_KEY"]
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


@pytest.fixture(scope="function")
def db():
    """
    Create a test database session.

    Point TEST_DATABASE_URL at PostgreSQL to exercise the ON CONFLICT upserts
    against the production dialect.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def _add_api_key(db: Session, org: Org, raw_key: str, user_id=None) -> APIKey:
    api_key = APIKey(
        org_id=org.id,
        user_id=user_id,
        prefix=compute_key_prefix(raw_key),
        digest=compute_key_digest(raw_key),
        label="test-key",
        is_active=True,
    )
    db.add(api_key)
    db.commit()
    return api_key


@pytest.fixture
def org(db: Session) -> Org:
    """Create the tenant most tests act as."""
    org = Org(id="org_1", name="Test Org", status="active")
    db.add(org)
    db.flush()
    db.add(User(id="user_1", org_id=org.id, email="owner@test.example", role="OWNER"))
    db.commit()
    return org


@pytest.fixture
def other_org(db: Session) -> Org:
    """A second tenant for isolation checks."""
    org = Org(id="org_2", name="Other Org", status="active")
    db.add(org)
    db.commit()
    _add_api_key(db, org, OTHER_API_KEY)
    return org


@pytest.fixture
def api_key(db: Session, org: Org) -> APIKey:
    """API key owned by the test org's owner."""
    return _add_api_key(db, org, TEST_API_KEY, user_id="user_1")


@pytest.fixture
def auth_headers(api_key: APIKey) -> dict:
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def partner(db: Session, org: Org) -> Partner:
    partner = Partner(id="partner_1", org_id=org.id, name="Ad Network", enabled=True)
    db.add(partner)
    db.commit()
    return partner


@pytest.fixture
def connector(db: Session, org: Org) -> Connector:
    connector = Connector(id="C1", org_id=org.id, name="warehouse-agent")
    db.add(connector)
    db.flush()
    db.add(
        ConnectorToken(
            connector_id=connector.id,
            org_id=org.id,
            token_hash=hash_token(TEST_CONNECTOR_TOKEN),
        )
    )
    db.commit()
    return connector


@pytest.fixture
def client(db: Session):
    """TestClient bound to the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
