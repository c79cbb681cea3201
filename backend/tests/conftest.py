"""Shared fixtures: in-memory database, test client and authenticated users."""

import os
import tempfile

import pytest

# Configure the app BEFORE importing it; settings are read at import time
_TMP_DIR = tempfile.mkdtemp(prefix="simplehire-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["LOGIN_RATE_LIMIT_MAX"] = "1000"
os.environ["PUBLIC_CERT_RATE_LIMIT_MAX"] = "1000"
os.environ["AUDIT_LOG_FILE"] = os.path.join(_TMP_DIR, "audit.log")
os.environ["SECURITY_LOG_FILE"] = os.path.join(_TMP_DIR, "security.log")
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["APP_URL"] = "https://simplehire.test"
for key in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "AWS_ACCESS_KEY_ID",
            "AWS_SECRET_ACCESS_KEY", "AWS_S3_BUCKET", "GOOGLE_CLIENT_ID", "SENDGRID_API_KEY"):
    os.environ[key] = ""

from simplehire.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from simplehire.database import get_db
from simplehire.middleware.security import login_rate_limiter, public_certificate_rate_limiter
from simplehire.models.database import Base, UserDataDB
from simplehire.services.auth import auth_service
from simplehire.services.notification_service import notification_service


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Candidate123"


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    login_rate_limiter.reset()
    public_certificate_rate_limiter.reset()
    notification_service.clear()
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def make_user(db, email="candidate@example.com", name="Jane Candidate", password=PASSWORD):
    return auth_service.create_user(db, email=email, name=name, password=password)


def auth_header(user):
    return {"Authorization": f"Bearer {auth_service.create_access_token(user)}"}


def grant_products(db, user, *product_ids):
    user_data = db.query(UserDataDB).filter(UserDataDB.user_id == user.id).one()
    user_data.purchased_products = list(product_ids)
    db.commit()
    return user_data


@pytest.fixture
def user(db_session):
    """A candidate with a password login and an empty verification record."""
    return make_user(db_session)


@pytest.fixture
def other_user(db_session):
    return make_user(db_session, email="other@example.com", name="Other Person")


@pytest.fixture
def headers(user):
    return auth_header(user)
