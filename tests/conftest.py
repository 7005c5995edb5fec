"""
Shared fixtures: in-memory SQLite database and fake external services.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobmail.core.auth_dependency import get_db
from jobmail.core.exceptions import MirrorError, PaymentGatewayError
from jobmail.core.integrations import get_payment_gateway, get_record_mirror
from jobmail.core.security import create_access_token, hash_password
from jobmail.db.base import Base
from jobmail.db.models.user import User
from jobmail.main import app
from jobmail.services.payment_gateway import PaymentGateway
from jobmail.services.payment_service import compute_signature
from jobmail.services.record_mirror import RecordMirror


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

GATEWAY_SECRET = "test_gateway_secret"


class FakeGateway(PaymentGateway):
    """In-memory order store standing in for Razorpay."""

    def __init__(self, secret: str = GATEWAY_SECRET):
        self._secret = secret
        self.orders = {}
        self.fetch_calls = 0
        self.fail_fetch = False

    @property
    def signing_secret(self) -> str:
        return self._secret

    def create_order(self, amount, currency, notes, receipt=None):
        order_id = f"order_{len(self.orders) + 1:06d}"
        order = {
            "id": order_id,
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
            "notes": {key: str(value) for key, value in notes.items()},
        }
        self.orders[order_id] = order
        return dict(order)

    def fetch_order(self, order_id):
        self.fetch_calls += 1
        if self.fail_fetch:
            raise PaymentGatewayError()
        return dict(self.orders[order_id])

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(order_id, payment_id, self._secret)


class RecordingMirror(RecordMirror):
    """Mirror that keeps records in a dict."""

    def __init__(self):
        self.records = {}
        self.calls = []

    def upsert(self, external_id, fields):
        self.calls.append(("upsert", external_id, dict(fields)))
        external_id = external_id or f"rec{len(self.records) + 1:04d}"
        self.records.setdefault(external_id, {}).update(fields)
        return external_id

    def update(self, external_id, fields):
        self.calls.append(("update", external_id, dict(fields)))
        self.records[external_id].update(fields)


class FailingMirror(RecordMirror):
    """Mirror whose every call fails."""

    def __init__(self):
        self.attempts = 0

    def upsert(self, external_id, fields):
        self.attempts += 1
        raise MirrorError("Airtable is down")

    def update(self, external_id, fields):
        self.attempts += 1
        raise MirrorError("Airtable is down")


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def make_user(db):
    """Factory creating users with a given credit balance."""
    def _make_user(email: str = "test@example.com", credits: int = 2) -> User:
        user = User(
            full_name="Test User",
            email=email,
            password_hash=hash_password("testpass123"),
            credits=credits,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user):
    """A user with the default two free credits."""
    return make_user()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mirror():
    return RecordingMirror()


@pytest.fixture
def failing_mirror():
    return FailingMirror()


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db, gateway, mirror):
    """TestClient wired to the test database and fake external services."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_record_mirror] = lambda: mirror
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_user):
    """Bearer header for test_user."""
    token = create_access_token({"sub": test_user.email})
    return {"Authorization": f"Bearer {token}"}
