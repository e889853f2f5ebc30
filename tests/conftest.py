import asyncio
import os
import tempfile
from datetime import date

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="fixhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PAYMONGO_WEBHOOK_SECRET"] = "whsk_test_secret"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("RESEND_API_KEY", None)

from fastapi.testclient import TestClient  # noqa: E402

from fixhub.database import Base, SessionLocal, engine  # noqa: E402
from fixhub.domain.payments.gateway import STATUS_PENDING, CheckoutSession  # noqa: E402
from fixhub.domain.payments.router import get_payment_gateway  # noqa: E402
from fixhub.errors import PaymentGatewayError  # noqa: E402
from fixhub.main import app  # noqa: E402
from fixhub.models import (  # noqa: E402
    ApprovalState,
    ContractorStatus,
    Quote,
    Service,
    ServiceStatus,
    User,
    UserRole,
)
from fixhub.security_utils import hash_password, issue_session_token  # noqa: E402

PASSWORD = "secret123"
_PASSWORD_HASH = hash_password(PASSWORD)


def run(coro):
    """Drive an async workflow call from a sync test"""
    return asyncio.run(coro)


class FakeGateway:
    """In-memory stand-in for PayMongoGateway"""

    def __init__(self):
        self.created = []
        self.status = STATUS_PENDING
        self.fail_with = None
        self.session_override = None

    async def create_checkout(self, amount, currency, description, metadata, line_item_name):
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append({"amount": amount, "currency": currency, "metadata": metadata})
        if self.session_override is not None:
            return self.session_override
        n = len(self.created)
        return CheckoutSession(f"cs_test_{n}", f"https://checkout.test/{n}")

    async def get_status(self, external_id):
        if self.fail_with is not None:
            raise self.fail_with
        return self.status


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway(gateway):
    gateway.fail_with = PaymentGatewayError("Payment gateway timed out", retryable=True)
    return gateway


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


_counter = {"n": 0}


def make_user(db, role=UserRole.OWNER, **overrides) -> User:
    _counter["n"] += 1
    n = _counter["n"]
    fields = {
        "email": f"{role.value}{n}@example.com",
        "first_name": role.value.capitalize(),
        "last_name": f"User{n}",
        "password_hash": _PASSWORD_HASH,
        "role": role,
        "verified": True,
        "admin_verified": True,
        "contractor_status": ContractorStatus.ACTIVE if role == UserRole.CONTRACTOR else None,
    }
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_service(db, owner, **overrides) -> Service:
    fields = {
        "owner_id": owner.id,
        "name": "Leaking kitchen sink",
        "categories": ["plumbing"],
        "description": "Water under the sink",
        "amount": 50.0,
        "currency": "PHP",
        "available_from_date": date(2026, 11, 2),
        "available_to_date": date(2026, 11, 6),
        "available_from_time": "09:00",
        "available_to_time": "17:00",
        "status": ServiceStatus.PENDING,
        "paid": False,
    }
    fields.update(overrides)
    service = Service(**fields)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_quote(db, author, service, **overrides) -> Quote:
    fields = {
        "author_id": author.id,
        "service_id": service.id,
        "description": "Replace trap and seal",
        "estimated_cost": 100.0,
        "currency": service.currency,
        "approval_state": ApprovalState.PENDING,
    }
    fields.update(overrides)
    quote = Quote(**fields)
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote


def auth_headers(db, user) -> dict:
    """Sign the user in and return the bearer header"""
    token, jti = issue_session_token(user.id, user.role.value)
    user.session_token_id = jti
    db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(db):
    return make_user(db, UserRole.OWNER)


@pytest.fixture
def contractor(db):
    return make_user(db, UserRole.CONTRACTOR)


@pytest.fixture
def other_contractor(db):
    return make_user(db, UserRole.CONTRACTOR)


@pytest.fixture
def admin(db):
    return make_user(db, UserRole.ADMIN)


@pytest.fixture
def tenant(db):
    return make_user(db, UserRole.TENANT)


@pytest.fixture
def service(db, owner):
    return make_service(db, owner)
