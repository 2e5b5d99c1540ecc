"""Pytest fixtures for shopcore tests."""

import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal

# srodowisko musi byc ustawione zanim zaimportujemy cokolwiek z shopcore
_TMP = tempfile.mkdtemp(prefix="shopcore-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'app.db')}"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["RESEND_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shopcore.api import deps
from shopcore.data.database import Base, get_db
from shopcore.data.models.product import ProductModel
from shopcore.domain.errors import ValidationError
from shopcore.main import app
from shopcore.services.notification_service import NotificationService
from shopcore.services.payment_gateway import PaymentGateway, PaymentIntentInfo, RefundInfo
from shopcore.utils import settings

import shopcore.data.models  # noqa: F401

STAFF_TOKEN = "staff-secret-token"
WEBHOOK_SECRET = "whsec_test_secret"


class FakeLockService:
    """In-memory odpowiednik LockService (SET NX + compare-and-delete)."""

    def __init__(self):
        self.locks = {}
        self.released = []

    def acquire_checkout_lock(self, session_id, token, ttl):
        if session_id in self.locks:
            return False
        self.locks[session_id] = token
        return True

    def release_checkout_lock(self, session_id, token):
        if self.locks.get(session_id) == token:
            del self.locks[session_id]
            self.released.append(session_id)


class FakeGateway(PaymentGateway):
    """Stripe bez sieci - weryfikacja podpisu webhooka zostaje prawdziwa."""

    def __init__(self):
        super().__init__(api_key="sk_test", webhook_secret=WEBHOOK_SECRET, currency="nok")
        self.intents = {}
        self.refunds = []
        self.retrieve_calls = 0

    def add_intent(self, intent_id, amount, status="succeeded", metadata=None):
        self.intents[intent_id] = PaymentIntentInfo(
            id=intent_id, status=status, amount=Decimal(str(amount)), currency="nok", metadata=metadata or {}
        )

    def retrieve_payment_intent(self, payment_intent_id):
        self.retrieve_calls += 1
        if payment_intent_id not in self.intents:
            raise ValidationError(f"No such payment_intent: {payment_intent_id}")
        return self.intents[payment_intent_id]

    def create_payment_intent(self, amount, metadata):
        intent_id = f"pi_created_{len(self.intents) + 1}"
        info = PaymentIntentInfo(
            id=intent_id,
            status="requires_payment_method",
            amount=Decimal(str(amount)),
            currency=self.currency,
            client_secret=f"{intent_id}_secret",
        )
        self.intents[intent_id] = info
        return info

    def create_refund(self, payment_intent_id, amount=None, reason=None):
        refund = RefundInfo(
            id=f"re_{len(self.refunds) + 1}",
            amount=Decimal(str(amount)),
            currency=self.currency,
            status="succeeded",
            reason=reason or "requested_by_customer",
            created=datetime.now(timezone.utc),
        )
        self.refunds.append((payment_intent_id, refund))
        return refund


class RecordingNotifier(NotificationService):
    def __init__(self):
        super().__init__(admin_email="admin@example.com")
        self.sent = []

    def _dispatch(self, to, subject, text):
        self.sent.append((to, subject))

    def subjects(self):
        return [subject for _, subject in self.sent]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=True, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_product(db):
    def _make(price="1000.00", stock=5, active=True, name=None, sku="SKU-1"):
        product = ProductModel(
            sku=sku,
            name=name or {"en": "Test product", "no": "Testprodukt"},
            price=Decimal(price),
            stock=stock,
            is_active=active,
            sales_count=0,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, lock_service, gateway, notifier, monkeypatch):
    """TestClient z podmienionymi zaleznosciami zewnetrznymi."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(settings, "STAFF_API_TOKENS", f"alice:{STAFF_TOKEN}")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {STAFF_TOKEN}"}


@pytest.fixture
def checkout_payload():
    def _payload(session_id, **extra):
        payload = {
            "sessionId": session_id,
            "customer": {"name": "Ola Nordmann", "email": "Ola@Example.com", "phone": "+4712345678"},
            "shippingAddress": {
                "street": "Karl Johans gate 1",
                "city": "Oslo",
                "postalCode": "0154",
                "country": "Norway",
            },
        }
        payload.update(extra)
        return payload

    return _payload
