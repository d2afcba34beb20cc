import os

# Configure the modules before they are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_HOST"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SEED_SAMPLE_DATA"] = "1"
os.environ["RESEND_API_KEY"] = "re_test_key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import auth
import auth_service
import email_service
import main
import models
from cart import guest_cart_store
from database import Base, get_db, init_restaurant_data

DEMO_CHECKOUT = {
    "customer_name": "Jane Doe",
    "customer_email": "jane@example.com",
    "customer_phone": "+1 212 555 0100",
    "address": "42 Olive Street",
    "city": "New York",
    "zip_code": "10001",
    "delivery_method": "delivery",
    "payment_method": "demo",
    "card_number": "4242 4242 4242 4242",
    "expiry_date": "12/28",
    "cvv": "123",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


@pytest.fixture()
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    init_restaurant_data(session, seed_menu=True)
    yield session
    session.close()


@pytest.fixture(autouse=True)
def override_db(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    auth_service.app.dependency_overrides[get_db] = override_get_db
    yield
    main.app.dependency_overrides.clear()
    auth_service.app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_guest_carts():
    guest_cart_store._local.clear()
    yield
    guest_cart_store._local.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Every Resend call is recorded here instead of leaving the process."""
    sent = []

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(200, {"id": f"email_{len(sent)}"})

    monkeypatch.setattr(email_service.requests, "post", fake_post)
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test_key")
    return sent


@pytest.fixture()
def api_client(db):
    return TestClient(main.app)


@pytest.fixture()
def auth_client(db):
    return TestClient(auth_service.app)


def make_user(db, email, password="secret123", role="customer", is_verified=True, full_name=None):
    user = models.User(
        email=email,
        password=auth.get_password_hash(password),
        full_name=full_name,
        is_verified=is_verified,
    )
    user.role = models.UserRole(role=role)
    user.profile = models.Profile(full_name=full_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def bearer(user):
    return {"Authorization": f"Bearer {auth.create_user_token(user)}"}


@pytest.fixture()
def customer(db):
    return make_user(db, "customer@example.com", full_name="Casey Customer")


@pytest.fixture()
def admin(db):
    return make_user(db, "admin@example.com", role="admin", full_name="Alex Admin")


@pytest.fixture()
def customer_headers(customer):
    return bearer(customer)


@pytest.fixture()
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture()
def menu_item(db):
    return db.query(models.MenuItem).order_by(models.MenuItem.id).first()
