"""Pytest fixtures for storefront tests."""

import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read at import time; configure them before the app loads.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront.core.errors import ExternalServiceError
from storefront.core.payment_gateway import (
    GatewayOrder,
    PaymentGateway,
    compute_signature,
    get_payment_gateway,
)
from storefront.database import get_session
from storefront.main import app
from storefront.models.product import Product
from storefront.models.user import User

GATEWAY_SECRET = "rzp_test_secret"


class FakeGateway(PaymentGateway):
    """In-process gateway: records calls, remembers orders, optionally fails."""

    def __init__(self):
        super().__init__("rzp_test_key", GATEWAY_SECRET)
        self.calls: list[dict] = []
        self.orders: dict[str, GatewayOrder] = {}
        self.error: Exception | None = None

    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt})
        if self.error is not None:
            raise self.error
        order = GatewayOrder(
            id=f"order_fake_{len(self.calls)}",
            amount=amount,
            currency=currency,
            receipt=receipt,
        )
        self.orders[order.id] = order
        return order

    def fetch_order(self, gateway_order_id: str) -> GatewayOrder:
        if self.error is not None:
            raise self.error
        if gateway_order_id not in self.orders:
            raise ExternalServiceError("Razorpay order lookup failed")
        return self.orders[gateway_order_id]


def sign(gateway_order_id: str, payment_id: str) -> str:
    return compute_signature(GATEWAY_SECRET, gateway_order_id, payment_id)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(engine, gateway):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(engine, email: str, role: str) -> User:
    with Session(engine) as session:
        user = User(id=uuid.uuid4(), email=email, name=email.split("@")[0], role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


@pytest.fixture
def shopper(engine):
    return _make_user(engine, "shopper@example.com", "user")


@pytest.fixture
def other_shopper(engine):
    return _make_user(engine, "other@example.com", "user")


@pytest.fixture
def admin(engine):
    return _make_user(engine, "admin@example.com", "admin")


def make_token(user: User, secret: str = "test-jwt-secret") -> str:
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def make_product(engine):
    def _make(name: str = "Terracotta Vase", price: float = 100.0, stock: int = 10, **kw):
        with Session(engine) as session:
            product = Product(
                name=name,
                price=price,
                count_in_stock=stock,
                image=f"https://img.example.com/{name.lower().replace(' ', '-')}.jpg",
                **kw,
            )
            session.add(product)
            session.commit()
            session.refresh(product)
            return product

    return _make


@pytest.fixture
def stock_of(engine):
    def _stock(product_id: uuid.UUID) -> int:
        with Session(engine) as session:
            return session.get(Product, product_id).count_in_stock

    return _stock


ADDRESS = {
    "address": "12 Kiln Lane",
    "city": "Pune",
    "postalCode": "411001",
    "country": "India",
}
