"""Tests for bearer-token identity resolution."""

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlmodel import Session, select

from conftest import make_token
from storefront.models.user import User


def test_missing_token(client):
    response = client.get("/api/orders/myorders")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authorized, no token"


def test_token_signed_with_wrong_secret(client, shopper):
    token = make_token(shopper, secret="not-the-secret")
    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_expired_token(client, shopper):
    token = jwt.encode(
        {
            "sub": str(shopper.id),
            "email": shopper.email,
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        "test-jwt-secret",
        algorithm="HS256",
    )
    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_unknown_identity_is_provisioned_as_user(client, engine):
    user_id = uuid.uuid4()
    token = jwt.encode(
        {"sub": str(user_id), "email": "newcomer@example.com"},
        "test-jwt-secret",
        algorithm="HS256",
    )
    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200

    with Session(engine) as session:
        user = session.get(User, user_id)
        assert user.role == "user"
        assert user.name == "newcomer"


def test_token_missing_claims(client):
    token = jwt.encode({"sub": str(uuid.uuid4())}, "test-jwt-secret", algorithm="HS256")
    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_provisioned_identity_is_reused(client, engine):
    user_id = uuid.uuid4()
    token = jwt.encode(
        {"sub": str(user_id), "email": "potter@example.com", "name": "Mira"},
        "test-jwt-secret",
        algorithm="HS256",
    )
    headers = {"Authorization": f"Bearer {token}"}
    assert client.get("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/users/wishlist", headers=headers).status_code == 200

    with Session(engine) as session:
        users = session.exec(select(User).where(User.email == "potter@example.com")).all()
        assert [(u.id, u.name) for u in users] == [(user_id, "Mira")]


def test_malformed_sub(client):
    token = jwt.encode(
        {"sub": "not-a-uuid", "email": "x@example.com"}, "test-jwt-secret", algorithm="HS256"
    )
    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
