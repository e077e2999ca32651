"""Checkout: the order stands even when emptying the cart fails."""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ADDRESS, auth
from storefront.routers import orders as orders_router


def _flaky_clear(monkeypatch, failures):
    """Make CartService.clear fail `failures` times, then behave normally."""
    cart_service = orders_router.checkout_service.cart_service
    real_clear = cart_service.clear
    calls = []

    def clear(session, owner_id):
        calls.append(owner_id)
        if len(calls) <= failures:
            raise OperationalError("DELETE FROM cart_items", {}, Exception("connection lost"))
        return real_clear(session, owner_id)

    monkeypatch.setattr(cart_service, "clear", clear)
    return calls


@pytest.fixture
def vase_in_cart(client, shopper, make_product):
    vase = make_product("Terracotta Vase", price=100.0, stock=10)
    client.post(
        "/api/cart", json={"productId": str(vase.id), "qty": 2}, headers=auth(shopper)
    )
    return vase


def _checkout(client, shopper, vase):
    return client.post(
        "/api/orders",
        json={
            "orderItems": [{"productId": str(vase.id), "qty": 2}],
            "shippingAddress": ADDRESS,
            "paymentMethod": "Razorpay",
        },
        headers=auth(shopper),
    )


def test_clear_is_retried_after_a_failure(
    client, shopper, vase_in_cart, stock_of, monkeypatch
):
    calls = _flaky_clear(monkeypatch, failures=1)

    response = _checkout(client, shopper, vase_in_cart)

    assert response.status_code == 201
    assert len(calls) == 2
    assert stock_of(vase_in_cart.id) == 8

    order_id = response.json()["id"]
    fetched = client.get(f"/api/orders/{order_id}", headers=auth(shopper))
    assert fetched.status_code == 200

    cart = client.get("/api/cart", headers=auth(shopper)).json()
    assert cart["items"] == []
    assert cart["totalItems"] == 0


def test_order_stands_when_cart_cannot_be_cleared(
    client, shopper, vase_in_cart, stock_of, monkeypatch
):
    retries = orders_router.checkout_service.clear_retries
    calls = _flaky_clear(monkeypatch, failures=retries)

    response = _checkout(client, shopper, vase_in_cart)

    assert response.status_code == 201
    assert len(calls) == retries
    assert stock_of(vase_in_cart.id) == 8

    mine = client.get("/api/orders/myorders", headers=auth(shopper)).json()
    assert [o["id"] for o in mine] == [response.json()["id"]]

    # Stale cart is left behind for the shopper to clear
    cart = client.get("/api/cart", headers=auth(shopper)).json()
    assert [line["qty"] for line in cart["items"]] == [2]
