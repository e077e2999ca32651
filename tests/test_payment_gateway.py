"""Tests for the Razorpay adapter and signature helper."""

import base64
import json

import httpx
import pytest

from storefront.core.errors import ExternalServiceError, GatewayTimeout
from storefront.core.payment_gateway import RazorpayGateway, compute_signature


def _gateway(handler, max_retries=2):
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        base_url="https://api.razorpay.test/v1/",
        timeout=1.0,
        max_retries=max_retries,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


def test_create_order_posts_to_orders_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "order_abc",
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            },
        )

    result = _gateway(handler).create_order(28600, "INR", "receipt_order_1")

    assert result.id == "order_abc"
    assert result.amount == 28600
    assert result.currency == "INR"
    assert result.receipt == "receipt_order_1"

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.razorpay.test/v1/orders"
    expected_auth = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"
    assert json.loads(request.content)["payment_capture"] == 1


def test_timeout_is_retried_then_reported():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GatewayTimeout):
        _gateway(handler, max_retries=2).create_order(100, "INR", "r")
    assert len(attempts) == 3


def test_transient_failure_then_success():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("refused", request=request)
        if len(attempts) == 2:
            return httpx.Response(503)
        return httpx.Response(200, json={"id": "order_ok", "amount": 100, "currency": "INR"})

    result = _gateway(handler).create_order(100, "INR", "r")
    assert result.id == "order_ok"
    assert result.receipt is None
    assert len(attempts) == 3


def test_client_error_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400, json={"error": {"description": "bad amount"}})

    with pytest.raises(ExternalServiceError):
        _gateway(handler).create_order(-1, "INR", "r")
    assert len(attempts) == 1


def test_fetch_order_reads_gateway_record():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "id": "order_abc",
                "amount": 28600,
                "currency": "INR",
                "receipt": "receipt_order_1",
                "status": "paid",
            },
        )

    result = _gateway(handler).fetch_order("order_abc")

    assert result.receipt == "receipt_order_1"
    assert result.amount == 28600
    assert seen[0].method == "GET"
    assert str(seen[0].url) == "https://api.razorpay.test/v1/orders/order_abc"


def test_fetch_unknown_order_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400, json={"error": {"description": "The id provided does not exist"}})

    with pytest.raises(ExternalServiceError):
        _gateway(handler).fetch_order("order_missing")
    assert len(attempts) == 1

def test_signature_verification():
    gateway = _gateway(lambda request: httpx.Response(500))
    good = compute_signature("rzp_test_secret", "order_abc", "pay_123")

    assert gateway.verify_payment_signature("order_abc", "pay_123", good)
    assert not gateway.verify_payment_signature("order_abc", "pay_456", good)
    assert not gateway.verify_payment_signature(
        "order_abc", "pay_123", compute_signature("other_secret", "order_abc", "pay_123")
    )


def test_signature_is_hmac_sha256_hex():
    import hashlib
    import hmac

    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert compute_signature("secret", "order_1", "pay_1") == expected
