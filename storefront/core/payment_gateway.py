# storefront/core/payment_gateway.py
"""
Payment gateway port and the Razorpay adapter.

The gateway mints an order on its side for a given amount; the shopper
pays through the gateway's widget, which hands the client a payment id,
the gateway order id and a signature. The signature is
HMAC-SHA256(key_secret, "<gateway_order_id>|<payment_id>") in hex.
"""
import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

import httpx

from storefront.core.config import get_settings
from storefront.core.errors import ExternalServiceError, GatewayTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    """Order record created on the gateway side."""

    id: str
    amount: int
    currency: str
    receipt: str | None = None


def compute_signature(key_secret: str, gateway_order_id: str, payment_id: str) -> str:
    message = f"{gateway_order_id}|{payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self._key_secret = key_secret

    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        """Create a gateway order for `amount` minor units."""
        ...

    @abstractmethod
    def fetch_order(self, gateway_order_id: str) -> GatewayOrder:
        """Load a gateway order previously minted by create_order."""
        ...

    def verify_payment_signature(
        self,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> bool:
        """Check that a client-reported payment really came from the gateway."""
        expected = compute_signature(self._key_secret, gateway_order_id, payment_id)
        return hmac.compare_digest(expected, signature)


class RazorpayGateway(PaymentGateway):
    """
    Razorpay Orders API over httpx.

    Creating and reading an order have no side effects beyond the created
    record, so timeouts, transport errors and 5xx answers are retried
    here. 4xx answers are not retried.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._transport = transport

    def _send(self, method: str, path: str, payload: dict | None = None) -> httpx.Response:
        with httpx.Client(
            auth=(self.key_id, self._key_secret),
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            return client.request(method, f"{self._base_url}{path}", json=payload)

    def _call(
        self,
        action: str,
        method: str,
        path: str,
        payload: dict | None = None,
    ) -> GatewayOrder:
        attempts = self._max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = self._send(method, path, payload)
            except httpx.TimeoutException as e:
                logger.warning(
                    "Razorpay %s timed out (attempt %s/%s): %s",
                    action,
                    attempt + 1,
                    attempts,
                    e,
                )
                last_error = GatewayTimeout()
            except httpx.RequestError as e:
                logger.warning(
                    "Razorpay unreachable (attempt %s/%s): %s", attempt + 1, attempts, e
                )
                last_error = ExternalServiceError(f"Payment gateway unavailable: {e}")
            else:
                if response.status_code in (200, 201):
                    data = response.json()
                    return GatewayOrder(
                        id=data["id"],
                        amount=data["amount"],
                        currency=data["currency"],
                        receipt=data.get("receipt"),
                    )
                if response.status_code < 500:
                    logger.error(
                        "Razorpay rejected %s: %s %s",
                        action,
                        response.status_code,
                        response.text,
                    )
                    raise ExternalServiceError(f"Razorpay {action} failed")
                logger.warning(
                    "Razorpay error %s (attempt %s/%s)",
                    response.status_code,
                    attempt + 1,
                    attempts,
                )
                last_error = ExternalServiceError(f"Razorpay {action} failed")

            if attempt < attempts - 1:
                time.sleep(self._retry_delay)

        logger.error("Razorpay %s failed after %s attempts", action, attempts)
        raise last_error

    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
        }
        return self._call("order creation", "POST", "/orders", payload)

    def fetch_order(self, gateway_order_id: str) -> GatewayOrder:
        return self._call("order lookup", "GET", f"/orders/{gateway_order_id}")


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """
    FastAPI dependency returning the configured gateway.
    Tests replace it through app.dependency_overrides.
    """
    settings = get_settings()
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_BASE_URL,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
        max_retries=settings.PAYMENT_GATEWAY_MAX_RETRIES,
        retry_delay=settings.PAYMENT_GATEWAY_RETRY_DELAY,
    )
