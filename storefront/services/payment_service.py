# storefront/services/payment_service.py
import logging
import uuid

from sqlmodel import Session

from storefront.core.errors import (
    AlreadyPaid,
    AmountMismatch,
    InvalidSignature,
    PaymentMismatch,
)
from storefront.core.payment_gateway import PaymentGateway
from storefront.schemas.order import (
    ExternalOrderRead,
    OrderRead,
    PaymentResultIn,
)
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def receipt_for(order_id: uuid.UUID) -> str:
    return f"receipt_order_{order_id}"


class PaymentService:
    """
    Two-step payment handshake, keyed by our order id.

      1. create_external_order: mint a gateway order for the order total
         (no local state change).
      2. record_payment: verify the gateway signature on the result the
         client reports back, then mark the order paid.
    """

    def __init__(self, order_service: OrderService, currency: str = "INR"):
        self.order_service = order_service
        self.currency = currency

    def create_external_order(
        self,
        session: Session,
        gateway: PaymentGateway,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
        amount: int | None = None,
    ) -> ExternalOrderRead:
        """
        Rules:
          - order must exist and be visible to the requester
          - order must not be paid yet
          - amount (minor units), if given, must match the order total
        """
        order = self.order_service.get_order(
            session, order_id, requester_id, requester_role
        )
        if order.is_paid:
            raise AlreadyPaid()

        expected = to_minor_units(order.total_price)
        if amount is not None and amount != expected:
            logger.warning(
                "Payment amount %s for order %s does not match total %s",
                amount,
                order_id,
                expected,
            )
            raise AmountMismatch(
                f"Payment amount {amount} does not match order total {expected}"
            )

        gateway_order = gateway.create_order(
            amount=expected,
            currency=self.currency,
            receipt=receipt_for(order_id),
        )
        logger.info(
            "Gateway order %s created for order %s (%s %s)",
            gateway_order.id,
            order_id,
            gateway_order.amount,
            gateway_order.currency,
        )
        return ExternalOrderRead(
            id=gateway_order.id,
            amount=gateway_order.amount,
            currency=gateway_order.currency,
            receipt=gateway_order.receipt,
        )

    def record_payment(
        self,
        session: Session,
        gateway: PaymentGateway,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
        result: PaymentResultIn,
    ) -> OrderRead:
        """
        Verify the result before anything is written:

          - the signature must prove the gateway issued the payment for
            the reported gateway order
          - that gateway order must carry this order's receipt and total

        A missing or wrong result never reaches mark_paid. An order that is
        already paid goes straight to mark_paid, which treats the same
        payment id as a duplicate and refuses any other.
        """
        order = self.order_service.get_order(
            session, order_id, requester_id, requester_role
        )

        if not result.razorpay_order_id or not result.razorpay_signature:
            logger.warning("Payment for order %s rejected: signature fields missing", order_id)
            raise InvalidSignature("Payment result is missing the gateway order id or signature")

        if not gateway.verify_payment_signature(
            result.razorpay_order_id, result.id, result.razorpay_signature
        ):
            logger.warning(
                "Payment %s for order %s rejected: signature mismatch", result.id, order_id
            )
            raise InvalidSignature()

        if not order.is_paid:
            self._check_gateway_order(gateway, order, result.razorpay_order_id)

        return self.order_service.mark_paid(session, order_id, result)

    def _check_gateway_order(
        self,
        gateway: PaymentGateway,
        order: OrderRead,
        gateway_order_id: str,
    ) -> None:
        gateway_order = gateway.fetch_order(gateway_order_id)
        expected_amount = to_minor_units(order.total_price)
        if (
            gateway_order.receipt != receipt_for(order.id)
            or gateway_order.amount != expected_amount
        ):
            logger.warning(
                "Gateway order %s (receipt %s, amount %s) does not belong to order %s",
                gateway_order_id,
                gateway_order.receipt,
                gateway_order.amount,
                order.id,
            )
            raise PaymentMismatch()

    def public_key(self, gateway: PaymentGateway) -> str:
        return gateway.key_id
