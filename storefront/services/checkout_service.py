# storefront/services/checkout_service.py
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.core.errors import CartConflict
from storefront.schemas.order import CheckoutSession, OrderRead
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Place an order and empty the cart.

    The order is the system of record: once it is committed it stands even
    if emptying the cart fails. The clear is idempotent, so it is simply
    retried; a cart that still cannot be cleared is left stale and logged.
    """

    def __init__(
        self,
        order_service: OrderService,
        cart_service: CartService,
        clear_retries: int = 3,
    ):
        self.order_service = order_service
        self.cart_service = cart_service
        self.clear_retries = clear_retries

    def place_order(
        self,
        session: Session,
        owner_id: uuid.UUID,
        payload: CheckoutSession,
    ) -> OrderRead:
        order = self.order_service.create_order(session, owner_id, payload)

        for attempt in range(1, self.clear_retries + 1):
            try:
                self.cart_service.clear(session, owner_id)
                break
            except (SQLAlchemyError, CartConflict) as e:
                session.rollback()
                logger.warning(
                    "Clearing cart for %s after order %s failed (attempt %s/%s): %s",
                    owner_id,
                    order.id,
                    attempt,
                    self.clear_retries,
                    e,
                )
        else:
            logger.error(
                "Cart for %s left stale after order %s was placed", owner_id, order.id
            )

        return order
