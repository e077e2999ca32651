# storefront/services/order_service.py
import logging
import uuid
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.core.errors import (
    AlreadyPaid,
    EmptyOrder,
    Forbidden,
    InvalidQuantity,
    OrderNotFound,
    OrderNotPaid,
    PaymentAlreadyUsed,
    StorefrontError,
)
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order import (
    CheckoutSession,
    OrderItemRead,
    OrderRead,
    PaymentResultIn,
    PaymentResultRead,
    ShippingAddress,
)
from storefront.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

# Orders strictly above this subtotal ship free
FREE_SHIPPING_THRESHOLD = 1000.0

FLAT_SHIPPING_FEE = 50.0

# Fixed tax rate (18%)
TAX_RATE = 0.18


class OrderPrices(NamedTuple):
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float


def calculate_prices(items_price: float) -> OrderPrices:
    items_price = round(items_price, 2)
    shipping_price = 0.0 if items_price > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE
    tax_price = round(TAX_RATE * items_price, 2)
    total_price = round(items_price + shipping_price + tax_price, 2)
    return OrderPrices(items_price, shipping_price, tax_price, total_price)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order from a checkout session (cart snapshot)
      - Price every line from the current catalog, never from the client
      - Take stock with a guarded decrement, all-or-nothing
      - Owner/admin visibility rules
      - Paid and delivered transitions (each False -> True exactly once)
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        inventory: InventoryService,
        require_payment_before_delivery: bool = False,
    ):
        self.order_repo = order_repo
        self.inventory = inventory
        self.require_payment_before_delivery = require_payment_before_delivery

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        owner_id: uuid.UUID,
        payload: CheckoutSession,
    ) -> OrderRead:
        """
        Turn a checkout session into an Order.

        Steps:
          1. Reject an empty snapshot.
          2. Merge duplicate product lines, reject qty < 1.
          3. For each line: load the product, take stock atomically.
          4. Compute prices from catalog prices.
          5. Create Order + OrderItem rows.
          6. Commit. Any failure rolls back every decrement, so no partial
             order ever exists.

        The cart itself is cleared by the checkout flow, not here.
        """
        if not payload.order_items:
            raise EmptyOrder()

        quantities: dict[uuid.UUID, int] = {}
        for line in payload.order_items:
            if line.qty < 1:
                raise InvalidQuantity()
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.qty

        try:
            products: list[tuple[Product, int]] = []
            for product_id, qty in quantities.items():
                product = self.inventory.get_product(session, product_id)
                self.inventory.decrement(session, product, qty)
                products.append((product, qty))

            prices = calculate_prices(sum(p.price * qty for p, qty in products))
            self._warn_on_client_prices(owner_id, payload, prices)

            address = payload.shipping_address
            order = Order(
                owner_id=owner_id,
                address=address.address,
                city=address.city,
                postal_code=address.postal_code,
                country=address.country,
                payment_method=payload.payment_method,
                items_price=prices.items_price,
                shipping_price=prices.shipping_price,
                tax_price=prices.tax_price,
                total_price=prices.total_price,
            )
            order = self.order_repo.create_order(session, order)

            items = self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=product.id,
                        name=product.name,
                        image=product.image,
                        qty=qty,
                        price=product.price,
                    )
                    for product, qty in products
                ],
            )
            session.commit()
        except StorefrontError:
            session.rollback()
            raise

        session.refresh(order)
        logger.info(
            "Order %s created for %s: %s line(s), total %.2f",
            order.id,
            owner_id,
            len(items),
            order.total_price,
        )
        return self._build_order_dto(order, items)

    def get_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
    ) -> OrderRead:
        """
        Get a single order with items.

        - 404 if the order does not exist.
        - 403 unless the requester owns it or is an admin.
        """
        order = self._get_visible_order(session, order_id, requester_id, requester_role)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    def list_mine(
        self,
        session: Session,
        owner_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_owner(session, owner_id, skip, limit)
        return self._build_order_dtos(session, orders)

    # -------- Admin operations --------

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List all orders (admin only, enforced by the router).
        """
        orders = self.order_repo.list_all(session, skip, limit)
        return self._build_order_dtos(session, orders)

    def mark_delivered(self, session: Session, order_id: uuid.UUID) -> OrderRead:
        """
        Set is_delivered / delivered_at once. A repeat call keeps the first
        delivered_at. Unpaid orders are refused only when
        require_payment_before_delivery is on.
        """
        order = self._get_order_or_404(session, order_id)

        if self.require_payment_before_delivery and not order.is_paid:
            raise OrderNotPaid()

        if self.order_repo.mark_delivered_if_undelivered(session, order_id):
            session.commit()
            logger.info("Order %s marked delivered (paid=%s)", order_id, order.is_paid)
        else:
            session.rollback()

        order = self.order_repo.get_by_id(session, order_id, fresh=True)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    # -------- Payment handshake hook --------

    def mark_paid(
        self,
        session: Session,
        order_id: uuid.UUID,
        result: PaymentResultIn,
    ) -> OrderRead:
        """
        Record a verified payment.

        The first call flips is_paid and stores the result. A repeat call
        with the same gateway payment id is a duplicate delivery of the
        same callback and returns the order unchanged. A repeat call with a
        different payment id is refused with AlreadyPaid. A payment id
        already recorded on another order is refused with PaymentAlreadyUsed.
        """
        order = self._get_order_or_404(session, order_id)

        try:
            flipped = self.order_repo.mark_paid_if_unpaid(
                session,
                order_id,
                payment_id=result.id,
                payment_status=result.status,
                payment_update_time=result.update_time,
                payment_email_address=result.email_address,
                gateway_order_id=result.razorpay_order_id,
                gateway_signature=result.razorpay_signature,
            )
        except IntegrityError:
            session.rollback()
            logger.warning(
                "Payment %s already settles another order, refusing it for %s",
                result.id,
                order_id,
            )
            raise PaymentAlreadyUsed()

        if flipped:
            session.commit()
            logger.info("Order %s paid (payment %s)", order_id, result.id)
        else:
            session.rollback()
            order = self.order_repo.get_by_id(session, order_id, fresh=True)
            if order.payment_id != result.id:
                logger.warning(
                    "Order %s already paid by %s, refusing payment %s",
                    order_id,
                    order.payment_id,
                    result.id,
                )
                raise AlreadyPaid()
            logger.info("Duplicate payment callback for order %s ignored", order_id)

        order = self.order_repo.get_by_id(session, order_id, fresh=True)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_dto(order, items)

    # -------- Helpers --------

    def _get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise OrderNotFound()
        return order

    def _get_visible_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: str,
    ) -> Order:
        order = self._get_order_or_404(session, order_id)
        if order.owner_id != requester_id and requester_role != "admin":
            raise Forbidden()
        return order

    @staticmethod
    def _warn_on_client_prices(
        owner_id: uuid.UUID,
        payload: CheckoutSession,
        prices: OrderPrices,
    ) -> None:
        submitted = {
            "items_price": payload.items_price,
            "shipping_price": payload.shipping_price,
            "tax_price": payload.tax_price,
            "total_price": payload.total_price,
        }
        for field, value in submitted.items():
            if value is not None and abs(value - getattr(prices, field)) > 0.005:
                logger.warning(
                    "Client %s submitted %s=%s, server computed %s; using server value",
                    owner_id,
                    field,
                    value,
                    getattr(prices, field),
                )

    def _build_order_dtos(self, session: Session, orders: list[Order]) -> list[OrderRead]:
        items_by_order = self.order_repo.list_items_for_orders(
            session, [o.id for o in orders]
        )
        return [self._build_order_dto(o, items_by_order.get(o.id, [])) for o in orders]

    def _build_order_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderRead:
        """
        Compose OrderRead from ORM models.
        """
        payment_result = None
        if order.payment_id:
            payment_result = PaymentResultRead(
                id=order.payment_id,
                status=order.payment_status,
                update_time=order.payment_update_time,
                email_address=order.payment_email_address,
                razorpay_order_id=order.gateway_order_id,
                razorpay_signature=order.gateway_signature,
            )

        return OrderRead(
            id=order.id,
            owner_id=order.owner_id,
            order_items=[
                OrderItemRead(
                    product_id=it.product_id,
                    name=it.name,
                    image=it.image,
                    price=it.price,
                    qty=it.qty,
                )
                for it in items
            ],
            shipping_address=ShippingAddress(
                address=order.address,
                city=order.city,
                postal_code=order.postal_code,
                country=order.country,
            ),
            payment_method=order.payment_method,
            items_price=order.items_price,
            shipping_price=order.shipping_price,
            tax_price=order.tax_price,
            total_price=order.total_price,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            payment_result=payment_result,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
        )
