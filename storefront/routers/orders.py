# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_auth, require_admin
from storefront.core.config import get_settings
from storefront.core.payment_gateway import PaymentGateway, get_payment_gateway
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    CheckoutSession,
    ExternalOrderCreate,
    ExternalOrderRead,
    OrderRead,
    PaymentResultIn,
)
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.inventory_service import InventoryService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService

settings = get_settings()

router = APIRouter(prefix="/orders", tags=["Orders"])

inventory = InventoryService(ProductRepository())
order_service = OrderService(
    OrderRepository(),
    inventory,
    require_payment_before_delivery=settings.REQUIRE_PAYMENT_BEFORE_DELIVERY,
)
checkout_service = CheckoutService(
    order_service,
    CartService(CartRepository(), inventory),
    clear_retries=settings.CART_CLEAR_RETRIES,
)
payment_service = PaymentService(order_service, currency=settings.PAYMENT_CURRENCY)


# -------- Public --------


@router.get("/config/razorpay")
def get_razorpay_key(gateway: PaymentGateway = Depends(get_payment_gateway)):
    """
    Gateway key id for the client checkout widget.
    """
    return {"keyId": payment_service.public_key(gateway)}


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: CheckoutSession,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Place an order from the checkout session, then clear the cart.
    """
    return checkout_service.place_order(session, current_user.id, payload)


@router.get("/myorders", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders, newest first.
    """
    return order_service.list_mine(session, current_user.id, skip, limit)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only).
    """
    return order_service.list_all(session, skip, limit)


@router.put(
    "/{order_id}/deliver",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def mark_order_delivered(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Mark an order delivered (admin only).
    """
    return order_service.mark_delivered(session, order_id)


# -------- Single order --------


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order. Owner or admin only.
    """
    return order_service.get_order(session, order_id, current_user.id, current_user.role)


@router.post("/{order_id}/razorpay", response_model=ExternalOrderRead)
def create_razorpay_order(
    order_id: uuid.UUID,
    payload: ExternalOrderCreate | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Create the gateway order the client embeds in its payment widget.
    """
    return payment_service.create_external_order(
        session,
        gateway,
        order_id,
        current_user.id,
        current_user.role,
        amount=payload.amount if payload else None,
    )


@router.put("/{order_id}/pay", response_model=OrderRead)
def record_payment(
    order_id: uuid.UUID,
    payload: PaymentResultIn,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Record the payment result reported by the gateway widget.
    The gateway signature is verified before the order is marked paid.
    """
    return payment_service.record_payment(
        session,
        gateway,
        order_id,
        current_user.id,
        current_user.role,
        payload,
    )
