# storefront/schemas/order.py
import uuid
from datetime import datetime

from pydantic import field_validator
from sqlmodel import SQLModel

from storefront.schemas.cart import API_CONFIG


class ShippingAddress(SQLModel):
    model_config = API_CONFIG

    address: str
    city: str
    postal_code: str
    country: str

    @field_validator("address", "city", "postal_code", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CheckoutItem(SQLModel):
    """
    One line of the client-held cart snapshot. Only the product and the
    quantity are taken from the client; name, image and price come from
    the catalog when the order is created.
    """

    model_config = API_CONFIG

    product_id: uuid.UUID
    qty: int


class CheckoutSession(SQLModel):
    """
    Payload for placing an order.

    User provides:
      - order_items (snapshot of the cart)
      - shipping address
      - payment method name

    Backend derives:
      - owner_id from token
      - items_price / shipping_price / tax_price / total_price from the
        current catalog prices. Price fields sent by the client are
        accepted for compatibility, compared and then ignored.
    """

    model_config = API_CONFIG

    order_items: list[CheckoutItem] = []
    shipping_address: ShippingAddress
    payment_method: str = "Razorpay"

    items_price: float | None = None
    tax_price: float | None = None
    shipping_price: float | None = None
    total_price: float | None = None

    @field_validator("payment_method")
    @classmethod
    def payment_method_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment method cannot be empty")
        return v


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    model_config = API_CONFIG

    product_id: uuid.UUID
    name: str
    image: str | None = None
    price: float
    qty: int


class PaymentResultRead(SQLModel):
    model_config = API_CONFIG

    id: str
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None
    razorpay_order_id: str | None = None
    razorpay_signature: str | None = None


class OrderRead(SQLModel):
    """
    Full order view including items and payment/delivery state.
    """

    model_config = API_CONFIG

    id: uuid.UUID
    owner_id: uuid.UUID
    order_items: list[OrderItemRead]
    shipping_address: ShippingAddress
    payment_method: str
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float
    is_paid: bool
    paid_at: datetime | None = None
    payment_result: PaymentResultRead | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    created_at: datetime


class PaymentResultIn(SQLModel):
    """
    Payment result reported back by the client after the gateway widget
    completes. Keys follow the gateway's own naming
    (razorpay_order_id, razorpay_signature).
    """

    model_config = API_CONFIG

    id: str
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None
    razorpay_order_id: str | None = None
    razorpay_signature: str | None = None


class ExternalOrderCreate(SQLModel):
    """
    Amount in minor units (paise). Optional: derived from the order when
    omitted.
    """

    model_config = API_CONFIG

    amount: int | None = None


class ExternalOrderRead(SQLModel):
    model_config = API_CONFIG

    id: str
    amount: int
    currency: str
    receipt: str | None = None
