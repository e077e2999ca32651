# storefront/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Placed purchase.

    Everything except the paid / delivered fields is written once at
    creation. Paid and delivered progress independently and only ever
    move from False to True.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # Shipping address
    address: str
    city: str
    postal_code: str
    country: str

    payment_method: str = Field(
        description="Payment method chosen at checkout, e.g. Razorpay",
    )

    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float

    # Payment state (set by the payment handshake)
    is_paid: bool = Field(default=False, index=True)
    paid_at: datetime | None = None
    payment_id: str | None = Field(
        default=None,
        unique=True,
        description="Gateway payment id; one payment settles at most one order",
    )
    payment_status: str | None = None
    payment_update_time: str | None = None
    payment_email_address: str | None = None
    gateway_order_id: str | None = None
    gateway_signature: str | None = None

    # Delivery state (set by an admin)
    is_delivered: bool = Field(default=False, index=True)
    delivered_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Frozen line item inside an order.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str
    image: str | None = None

    qty: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    # Pre-tax price at time of order
    price: float = Field(
        description="Unit price at time of order (pre-tax)",
    )
