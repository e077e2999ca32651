# storefront/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry as seen by the checkout flow.

    The catalog service owns these rows; this service only reads name,
    image and price, and moves `count_in_stock` when orders are placed.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
    )

    image: str | None = Field(
        default=None,
        description="Primary image URL",
    )

    price: float = Field(
        gt=0,
        description="Unit price (INR)",
    )

    count_in_stock: int = Field(
        default=0,
        ge=0,
        description="Authoritative available quantity",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be sold",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
