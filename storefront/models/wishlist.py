# storefront/models/wishlist.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class WishlistItem(SQLModel, table=True):
    """
    A product saved by a shopper. The set of rows for one owner is the
    wishlist; at most one row per (owner, product).
    """

    __tablename__ = "wishlist_items"
    __table_args__ = (UniqueConstraint("owner_id", "product_id"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
