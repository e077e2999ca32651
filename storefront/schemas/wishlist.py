# storefront/schemas/wishlist.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

from storefront.schemas.cart import API_CONFIG


class WishlistEntryRead(SQLModel):
    model_config = API_CONFIG

    product_id: uuid.UUID
    name: str
    image: str | None = None
    price: float
    added_at: datetime


class WishlistToggleRead(SQLModel):
    model_config = API_CONFIG

    action: Literal["added", "removed"]
    message: str
