# storefront/schemas/cart.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel

# Wire format is camelCase (productId, totalPrice, ...); snake_case is
# accepted on input as well.
API_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    qty is range-checked by the service so a bad value surfaces as
    `invalid_quantity` rather than a generic validation error.
    """

    model_config = API_CONFIG

    product_id: uuid.UUID
    qty: int


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    model_config = API_CONFIG

    qty: int


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    model_config = API_CONFIG

    product_id: uuid.UUID
    name: str
    image: str | None = None
    unit_price: float
    stock_at_add_time: int
    qty: int
    line_total: float


class CartRead(SQLModel):
    """
    Full cart response model with totals.
    """

    model_config = API_CONFIG

    owner_id: uuid.UUID
    items: list[CartLineRead]
    total_items: int
    total_price: float
    version: int
    updated_at: datetime | None = None
