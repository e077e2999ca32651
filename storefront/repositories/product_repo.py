# storefront/repositories/product_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session

from storefront.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (reads + the conditional stock decrement).
    - No FastAPI, no business logic.
    """

    def get_by_id(
        self,
        session: Session,
        product_id: uuid.UUID,
        fresh: bool = False,
    ) -> Product | None:
        """
        Load a product. `fresh=True` bypasses the session identity map so
        the stock count is read from the database right now.
        """
        return session.get(Product, product_id, populate_existing=fresh)

    def decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Atomically take `quantity` units out of stock.

        Runs a single UPDATE guarded by `count_in_stock >= quantity`, so two
        concurrent requests can never drive stock below zero. Returns False
        when no row matched (not enough stock). Does not commit.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .where(Product.count_in_stock >= quantity)
            .values(count_in_stock=Product.count_in_stock - quantity)
        )
        result = session.execute(stmt)
        return result.rowcount == 1
