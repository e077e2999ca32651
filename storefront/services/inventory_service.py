# storefront/services/inventory_service.py
import logging
import uuid

from sqlmodel import Session

from storefront.core.errors import InsufficientStock, ProductNotFound
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Authoritative stock per product.

    Reads are point-in-time with no reservation: callers re-read right
    before they commit a quantity change. The only write is the guarded
    decrement used when an order is placed.
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id, fresh=True)
        if not product or not product.is_active:
            raise ProductNotFound()
        return product

    def get_available(self, session: Session, product_id: uuid.UUID) -> int:
        return self.get_product(session, product_id).count_in_stock

    def ensure_available(self, product: Product, quantity: int) -> None:
        if quantity > product.count_in_stock:
            raise InsufficientStock(product.name, product.count_in_stock, quantity)

    def decrement(self, session: Session, product: Product, quantity: int) -> None:
        """
        Take `quantity` units of `product` out of stock inside the caller's
        transaction. Raises InsufficientStock if a concurrent order got there
        first.
        """
        if not self.product_repo.decrement_stock(session, product.id, quantity):
            current = self.product_repo.get_by_id(session, product.id, fresh=True)
            available = current.count_in_stock if current else 0
            logger.warning(
                "Stock decrement refused for product %s: requested %s, available %s",
                product.id,
                quantity,
                available,
            )
            raise InsufficientStock(product.name, available, quantity)
