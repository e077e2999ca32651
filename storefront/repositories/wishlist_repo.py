# storefront/repositories/wishlist_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.product import Product
from storefront.models.wishlist import WishlistItem


class WishlistRepository:

    def list_with_products(
        self, session: Session, owner_id: uuid.UUID
    ) -> list[tuple[WishlistItem, Product]]:
        stmt = (
            select(WishlistItem, Product)
            .join(Product, Product.id == WishlistItem.product_id)
            .where(WishlistItem.owner_id == owner_id)
            .order_by(WishlistItem.added_at)
        )
        return session.exec(stmt).all()

    def get_item(
        self, session: Session, owner_id: uuid.UUID, product_id: uuid.UUID
    ) -> WishlistItem | None:
        stmt = select(WishlistItem).where(
            WishlistItem.owner_id == owner_id,
            WishlistItem.product_id == product_id,
        )
        return session.exec(stmt).first()

    # CRUD
    def create(self, session: Session, item: WishlistItem) -> WishlistItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: WishlistItem) -> None:
        session.delete(item)
        session.commit()
