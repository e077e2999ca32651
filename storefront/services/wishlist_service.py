# storefront/services/wishlist_service.py
import uuid

from sqlmodel import Session

from storefront.models.wishlist import WishlistItem
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.wishlist import WishlistEntryRead, WishlistToggleRead
from storefront.services.inventory_service import InventoryService


class WishlistService:
    """
    Per-shopper set of saved products with toggle semantics.
    """

    def __init__(self, wishlist_repo: WishlistRepository, inventory: InventoryService):
        self.wishlist_repo = wishlist_repo
        self.inventory = inventory

    def list(self, session: Session, owner_id: uuid.UUID) -> list[WishlistEntryRead]:
        return [
            WishlistEntryRead(
                product_id=product.id,
                name=product.name,
                image=product.image,
                price=product.price,
                added_at=item.added_at,
            )
            for item, product in self.wishlist_repo.list_with_products(session, owner_id)
        ]

    def toggle(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> WishlistToggleRead:
        """
        Add the product if absent, remove it if present. Only active
        products can be added; a saved product can always be removed.
        """
        existing = self.wishlist_repo.get_item(session, owner_id, product_id)
        if existing:
            self.wishlist_repo.delete(session, existing)
            return WishlistToggleRead(
                action="removed", message="Product removed from wishlist"
            )

        self.inventory.get_product(session, product_id)
        self.wishlist_repo.create(
            session, WishlistItem(owner_id=owner_id, product_id=product_id)
        )
        return WishlistToggleRead(action="added", message="Product added to wishlist")
