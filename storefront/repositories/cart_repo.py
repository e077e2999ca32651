# storefront/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlmodel import Session, select

from storefront.models.cart import Cart, CartItem


class CartRepository:
    """
    Data access layer for carts and cart_items.

    NOTE:
      - No commits here; every cart mutation is a line change plus a
        totals/version write that must land in one commit.
        The service is responsible for calling session.commit().
    """

    # ---- Carts ----

    def get_for_owner(self, session: Session, owner_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.owner_id == owner_id)
        return session.exec(stmt).first()

    def create_cart(self, session: Session, owner_id: uuid.UUID) -> Cart:
        """
        Insert an empty Cart without committing, but ensure id is populated.
        """
        cart = Cart(owner_id=owner_id)
        session.add(cart)
        session.flush()
        session.refresh(cart)
        return cart

    def save_totals(
        self,
        session: Session,
        cart: Cart,
        total_items: int,
        total_price: float,
    ) -> bool:
        """
        Write derived totals and bump the version, but only if nobody else
        bumped it since `cart` was read. Returns False on a lost race.
        """
        expected = cart.version
        stmt = (
            update(Cart)
            .where(Cart.id == cart.id)
            .where(Cart.version == expected)
            .values(
                total_items=total_items,
                total_price=total_price,
                version=expected + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    # ---- Cart items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at)
        )
        return session.exec(stmt).all()

    def get_item(
        self, session: Session, cart_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def add_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def delete_all_items(self, session: Session, cart_id: uuid.UUID) -> None:
        session.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
