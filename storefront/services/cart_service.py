# storefront/services/cart_service.py
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.core.errors import CartConflict, InvalidQuantity, NotInCart
from storefront.models.cart import Cart, CartItem
from storefront.repositories.cart_repo import CartRepository
from storefront.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartLineRead,
    CartRead,
)
from storefront.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence and quantity >= 1
      - enforce quantity <= current stock (re-read on every mutation)
      - one line per product; re-adding replaces the quantity
      - keep total_items / total_price in step with the lines, written in
        the same commit as the line change
      - detect concurrent writers via the cart version
    """

    def __init__(self, cart_repo: CartRepository, inventory: InventoryService):
        self.cart_repo = cart_repo
        self.inventory = inventory

    # ---- internal helpers ----

    @staticmethod
    def _check_quantity(qty: int) -> None:
        if qty < 1:
            raise InvalidQuantity()

    def _get_or_create_cart(self, session: Session, owner_id: uuid.UUID) -> Cart:
        cart = self.cart_repo.get_for_owner(session, owner_id)
        if cart is not None:
            return cart
        try:
            return self.cart_repo.create_cart(session, owner_id)
        except IntegrityError:
            # Another request created the cart between our read and insert
            session.rollback()
            raise CartConflict()

    def _commit(self, session: Session, cart: Cart) -> None:
        """
        Recompute totals from the persisted lines, write them with the
        version check and commit. Rolls back on a lost race.
        """
        items = self.cart_repo.list_items(session, cart.id)
        total_items = sum(it.quantity for it in items)
        total_price = round(sum(it.quantity * it.unit_price for it in items), 2)

        if not self.cart_repo.save_totals(session, cart, total_items, total_price):
            session.rollback()
            logger.info("Cart %s changed concurrently, rejecting write", cart.id)
            raise CartConflict()
        session.commit()

    def _build_cart_dto(
        self,
        owner_id: uuid.UUID,
        cart: Cart | None,
        items: list[CartItem],
    ) -> CartRead:
        if cart is None:
            return CartRead(
                owner_id=owner_id,
                items=[],
                total_items=0,
                total_price=0.0,
                version=0,
            )

        lines = [
            CartLineRead(
                product_id=it.product_id,
                name=it.name,
                image=it.image,
                unit_price=it.unit_price,
                stock_at_add_time=it.stock_at_add_time,
                qty=it.quantity,
                line_total=round(it.quantity * it.unit_price, 2),
            )
            for it in items
        ]
        return CartRead(
            owner_id=owner_id,
            items=lines,
            total_items=cart.total_items,
            total_price=cart.total_price,
            version=cart.version,
            updated_at=cart.updated_at,
        )

    # ---- public operations ----

    def get_cart(self, session: Session, owner_id: uuid.UUID) -> CartRead:
        """
        Return the owner's cart; an empty structure if none exists yet.
        """
        cart = self.cart_repo.get_for_owner(session, owner_id)
        items = self.cart_repo.list_items(session, cart.id) if cart else []
        return self._build_cart_dto(owner_id, cart, items)

    def add_item(
        self,
        session: Session,
        owner_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartRead:
        """
        Add a product to the owner's cart.

        Rules:
          - qty >= 1
          - product must exist and be active
          - qty <= current stock
          - if the product is already in the cart, its quantity is set to
            qty (not accumulated)
          - name / image / unit_price are refreshed from the catalog
        """
        self._check_quantity(payload.qty)
        product = self.inventory.get_product(session, payload.product_id)
        self.inventory.ensure_available(product, payload.qty)

        cart = self._get_or_create_cart(session, owner_id)
        existing = self.cart_repo.get_item(session, cart.id, product.id)

        if existing:
            existing.quantity = payload.qty
            existing.unit_price = product.price
            existing.stock_at_add_time = product.count_in_stock
            existing.name = product.name
            existing.image = product.image
            session.add(existing)
            session.flush()
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=payload.qty,
                unit_price=product.price,
                stock_at_add_time=product.count_in_stock,
                name=product.name,
                image=product.image,
            )
            try:
                self.cart_repo.add_item(session, item)
            except IntegrityError:
                # Another request added the same product between our read and insert
                session.rollback()
                logger.info(
                    "Owner %s already has product %s from a concurrent add",
                    owner_id,
                    payload.product_id,
                )
                raise CartConflict()

        self._commit(session, cart)
        return self.get_cart(session, owner_id)

    def set_item_quantity(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartRead:
        """
        Replace the quantity of a line already in the cart.
        Never creates a line.
        """
        self._check_quantity(payload.qty)
        product = self.inventory.get_product(session, product_id)

        cart = self.cart_repo.get_for_owner(session, owner_id)
        item = self.cart_repo.get_item(session, cart.id, product_id) if cart else None
        if not item:
            raise NotInCart()

        self.inventory.ensure_available(product, payload.qty)

        item.quantity = payload.qty
        item.stock_at_add_time = product.count_in_stock
        session.add(item)
        session.flush()

        self._commit(session, cart)
        return self.get_cart(session, owner_id)

    def remove_item(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartRead:
        """
        Remove a product from the cart and return the remainder.
        """
        cart = self.cart_repo.get_for_owner(session, owner_id)
        item = self.cart_repo.get_item(session, cart.id, product_id) if cart else None
        if not item:
            raise NotInCart("Product not found in cart to remove")

        self.cart_repo.delete_item(session, item)
        self._commit(session, cart)
        return self.get_cart(session, owner_id)

    def clear(self, session: Session, owner_id: uuid.UUID) -> CartRead:
        """
        Empty the cart. Safe to call repeatedly or on a missing cart.
        """
        cart = self.cart_repo.get_for_owner(session, owner_id)
        if cart is None:
            return self._build_cart_dto(owner_id, None, [])

        self.cart_repo.delete_all_items(session, cart.id)
        self._commit(session, cart)
        return self.get_cart(session, owner_id)
