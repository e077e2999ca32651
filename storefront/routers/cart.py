# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import CartRead, CartItemCreate, CartItemUpdate
from storefront.services.cart_service import CartService
from storefront.services.inventory_service import InventoryService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
inventory = InventoryService(ProductRepository())
service = CartService(cart_repo, inventory)


@router.get("", response_model=CartRead)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get current user's cart (empty structure if none exists yet).
    """
    return service.get_cart(session, current_user.id)


@router.post("", response_model=CartRead)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add a product to the current user's cart, or reset the quantity of a
    product already in it.

    Returns the updated cart.
    """
    return service.add_item(session, current_user.id, payload)


@router.put("/{product_id}", response_model=CartRead)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Set the quantity of a product in the cart.

    Returns the updated cart.
    """
    return service.set_item_quantity(
        session=session,
        owner_id=current_user.id,
        product_id=product_id,
        payload=payload,
    )


@router.delete("/{product_id}", response_model=CartRead)
def remove_cart_item(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Remove a product from the cart.

    Returns the updated cart.
    """
    return service.remove_item(session, current_user.id, product_id)


@router.delete("", response_model=CartRead)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Clear the entire cart.

    Returns an empty cart.
    """
    return service.clear(session, current_user.id)
