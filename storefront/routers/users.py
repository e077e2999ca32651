# storefront/routers/users.py
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.wishlist import WishlistEntryRead, WishlistToggleRead
from storefront.services.inventory_service import InventoryService
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/users", tags=["Users"])

service = WishlistService(WishlistRepository(), InventoryService(ProductRepository()))


# -------- Wishlist --------


@router.get("/wishlist", response_model=list[WishlistEntryRead])
def get_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Return the authenticated user's wishlist.
    """
    return service.list(session, current_user.id)


@router.put("/wishlist/{product_id}", response_model=WishlistToggleRead)
def toggle_wishlist_item(
    product_id: uuid.UUID,
    response: Response,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add the product to the wishlist, or remove it if already there.

    201 when added, 200 when removed.
    """
    result = service.toggle(session, current_user.id, product_id)
    if result.action == "added":
        response.status_code = status.HTTP_201_CREATED
    return result
