import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.dependencies import get_cart_store
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartActionResult, WishlistAddRequest, WishlistRead
from app.services.cart_service import CartService
from app.services.cart_store import CartStore
from app.services.wishlist_service import WishlistService

settings = get_settings()

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

product_repo = ProductRepository()
service = WishlistService(
    CartService(product_repo),
    remove_on_move=settings.REMOVE_FROM_WISHLIST_ON_MOVE,
)


@router.get("", response_model=WishlistRead)
def get_my_wishlist(store: CartStore = Depends(get_cart_store)):
    return service.list(store)


@router.post("", response_model=WishlistRead)
def add_to_wishlist(
    payload: WishlistAddRequest,
    session: Session = Depends(get_session),
    store: CartStore = Depends(get_cart_store),
):
    """
    Save a product for later. Adding it twice is a no-op.
    """
    return service.add(session, store, payload.product_id)


@router.delete("/{product_id}", response_model=WishlistRead)
def remove_from_wishlist(
    product_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    return service.remove(store, product_id)


@router.delete("", response_model=WishlistRead)
def clear_wishlist(store: CartStore = Depends(get_cart_store)):
    return service.clear(store)


@router.post("/{product_id}/move-to-cart", response_model=CartActionResult)
def move_to_cart(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    store: CartStore = Depends(get_cart_store),
):
    """
    Add a wishlist product to the cart using its live stock.

    409 when the product's stock is unknown or exhausted.
    """
    return service.move_to_cart(session, store, product_id)
