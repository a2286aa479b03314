import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.dependencies import get_cart_store
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartActionResult,
    CartAddRequest,
    CartQuantityUpdate,
    CartSummary,
)
from app.services.cart_service import CartService
from app.services.cart_store import CartStore

router = APIRouter(prefix="/cart", tags=["Cart"])

product_repo = ProductRepository()
service = CartService(product_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(store: CartStore = Depends(get_cart_store)):
    """
    Get the device's cart summary.
    """
    return service.summary(store)


@router.post("", response_model=CartActionResult)
def add_to_cart(
    payload: CartAddRequest,
    session: Session = Depends(get_session),
    store: CartStore = Depends(get_cart_store),
):
    """
    Add a catalog product to the cart.

    Stock is read from the catalog at this moment. Hitting the limit is
    reported as signal='max_stock_reached', not as an error.
    """
    return service.add_from_catalog(session, store, payload.product_id, payload.quantity)


@router.post("/{product_id}/increment", response_model=CartActionResult)
def increment_cart_item(
    product_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    """
    "+" button: one more unit, unless the stock snapshot is reached.
    """
    return service.increment(store, product_id)


@router.post("/{product_id}/decrement", response_model=CartActionResult)
def decrement_cart_item(
    product_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    """
    "-" button: one less unit; the line is removed when it reaches 0.
    """
    return service.decrement(store, product_id)


@router.patch("/{product_id}", response_model=CartActionResult)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartQuantityUpdate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Set the quantity of a product in the cart (clamped to stock, 0 removes).
    """
    return service.set_quantity(store, product_id, payload.quantity)


@router.delete("/{product_id}", response_model=CartActionResult)
def remove_cart_item(
    product_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    """
    Remove a product from the cart.
    """
    return service.remove(store, product_id)


@router.delete("", response_model=CartActionResult)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    """
    Clear the entire cart.
    """
    return service.clear(store)
