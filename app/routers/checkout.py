from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.dependencies import get_cart_store, get_device_id
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    BuyNowRequest,
    CheckoutRequest,
    CheckoutResult,
    OrderConfirmation,
)
from app.services.cart_store import CartStore
from app.services.checkout_service import CheckoutService, ConfirmationHandoff

settings = get_settings()

router = APIRouter(prefix="/checkout", tags=["Checkout"])

service = CheckoutService(
    OrderRepository(),
    ProductRepository(),
    ConfirmationHandoff(),
    free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
    flat_shipping_fee=settings.FLAT_SHIPPING_FEE,
    merchant_number=settings.MERCHANT_WHATSAPP_NUMBER,
)


@router.post("", response_model=CheckoutResult)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    device_id: str = Depends(get_device_id),
    store: CartStore = Depends(get_cart_store),
):
    """
    Create an order from the device's cart and clear the cart.

    - 400 if the cart is empty (nothing is written).
    - 409 if a submission from this device is still running.
    - 503 if storage fails; the cart is kept for a retry.
    """
    return service.checkout_cart(session, device_id, store, payload)


@router.post("/buy-now", response_model=CheckoutResult)
def buy_now(
    payload: BuyNowRequest,
    session: Session = Depends(get_session),
    device_id: str = Depends(get_device_id),
):
    """
    Order a single product directly. The cart is left untouched.
    """
    return service.buy_now(session, device_id, payload)


@router.get("/confirmation/{token}", response_model=OrderConfirmation)
def get_confirmation(token: str):
    """
    Order summary for the confirmation view.

    Readable once; later reads return the placeholder summary.
    """
    return service.handoff.take(token)
