import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel, Field

# Outcome of a cart/wishlist intent, surfaced to the UI as a notice.
CartSignal = Literal[
    "added",
    "updated",
    "removed",
    "cleared",
    "max_stock_reached",
    "not_in_cart",
]


class CartAddRequest(SQLModel):
    """
    Payload for "add to cart" from the catalog.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartQuantityUpdate(SQLModel):
    """
    Payload for setting a line's quantity directly.

    0 is accepted and removes the line.
    """

    quantity: int = Field(ge=0)


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    product_id: uuid.UUID
    name: str
    unit_price: float
    image_ref: str | None = None
    quantity: int
    stock_limit: int
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total_items: int
    total_price: float


class CartActionResult(SQLModel):
    """
    Result of a cart intent: what happened plus the cart afterwards.
    """

    signal: CartSignal
    message: str
    cart: CartSummary


class WishlistEntryRead(SQLModel):
    product_id: uuid.UUID
    name: str
    unit_price: float
    image_ref: str | None = None
    saved_at: datetime
    in_cart: bool = False


class WishlistAddRequest(SQLModel):
    product_id: uuid.UUID


class WishlistRead(SQLModel):
    items: list[WishlistEntryRead]
    count: int
