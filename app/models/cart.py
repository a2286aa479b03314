import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import Field as PydanticField
from sqlmodel import SQLModel, Field


class CartLine(SQLModel):
    """
    One product's presence in the active cart.

    Not a table: cart lines live in the per-device CartStore and are
    mirrored to durable local storage, never to the database.

    Invariant: 1 <= quantity <= stock_limit.
    """

    kind: Literal["cart_line"] = "cart_line"

    product_id: uuid.UUID
    name: str
    unit_price: float = Field(ge=0)
    image_ref: str | None = None

    quantity: int = Field(
        ge=1,
        description="Must be >= 1; a line reaching 0 is removed",
    )

    stock_limit: int = Field(
        ge=0,
        description="Stock snapshot taken when the line was created or last touched",
    )

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class WishlistEntry(SQLModel):
    """
    Saved-for-later product. At most one entry per product_id.
    """

    kind: Literal["wishlist_entry"] = "wishlist_entry"

    product_id: uuid.UUID
    name: str
    unit_price: float = Field(ge=0)
    image_ref: str | None = None

    saved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


# Shared listing code (drawer, wishlist page) takes either kind of entry.
SavedProduct = Annotated[
    Union[CartLine, WishlistEntry],
    PydanticField(discriminator="kind"),
]


class CartSnapshot(SQLModel):
    """
    What gets persisted for one device. Totals are deliberately absent:
    they are rebuilt from `items` on every load.
    """

    items: list[CartLine] = Field(default_factory=list)
    wishlist: list[WishlistEntry] = Field(default_factory=list)
