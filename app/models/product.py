import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Only the columns the cart, checkout and order confirmation flows read
    or write are mapped here; the catalog itself is managed elsewhere.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    price: float = Field(
        ge=0,
        description="Unit price (DA)",
    )

    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    in_stock: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be bought from the storefront",
    )

    image_url: str | None = Field(
        default=None,
        description="Main image public URL",
    )

    category_id: uuid.UUID | None = Field(
        default=None,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )

    @property
    def is_available(self) -> bool:
        return self.in_stock and self.stock_quantity > 0
