import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Submitted purchase.

    total_amount = subtotal + shipping_cost, fixed at creation time and
    never re-derived from the line items.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    customer_name: str = Field(
        description="Name of the customer placing the order",
    )
    customer_phone: str = Field(
        description="Contact phone number",
    )
    customer_email: str | None = Field(
        default=None,
    )
    customer_address: str | None = Field(
        default=None,
        description="Delivery address",
    )
    special_instructions: str | None = Field(
        default=None,
        description="Optional note / special instructions",
    )

    # cash_on_delivery | bank_transfer | credit_card
    payment_method: str = Field(
        default="cash_on_delivery",
    )

    subtotal: float = Field(ge=0)
    shipping_cost: float = Field(ge=0)
    total_amount: float = Field(
        ge=0,
        description="subtotal + shipping_cost at submission time",
    )

    # pending | confirmed | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last status change (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Frozen snapshot of one product line inside an order.

    product_id is a soft reference: the product may be deleted later
    without invalidating the order's history, so there is no FK.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID | None = Field(
        default=None,
        index=True,
    )

    product_name: str
    product_image: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price: float = Field(
        ge=0,
        description="Unit price at time of order",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
