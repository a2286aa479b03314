import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
PaymentMethod = Literal["cash_on_delivery", "bank_transfer", "credit_card"]
OrderSortField = Literal["date", "status", "customer", "total"]

# E.164-ish: optional '+', no leading zero, 2-15 digits.
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


class CheckoutRequest(SQLModel):
    """
    Customer contact/delivery details for a cart checkout.

    Required:
      - customer_name
      - customer_phone (validated, separators stripped)

    Optional (blank strings become None):
      - customer_email (validated)
      - customer_address
      - special_instructions
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str = Field(max_length=100)
    customer_phone: str
    customer_email: EmailStr | None = None
    customer_address: str | None = None
    special_instructions: str | None = None
    payment_method: PaymentMethod = "cash_on_delivery"

    @field_validator("customer_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("customer_phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        v = _PHONE_SEPARATORS.sub("", v.strip())
        if not PHONE_PATTERN.match(v):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator(
        "customer_email",
        "customer_address",
        "special_instructions",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class BuyNowRequest(CheckoutRequest):
    """
    Single-product purchase that bypasses the cart entirely.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID | None = None
    product_id: uuid.UUID | None
    product_name: str
    product_image: str | None = None
    quantity: int
    price: float
    line_total: float


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    customer_name: str
    customer_phone: str
    customer_email: str | None
    customer_address: str | None
    special_instructions: str | None
    payment_method: str
    subtotal: float
    shipping_cost: float
    total_amount: float
    status: OrderStatus
    created_at: datetime
    updated_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class OrderConfirmation(SQLModel):
    """
    Order summary handed to the confirmation view exactly once.

    When the hand-off has already been consumed (e.g. page reload) the
    placeholder variant is returned: no order id, no items, zero totals.
    """

    order_id: uuid.UUID | None = None
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str | None = None
    customer_address: str | None = None
    special_instructions: str | None = None
    items: list[OrderItemRead] = Field(default_factory=list)
    subtotal: float = 0.0
    shipping_cost: float = 0.0
    total_amount: float = 0.0
    is_placeholder: bool = False


class CheckoutResult(SQLModel):
    """
    Response to a successful submission.

    notification_url is the pre-filled merchant message; opening it is
    the client's job and has no bearing on the order.
    """

    order: OrderWithItemsRead
    confirmation_token: str
    notification_url: str
