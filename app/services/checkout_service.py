import logging
import secrets
import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.notifications import build_message_url, build_order_message
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    BuyNowRequest,
    CheckoutRequest,
    CheckoutResult,
    OrderConfirmation,
    OrderItemRead,
    OrderWithItemsRead,
)
from app.services.cart_store import CartStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    """
    One line to be frozen into an OrderItem.
    """

    product_id: uuid.UUID | None
    name: str
    image: str | None
    unit_price: float
    quantity: int


@dataclass(frozen=True)
class OrderPricing:
    subtotal: float
    shipping_cost: float
    total_amount: float


def price_items(
    lines: Iterable[OrderLine],
    free_shipping_threshold: float,
    flat_shipping_fee: float,
) -> OrderPricing:
    """
    subtotal = sum(unit_price * quantity)
    shipping = 0 if subtotal > threshold else flat fee (threshold is exclusive)
    total    = subtotal + shipping
    """
    subtotal = sum(line.unit_price * line.quantity for line in lines)
    shipping_cost = 0.0 if subtotal > free_shipping_threshold else flat_shipping_fee
    return OrderPricing(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        total_amount=subtotal + shipping_cost,
    )


class ConfirmationHandoff:
    """
    One-time hand-off of an order summary to the confirmation view.

    take() pops the summary; any later read of the same token gets the
    placeholder. Nothing here is persisted, so a restart forgets all
    pending hand-offs too.
    """

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, OrderConfirmation] = OrderedDict()
        self._lock = threading.Lock()

    def stash(self, confirmation: OrderConfirmation) -> str:
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._entries[token] = confirmation
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return token

    def take(self, token: str) -> OrderConfirmation:
        with self._lock:
            confirmation = self._entries.pop(token, None)
        if confirmation is None:
            return OrderConfirmation(is_placeholder=True)
        return confirmation


class CheckoutService:
    """
    Business logic for order submission.

    Responsibilities:
      - reject empty submissions before touching storage
      - price the order (subtotal, shipping, total)
      - persist Order + OrderItems in a single transaction
      - clear the cart after a successful cart checkout only
      - build the merchant notification link
      - hand the order summary to the confirmation view once
      - refuse a second submission from a device while one is in flight
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        handoff: ConfirmationHandoff,
        free_shipping_threshold: float,
        flat_shipping_fee: float,
        merchant_number: str,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.handoff = handoff
        self.free_shipping_threshold = free_shipping_threshold
        self.flat_shipping_fee = flat_shipping_fee
        self.merchant_number = merchant_number
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()

    # -------- Submission guard --------

    @contextmanager
    def _submission(self, submitter: str) -> Iterator[None]:
        with self._in_flight_lock:
            if submitter in self._in_flight:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="An order submission is already in progress",
                )
            self._in_flight.add(submitter)
        try:
            yield
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(submitter)

    # -------- Public operations --------

    def checkout_cart(
        self,
        session: Session,
        device_id: str,
        store: CartStore,
        payload: CheckoutRequest,
    ) -> CheckoutResult:
        """
        Turn the device's cart into an order.

        On storage failure the cart is left untouched so the customer can
        retry without re-entering anything.
        """
        with self._submission(device_id):
            cart_lines = store.items
            if not cart_lines:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Your cart is empty",
                )

            lines = [
                OrderLine(
                    product_id=cl.product_id,
                    name=cl.name,
                    image=cl.image_ref,
                    unit_price=cl.unit_price,
                    quantity=cl.quantity,
                )
                for cl in cart_lines
            ]
            order = self._place_order(session, payload, lines)
            store.clear_cart()
            return self._finish(order)

    def buy_now(
        self,
        session: Session,
        device_id: str,
        payload: BuyNowRequest,
    ) -> CheckoutResult:
        """
        Order a single product at its current catalog price.

        The cart is neither read nor modified.
        """
        with self._submission(device_id):
            product = self.product_repo.get_by_id(session, payload.product_id)
            if not product:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Product not found",
                )
            if not product.is_available:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Product is out of stock",
                )
            if payload.quantity > product.stock_quantity:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Only {product.stock_quantity} in stock!",
                )

            line = OrderLine(
                product_id=product.id,
                name=product.name,
                image=product.image_url,
                unit_price=product.price,
                quantity=payload.quantity,
            )
            order = self._place_order(session, payload, [line])
            return self._finish(order)

    # -------- Helpers --------

    def _place_order(
        self,
        session: Session,
        payload: CheckoutRequest,
        lines: list[OrderLine],
    ) -> OrderWithItemsRead:
        """
        Persist the order row, then its items, then commit once.

        The order row is flushed first to obtain its id. Any storage error
        rolls back both, so an order never exists without its items.
        """
        pricing = price_items(lines, self.free_shipping_threshold, self.flat_shipping_fee)

        try:
            order = Order(
                customer_name=payload.customer_name,
                customer_phone=payload.customer_phone,
                customer_email=payload.customer_email,
                customer_address=payload.customer_address,
                special_instructions=payload.special_instructions,
                payment_method=payload.payment_method,
                subtotal=pricing.subtotal,
                shipping_cost=pricing.shipping_cost,
                total_amount=pricing.total_amount,
                status="pending",
            )
            order = self.order_repo.create_order(session, order)

            items = self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        product_name=line.name,
                        product_image=line.image,
                        quantity=line.quantity,
                        price=line.unit_price,
                    )
                    for line in lines
                ],
            )

            session.commit()
            session.refresh(order)
            for item in items:
                session.refresh(item)
        except SQLAlchemyError:
            session.rollback()
            logger.exception(
                "Order submission failed for %s; transaction rolled back",
                payload.customer_phone,
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Order could not be placed, please retry",
            )

        logger.info("Order %s placed (%d item(s), total %.2f)", order.id, len(items), order.total_amount)
        return build_order_with_items(order, items)

    def _finish(self, order: OrderWithItemsRead) -> CheckoutResult:
        message = build_order_message(
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_email=order.customer_email,
            customer_address=order.customer_address,
            special_instructions=order.special_instructions,
            items=[(it.product_name, it.price, it.quantity) for it in order.items],
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            total_amount=order.total_amount,
        )
        confirmation = OrderConfirmation(
            order_id=order.id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_email=order.customer_email,
            customer_address=order.customer_address,
            special_instructions=order.special_instructions,
            items=order.items,
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            total_amount=order.total_amount,
        )
        return CheckoutResult(
            order=order,
            confirmation_token=self.handoff.stash(confirmation),
            notification_url=build_message_url(self.merchant_number, message),
        )


def build_order_with_items(order: Order, items: list[OrderItem]) -> OrderWithItemsRead:
    """
    Compose OrderWithItemsRead from ORM models.

    Totals come from the order row as stored; line totals are display-only.
    """
    return OrderWithItemsRead(
        id=order.id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        customer_email=order.customer_email,
        customer_address=order.customer_address,
        special_instructions=order.special_instructions,
        payment_method=order.payment_method,
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        total_amount=order.total_amount,
        status=order.status,  # Literal
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                product_image=it.product_image,
                quantity=it.quantity,
                price=it.price,
                line_total=it.quantity * it.price,
            )
            for it in items
        ],
    )
