import csv
import io
import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.checkout_service import build_order_with_items

logger = logging.getLogger(__name__)

# pending -> confirmed -> shipped -> delivered, cancelled from any
# non-terminal state. delivered and cancelled are terminal.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

PAYMENT_METHOD_LABELS = {
    "cash_on_delivery": "Cash on Delivery",
    "bank_transfer": "Bank Transfer",
    "credit_card": "Credit Card",
}

CSV_HEADER = ["Order ID", "Date", "Customer", "Email", "Phone", "Status", "Total", "Payment Method"]


class StockConflict(Exception):
    def __init__(self, item: OrderItem):
        super().__init__(f"Insufficient stock for {item.product_name}")
        self.item = item


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


class OrderService:
    """
    Admin-side order management.

    Responsibilities:
      - list / search / sort / export orders
      - enforce the status state machine
      - reserve stock when an order is confirmed, all-or-nothing
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.product_repo = product_repo

    # -------- Queries --------

    def list_orders(
        self,
        session: Session,
        status_filter: str | None = None,
        search: str | None = None,
        sort_by: str = "date",
        ascending: bool = False,
    ) -> list[OrderWithItemsRead]:
        """
        List orders with their items.

        search matches customer name, email, phone or order id
        (case-insensitive substring).
        """
        orders = self.order_repo.list_all(
            session, status=status_filter, sort_by=sort_by, ascending=ascending
        )

        if search:
            query = search.strip().lower()
            orders = [
                o for o in orders
                if query in o.customer_name.lower()
                or query in (o.customer_email or "").lower()
                or query in o.customer_phone
                or query in str(o.id).lower()
            ]

        return [
            build_order_with_items(o, self.order_repo.list_items_for_order(session, o.id))
            for o in orders
        ]

    def get_order(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self._get_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return build_order_with_items(order, items)

    @staticmethod
    def export_csv(orders: list[OrderWithItemsRead]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for o in orders:
            writer.writerow(
                [
                    str(o.id)[:8],
                    o.created_at.date().isoformat(),
                    o.customer_name,
                    o.customer_email or "",
                    o.customer_phone,
                    o.status,
                    f"{o.total_amount:.2f}",
                    PAYMENT_METHOD_LABELS.get(o.payment_method, o.payment_method),
                ]
            )
        return buf.getvalue()

    # -------- Status transitions --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update:

          pending   -> confirmed (reserves stock), cancelled
          confirmed -> shipped, cancelled
          shipped   -> delivered, cancelled
          delivered -> (no change)
          cancelled -> (no change)

        Any other request, including the current status, is a 400. The one
        exception is confirmed -> confirmed, which returns the order
        unchanged so a re-triggered confirmation never decrements stock twice.

        Raises:
            HTTPException(404): unknown order.
            HTTPException(400): transition not allowed.
            HTTPException(409): not enough stock, or the order changed
                status underneath us. Nothing is written.
            HTTPException(503): storage failure. Nothing is written.
        """
        order = self._get_or_404(session, order_id)

        current = order.status
        new = payload.status

        if current == new == "confirmed":
            return order  # type: ignore[return-value]

        if not can_transition(current, new):
            logger.info("Rejected order %s transition %s -> %s", order_id, current, new)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {new}",
            )

        try:
            if current == "pending" and new == "confirmed":
                self._reserve_stock(session, order)

            if not self.order_repo.transition_status(session, order.id, current, new):
                session.rollback()
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Order status changed concurrently, reload and retry",
                )
            session.commit()
        except StockConflict as exc:
            session.rollback()
            logger.warning("Order %s not confirmed: %s", order_id, exc)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Failed to update stock for product {exc.item.product_name}",
            )
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Order %s status update failed; rolled back", order_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to update order status",
            )

        session.refresh(order)
        logger.info("Order %s: %s -> %s", order.id, current, new)
        return order  # type: ignore[return-value]

    # -------- Helpers --------

    def _reserve_stock(self, session: Session, order: Order) -> None:
        """
        Decrement stock for every line item inside the caller's transaction.

        Items whose product no longer exists are skipped: the order keeps
        its history, there is just nothing left to reserve. Any other miss
        raises StockConflict and the caller rolls everything back.
        """
        for item in self.order_repo.list_items_for_order(session, order.id):
            if item.product_id is None:
                continue
            if self.product_repo.get_by_id(session, item.product_id) is None:
                logger.warning(
                    "Order %s: product %s no longer exists, skipping stock",
                    order.id,
                    item.product_id,
                )
                continue
            if not self.product_repo.decrement_stock(session, item.product_id, item.quantity):
                raise StockConflict(item)

    def _get_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order
