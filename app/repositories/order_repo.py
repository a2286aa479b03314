import uuid
from datetime import datetime, timezone

from sqlalchemy import func, update
from sqlmodel import Session, col, select

from app.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation and confirmation are multi-step
        transactions. The service is responsible for commit/rollback.
    """

    _SORT_COLUMNS = {
        "date": col(Order.created_at),
        "status": col(Order.status),
        "customer": func.lower(col(Order.customer_name)),
        "total": col(Order.total_amount),
    }

    # ---- Orders ----

    def list_all(
        self,
        session: Session,
        status: str | None = None,
        sort_by: str = "date",
        ascending: bool = False,
    ) -> list[Order]:
        sort_col = self._SORT_COLUMNS.get(sort_by, col(Order.created_at))
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(sort_col.asc() if ascending else sort_col.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def transition_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: str,
        new: str,
    ) -> bool:
        """
        Compare-and-set the status column.

        Only matches while the row still has `expected` status, which is
        what stops a double confirmation from decrementing stock twice.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(col(OrderItem.created_at))
        )
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
