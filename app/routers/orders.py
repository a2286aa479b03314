import uuid
from datetime import date

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderRead,
    OrderSortField,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(require_admin)],
)

order_repo = OrderRepository()
product_repo = ProductRepository()
service = OrderService(order_repo, product_repo)


@router.get("", response_model=list[OrderWithItemsRead])
def list_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    q: str | None = None,
    sort_by: OrderSortField = "date",
    ascending: bool = False,
):
    """
    List all orders with items (admin only).

    - `status` filters by lifecycle state.
    - `q` searches customer name, email, phone and order id.
    - `sort_by` is one of date | status | customer | total.
    """
    return service.list_orders(session, status, q, sort_by, ascending)


@router.get("/export.csv")
def export_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    q: str | None = None,
    sort_by: OrderSortField = "date",
    ascending: bool = False,
):
    """
    Download the (filtered) order list as CSV.
    """
    orders = service.list_orders(session, status, q, sort_by, ascending)
    filename = f"orders-{date.today().isoformat()}.csv"
    return Response(
        content=service.export_csv(orders),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{order_id}", response_model=OrderWithItemsRead)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items (admin only).
    """
    return service.get_order(session, order_id)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

      pending   -> confirmed (decrements stock), cancelled

      confirmed -> shipped, cancelled

      shipped   -> delivered, cancelled

      delivered, cancelled -> (terminal)

    """
    return service.update_status(session, order_id, payload)
