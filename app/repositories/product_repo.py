import uuid
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for the catalog columns used by cart and orders.

    - Pure DB operations.
    - No commits here; stock writes belong to the caller's transaction.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Atomically take `quantity` units off a product's stock.

        The UPDATE only matches while stock_quantity >= quantity, so two
        concurrent confirmations can never push stock below zero.
        Product instances already loaded in the session are not refreshed
        until the next commit/rollback expires them.

        Returns:
            True if the row was decremented, False if the product is gone
            or has too little stock.
        """
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock_quantity >= quantity,
            )
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1
