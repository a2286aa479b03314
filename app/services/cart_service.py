import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartActionResult,
    CartLineRead,
    CartSignal,
    CartSummary,
)
from app.services.cart_store import CartStore


class CartService:
    """
    Business logic for cart intents.

    Responsibilities:
      - translate "+", "-", "add to cart" clicks into CartStore calls
      - resolve authoritative stock from the catalog at add time
      - report stock feedback as signals instead of errors
      - build cart summaries with line totals
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    # ---- internal helpers ----

    def get_available_product(self, session: Session, product_id: uuid.UUID) -> Product:
        """
        Load a product that can be put in a cart right now.

        Raises:
            HTTPException(404): unknown product.
            HTTPException(409): product out of stock.
        """
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_available:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Product is out of stock",
            )
        return product

    def _result(self, store: CartStore, signal: CartSignal, message: str) -> CartActionResult:
        return CartActionResult(signal=signal, message=message, cart=self.summary(store))

    # ---- public operations ----

    def summary(self, store: CartStore) -> CartSummary:
        items = [
            CartLineRead(
                product_id=line.product_id,
                name=line.name,
                unit_price=line.unit_price,
                image_ref=line.image_ref,
                quantity=line.quantity,
                stock_limit=line.stock_limit,
                line_total=line.line_total,
            )
            for line in store.items
        ]
        totals = store.totals
        return CartSummary(
            items=items,
            total_items=totals.total_items,
            total_price=totals.total_price,
        )

    def add_from_catalog(
        self,
        session: Session,
        store: CartStore,
        product_id: uuid.UUID,
        quantity: int = 1,
    ) -> CartActionResult:
        """
        Add `quantity` units of a catalog product.

        Stock is read from the catalog now, not trusted from the client.
        The line's stock limit is refreshed and the target quantity is
        clamped to it once. Whenever the line did not grow by exactly
        `quantity` (limit hit part-way, or stock shrank below what was
        already in the cart) max_stock_reached is reported.
        """
        product = self.get_available_product(session, product_id)

        before = store.get_cart_item(product.id)
        had = before.quantity if before else 0
        wanted = had + quantity

        store.add_to_cart(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            stock_limit=product.stock_quantity,
            image_ref=product.image_url,
        )
        if quantity > 1:
            store.update_quantity(product.id, min(wanted, product.stock_quantity))

        after = store.get_cart_item(product.id)
        if after is None or after.quantity != wanted:
            return self._result(
                store,
                "max_stock_reached",
                f"Only {product.stock_quantity} in stock!",
            )
        return self._result(store, "added", f"Added {quantity} item(s) to cart")

    def increment(self, store: CartStore, product_id: uuid.UUID) -> CartActionResult:
        line = store.get_cart_item(product_id)
        if line is None:
            return self._result(store, "not_in_cart", "Item is not in the cart")
        if line.quantity >= line.stock_limit:
            return self._result(store, "max_stock_reached", "Maximum stock reached")
        store.update_quantity(product_id, line.quantity + 1)
        return self._result(store, "updated", "Quantity updated")

    def decrement(self, store: CartStore, product_id: uuid.UUID) -> CartActionResult:
        line = store.get_cart_item(product_id)
        if line is None:
            return self._result(store, "not_in_cart", "Item is not in the cart")
        return self.set_quantity(store, product_id, line.quantity - 1)

    def set_quantity(
        self,
        store: CartStore,
        product_id: uuid.UUID,
        quantity: int,
    ) -> CartActionResult:
        if store.get_cart_item(product_id) is None:
            return self._result(store, "not_in_cart", "Item is not in the cart")
        store.update_quantity(product_id, quantity)
        if store.get_cart_item(product_id) is None:
            return self._result(store, "removed", "Item removed from cart")
        return self._result(store, "updated", "Quantity updated")

    def remove(self, store: CartStore, product_id: uuid.UUID) -> CartActionResult:
        if store.get_cart_item(product_id) is None:
            return self._result(store, "not_in_cart", "Item is not in the cart")
        store.remove_from_cart(product_id)
        return self._result(store, "removed", "Item removed from cart")

    def clear(self, store: CartStore) -> CartActionResult:
        store.clear_cart()
        return self._result(store, "cleared", "Cart cleared")
