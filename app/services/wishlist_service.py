import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.cart import CartLine, SavedProduct, WishlistEntry
from app.schemas.cart import CartActionResult, WishlistEntryRead, WishlistRead
from app.services.cart_service import CartService
from app.services.cart_store import CartStore


def describe_saved(item: SavedProduct) -> str:
    """
    One-line label for a drawer row, cart line or wishlist entry alike.
    """
    match item:
        case CartLine(name=name, quantity=quantity, unit_price=price):
            return f"{name} - {price:.2f} DA x{quantity}"
        case WishlistEntry(name=name, unit_price=price):
            return f"{name} - {price:.2f} DA"
        case _:
            raise TypeError(f"Unsupported saved product: {type(item).__name__}")


class WishlistService:
    """
    Thin set abstraction over the store's wishlist.

    Moving an entry to the cart goes through the live catalog stock; the
    entry itself is kept unless remove_on_move is enabled.
    """

    def __init__(self, cart_service: CartService, remove_on_move: bool = False):
        self.cart_service = cart_service
        self.remove_on_move = remove_on_move

    def list(self, store: CartStore) -> WishlistRead:
        items = [
            WishlistEntryRead(
                product_id=e.product_id,
                name=e.name,
                unit_price=e.unit_price,
                image_ref=e.image_ref,
                saved_at=e.saved_at,
                in_cart=store.get_cart_item(e.product_id) is not None,
            )
            for e in store.wishlist
        ]
        return WishlistRead(items=items, count=len(items))

    def add(self, session: Session, store: CartStore, product_id: uuid.UUID) -> WishlistRead:
        product = self.cart_service.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        store.add_to_wishlist(
            WishlistEntry(
                product_id=product.id,
                name=product.name,
                unit_price=product.price,
                image_ref=product.image_url,
            )
        )
        return self.list(store)

    def remove(self, store: CartStore, product_id: uuid.UUID) -> WishlistRead:
        store.remove_from_wishlist(product_id)
        return self.list(store)

    def clear(self, store: CartStore) -> WishlistRead:
        store.clear_wishlist()
        return self.list(store)

    def move_to_cart(
        self,
        session: Session,
        store: CartStore,
        product_id: uuid.UUID,
    ) -> CartActionResult:
        """
        Add a wishlist product to the cart using its live stock.

        Raises:
            HTTPException(404): product not in the wishlist.
            HTTPException(409): product unknown to the catalog or out of
                stock; nothing is added.
        """
        if not store.is_in_wishlist(product_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in wishlist",
            )

        product = self.cart_service.product_repo.get_by_id(session, product_id)
        if product is None or not product.is_available:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Stock unknown or exhausted for this product",
            )

        result = self.cart_service.add_from_catalog(session, store, product_id)

        if self.remove_on_move and result.signal == "added":
            store.remove_from_wishlist(product_id)
        return result
