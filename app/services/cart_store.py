import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone

from app.models.cart import CartLine, CartSnapshot, WishlistEntry
from app.repositories.cart_repo import CartRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartTotals:
    total_items: int = 0
    total_price: float = 0.0


class CartStore:
    """
    Cart lines and wishlist entries for one device.

    Lifecycle:
      - hydrate(): load the last snapshot (totals are rebuilt, not loaded)
      - every mutation persists the snapshot immediately
      - flush(): write the snapshot again, used on shutdown

    Rules:
      - 1 <= line.quantity <= line.stock_limit, always
      - at most one wishlist entry per product
      - no operation raises; unknown ids are no-ops
    """

    def __init__(self, repo: CartRepository, key: str):
        self.repo = repo
        self.key = key
        self._items: list[CartLine] = []
        self._wishlist: list[WishlistEntry] = []
        self._totals = CartTotals()
        self._lock = threading.RLock()

    # ---- lifecycle ----

    def hydrate(self) -> "CartStore":
        snapshot = self.repo.load(self.key)
        with self._lock:
            # Drop anything that slipped past the invariants in an old snapshot.
            self._items = [
                line for line in snapshot.items if line.quantity <= line.stock_limit
            ]
            self._wishlist = self._dedupe(snapshot.wishlist)
            self.recalculate()
        return self

    def flush(self) -> None:
        with self._lock:
            self._persist()

    # ---- read access ----

    @property
    def items(self) -> list[CartLine]:
        with self._lock:
            return [line.model_copy() for line in self._items]

    @property
    def wishlist(self) -> list[WishlistEntry]:
        with self._lock:
            return [entry.model_copy() for entry in self._wishlist]

    @property
    def totals(self) -> CartTotals:
        return self._totals

    def get_cart_item(self, product_id: uuid.UUID) -> CartLine | None:
        with self._lock:
            line = self._find_line(product_id)
            return line.model_copy() if line else None

    def is_in_wishlist(self, product_id: uuid.UUID) -> bool:
        with self._lock:
            return any(e.product_id == product_id for e in self._wishlist)

    # ---- cart mutations ----

    def add_to_cart(
        self,
        product_id: uuid.UUID,
        name: str,
        unit_price: float,
        stock_limit: int,
        image_ref: str | None = None,
    ) -> None:
        """
        Add one unit of a product.

        Existing line: +1, clamped to stock_limit (silent no-op at the limit).
        New line: quantity 1, unless stock_limit is 0.
        """
        stock_limit = max(0, stock_limit)
        with self._lock:
            line = self._find_line(product_id)
            if line is None:
                if stock_limit < 1:
                    return
                self._items.append(
                    CartLine(
                        product_id=product_id,
                        name=name,
                        unit_price=unit_price,
                        image_ref=image_ref,
                        quantity=1,
                        stock_limit=stock_limit,
                    )
                )
            else:
                line.stock_limit = stock_limit
                if stock_limit < 1:
                    self._items.remove(line)
                else:
                    line.quantity = min(line.quantity + 1, stock_limit)
            self._commit()

    def remove_from_cart(self, product_id: uuid.UUID) -> None:
        with self._lock:
            self._items = [l for l in self._items if l.product_id != product_id]
            self._commit()

    def update_quantity(self, product_id: uuid.UUID, quantity: int) -> None:
        """
        Set a line's quantity, clamped to [0, stock_limit]; 0 removes it.
        """
        with self._lock:
            line = self._find_line(product_id)
            if line is None:
                return
            valid = min(max(0, quantity), line.stock_limit)
            if valid == 0:
                self.remove_from_cart(product_id)
                return
            line.quantity = valid
            self._commit()

    def clear_cart(self) -> None:
        with self._lock:
            self._items = []
            self._commit()

    # ---- wishlist mutations ----

    def add_to_wishlist(self, entry: WishlistEntry) -> None:
        with self._lock:
            if any(e.product_id == entry.product_id for e in self._wishlist):
                return
            self._wishlist.append(
                entry.model_copy(update={"saved_at": datetime.now(timezone.utc)})
            )
            self._commit()

    def remove_from_wishlist(self, product_id: uuid.UUID) -> None:
        with self._lock:
            self._wishlist = [e for e in self._wishlist if e.product_id != product_id]
            self._commit()

    def clear_wishlist(self) -> None:
        with self._lock:
            self._wishlist = []
            self._commit()

    # ---- totals ----

    def recalculate(self) -> CartTotals:
        """
        Rebuild totals from the current lines. Never incremental.
        """
        with self._lock:
            self._totals = CartTotals(
                total_items=sum(l.quantity for l in self._items),
                total_price=sum(l.unit_price * l.quantity for l in self._items),
            )
            return self._totals

    # ---- internals ----

    def _find_line(self, product_id: uuid.UUID) -> CartLine | None:
        for line in self._items:
            if line.product_id == product_id:
                return line
        return None

    @staticmethod
    def _dedupe(entries: list[WishlistEntry]) -> list[WishlistEntry]:
        seen: set[uuid.UUID] = set()
        unique: list[WishlistEntry] = []
        for entry in entries:
            if entry.product_id not in seen:
                seen.add(entry.product_id)
                unique.append(entry)
        return unique

    def _commit(self) -> None:
        self.recalculate()
        self._persist()

    def _persist(self) -> None:
        snapshot = CartSnapshot(items=self._items, wishlist=self._wishlist)
        try:
            self.repo.save(self.key, snapshot)
        except OSError:
            # In-memory state stays authoritative; next mutation retries.
            logger.error("Failed to persist cart snapshot %r", self.key, exc_info=True)


class CartStoreRegistry:
    """
    Hydrated CartStores keyed by device id, at most `max_stores` at a time.

    Stores are created lazily on first access. When the registry is full the
    least recently used store is flushed and dropped; its next access
    rehydrates it from durable storage. All open stores are flushed together
    on application shutdown. Separate processes sharing the same storage
    directory are last-write-wins per device.
    """

    def __init__(self, repo: CartRepository, base_key: str, max_stores: int = 1000):
        self.repo = repo
        self.base_key = base_key
        self.max_stores = max_stores
        self._stores: OrderedDict[str, CartStore] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, device_id: str) -> CartStore:
        with self._lock:
            store = self._stores.get(device_id)
            if store is None:
                store = CartStore(self.repo, f"{self.base_key}:{device_id}").hydrate()
                self._stores[device_id] = store
                self._evict()
            else:
                self._stores.move_to_end(device_id)
            return store

    def flush_all(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.flush()
        logger.info("Flushed %d cart store(s)", len(stores))

    def _evict(self) -> None:
        # Flushed under the registry lock so a concurrent get() of the same
        # device cannot hydrate before the snapshot is written.
        while len(self._stores) > self.max_stores:
            device_id, store = self._stores.popitem(last=False)
            store.flush()
            logger.debug("Evicted cart store for device %r", device_id)
