import logging

from pydantic import ValidationError

from app.core.local_storage import LocalStorage
from app.models.cart import CartSnapshot

logger = logging.getLogger(__name__)


class CartRepository:
    """
    Loads and saves per-device cart/wishlist snapshots.

    Snapshots are stored as {"items": [...], "wishlist": [...]} under a
    caller-supplied key. Totals are never written.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self, key: str) -> CartSnapshot:
        """
        Return the stored snapshot, or an empty one.

        A missing key, unreadable file or a blob that no longer matches
        the current line/entry shape all yield an empty snapshot.
        """
        try:
            blob = self.storage.load(key)
        except (OSError, ValueError):
            logger.warning("Discarding unreadable cart snapshot %r", key, exc_info=True)
            return CartSnapshot()

        if blob is None:
            return CartSnapshot()

        try:
            return CartSnapshot.model_validate(blob)
        except ValidationError:
            logger.warning("Discarding invalid cart snapshot %r", key, exc_info=True)
            return CartSnapshot()

    def save(self, key: str, snapshot: CartSnapshot) -> None:
        self.storage.save(key, snapshot.model_dump(mode="json"))
