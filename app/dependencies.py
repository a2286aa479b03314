from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from app.core.config import get_settings
from app.core.local_storage import JsonFileStorage
from app.repositories.cart_repo import CartRepository
from app.services.cart_store import CartStore, CartStoreRegistry

settings = get_settings()

# Header carrying the per-device cart id generated by the storefront.
CART_SESSION_HEADER = "X-Cart-Session"


@lru_cache
def get_cart_registry() -> CartStoreRegistry:
    """
    Registry of per-device cart stores backed by JSON snapshots on disk.

    Tests override this dependency with a MemoryStorage-backed registry.
    """
    repo = CartRepository(JsonFileStorage(settings.CART_STORAGE_DIR))
    return CartStoreRegistry(
        repo,
        settings.CART_STORAGE_KEY,
        max_stores=settings.CART_MAX_OPEN_STORES,
    )


def get_device_id(
    x_cart_session: str | None = Header(default=None, alias=CART_SESSION_HEADER),
) -> str:
    """
    Resolve the device id from the X-Cart-Session header.

    Raises:
        HTTPException(400): header missing or blank.
    """
    device_id = (x_cart_session or "").strip()
    if not device_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {CART_SESSION_HEADER} header",
        )
    return device_id


def get_cart_store(
    device_id: str = Depends(get_device_id),
    registry: CartStoreRegistry = Depends(get_cart_registry),
) -> CartStore:
    return registry.get(device_id)
