from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - FREE_SHIPPING_THRESHOLD / FLAT_SHIPPING_FEE (checkout pricing)
      - MERCHANT_WHATSAPP_NUMBER (order notification target)
      - CART_STORAGE_DIR / CART_STORAGE_KEY (durable cart snapshots)
      - CART_MAX_OPEN_STORES (per-device stores kept in memory)
      - REMOVE_FROM_WISHLIST_ON_MOVE (drop wishlist entry after move-to-cart)
    """

    PROJECT_NAME: str = "Storefront Backend"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str
    DB_STATEMENT_TIMEOUT_MS: int = 10_000
    DB_POOL_TIMEOUT_S: int = 10

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Checkout pricing. Shipping is free only when subtotal > threshold.
    FREE_SHIPPING_THRESHOLD: float = 5000.0
    FLAT_SHIPPING_FEE: float = 500.0

    MERCHANT_WHATSAPP_NUMBER: str = "+1234567890"

    # Cart / wishlist snapshots
    CART_STORAGE_DIR: str = ".cart_storage"
    CART_STORAGE_KEY: str = "cart-storage"
    CART_MAX_OPEN_STORES: int = 1000
    REMOVE_FROM_WISHLIST_ON_MOVE: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
