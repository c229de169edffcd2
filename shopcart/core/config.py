# shopcart/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # --- API Info ---
    API_TITLE: str = "ShopCart API"
    API_DESCRIPTION: str = "Guest and persistent shopping carts with login-time reconciliation."
    API_VERSION: str = "1.0.0"

    # --- Storage ---
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shopcart.db")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CART_CACHE_BACKEND: str = os.getenv("CART_CACHE_BACKEND", "memory")  # memory | redis

    # --- Cart rules ---
    MAX_QUANTITY: int = int(os.getenv("CART_MAX_QUANTITY", "100"))
    CART_CACHE_TTL_MINUTES: int = int(os.getenv("CART_CACHE_TTL_MINUTES", "60"))
    GUEST_CART_SESSION_KEY: str = os.getenv("GUEST_CART_SESSION_KEY", "guest_cart")
    CART_CACHE_KEY_PREFIX: str = os.getenv("CART_CACHE_KEY_PREFIX", "user_cart:")

    # --- Sessions & logging ---
    SESSION_SECRET_KEY: str = os.getenv("SESSION_SECRET_KEY", "change-me")
    LOG_CONFIG_FILE: str = os.getenv("LOG_CONFIG_FILE", "logging.conf")

    @property
    def cart_cache_ttl_seconds(self) -> int:
        return self.CART_CACHE_TTL_MINUTES * 60


settings = Settings()
