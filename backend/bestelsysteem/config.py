"""
Runtime configuration for Bestelsysteem.

All values come from environment variables and are read once into a
Settings object when the application is created.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass
class Settings:
    """Application settings with defaults for local development."""

    # Storage backend: "inmemory" or "sqlalchemy"
    storage_backend: str = "inmemory"
    database_url: str = "sqlite:///./bestelsysteem.db"
    use_alembic: bool = False

    # Auth
    jwt_secret_key: str = "dev-secret-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 480
    default_user_password: str = "Bier!"
    default_admin_password: str = "admin"

    # Notification throttle windows in seconds (0 disables throttling)
    order_changed_throttle_seconds: float = 5.0
    data_changed_throttle_seconds: float = 10.0

    # Product cache expiry in seconds (0 keeps entries until invalidated)
    product_cache_ttl_seconds: float = 0.0

    # Per-line quantity cap for orders (None accepts any non-negative quantity)
    max_item_quantity: Optional[int] = None

    timezone: str = "Europe/Amsterdam"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            storage_backend=os.getenv("STORAGE_BACKEND", "inmemory").lower(),
            database_url=os.getenv("APP_DATABASE_URL", "sqlite:///./bestelsysteem.db"),
            use_alembic=os.getenv("USE_ALEMBIC", "false").lower() == "true",
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", "dev-secret-key"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480")),
            default_user_password=os.getenv("DEFAULT_USER_PASSWORD", "Bier!"),
            default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin"),
            order_changed_throttle_seconds=_env_float("ORDER_CHANGED_THROTTLE_SECONDS", 5.0),
            data_changed_throttle_seconds=_env_float("DATA_CHANGED_THROTTLE_SECONDS", 10.0),
            product_cache_ttl_seconds=_env_float("PRODUCT_CACHE_TTL_SECONDS", 0.0),
            max_item_quantity=_env_optional_int("MAX_ITEM_QUANTITY"),
            timezone=os.getenv("APP_TIMEZONE", "Europe/Amsterdam"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
