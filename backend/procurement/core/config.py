import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Procurement Planner"
    api_v1_prefix: str = "/api/v1"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    api_key: str = os.getenv("PROCUREMENT_API_KEY", "dev-api-key-change-me")

    # Security / RBAC
    allowed_roles: tuple[str, ...] = ("admin", "planner", "supplier", "customer")
    default_role: str = "planner"

    # Distribution algorithm
    min_performance_threshold: float = 0.7
    preferred_supplier_bonus: float = 0.2
    reliable_supplier_bonus: float = 0.1
    min_allocation_quantity: int = 1
    composite_performance_weight: float = 0.6
    composite_capacity_weight: float = 0.4
    capacity_warning_ratio: float = 0.9
    default_strategy: str = "balanced"

    # Supplier lookups are cached for this many seconds (0 disables caching)
    supplier_cache_ttl_seconds: float = 0.0

    # Optional CSV/Excel catalog used to seed the in-memory supplier store
    supplier_catalog_path: str | None = os.getenv("SUPPLIER_CATALOG_PATH")

    # Event bus (audit + notifications). Events are only logged when unset.
    kafka_bootstrap_servers: str | None = os.getenv("KAFKA_BOOTSTRAP_SERVERS")
    audit_topic: str = "procurement.audit"
    notification_topic: str = "procurement.notifications"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
