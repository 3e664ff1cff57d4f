from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Action Center"
    debug: bool = False
    log_level: str | None = None  # defaults to DEBUG when debug is on, else INFO

    # API
    frontend_url: str = "http://localhost:3000"

    # Store
    store_backend: Literal["memory", "redis"] = "memory"
    seed_demo_data: bool = True  # only honoured by the memory backend
    redis_url: str = "redis://localhost:6379"
    redis_key_prefix: str = "actioncenter"
    redis_socket_timeout_seconds: float = 5.0

    # Pagination
    default_page_limit: int = 20
    max_page_limit: int = 200

    # SLA thresholds (hours remaining before the deadline)
    sla_red_hours: float = 2.0
    sla_amber_hours: float = 24.0

    # Per-item write lock
    item_lock_ttl_seconds: int = 30
    item_lock_wait_seconds: float = 5.0

    # Webhook redelivery
    webhook_retry_mode: Literal["simulated", "http"] = "simulated"
    webhook_retry_failure_rate: float = 0.10
    webhook_retry_timeout_seconds: float = 10.0
    webhook_redelivery_url: str = ""  # env: WEBHOOK_REDELIVERY_URL, POSTed with {"webhook_id": ...}

    # Summary badge freshness (0 = recompute on every call)
    summary_cache_seconds: float = 5.0

    # Snoozed items are moved back to open by a background poller
    snooze_wake_enabled: bool = True
    snooze_wake_interval_seconds: float = 60.0

    # Role-based queue access
    enforce_queue_permissions: bool = True

    @model_validator(mode="after")
    def check_lock_outlives_redelivery(self) -> "Settings":
        # The item lock is held across the webhook call; it must not expire mid-call
        if self.webhook_retry_timeout_seconds >= self.item_lock_ttl_seconds:
            raise ValueError(
                "webhook_retry_timeout_seconds must be less than item_lock_ttl_seconds"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
