from functools import lru_cache
from urllib.parse import urlparse

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.app.models.enums import TenantStatus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Tenant Membership Core"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True
    metrics_api_key: str | None = None  # If set, /metrics requires X-Metrics-Key

    # Database
    database_url: str
    database_migrations_url: str | None = None  # Optional owner-role URL for Alembic
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100
    database_busy_timeout: float = 30.0  # SQLite only: seconds to wait on a locked database

    # Tenants
    tenant_initial_status: TenantStatus = TenantStatus.PENDING

    # Invites
    invite_default_ttl_hours: int | None = 48  # None or 0 = invites never expire
    invite_code_bytes: int = 16
    invite_code_max_attempts: int = 5
    invite_retention_days: int = 30  # Redeemed invites stay listed this long

    # Concurrency
    optimistic_retry_attempts: int = 5
    cascade_max_attempts: int = 3

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10
    allowed_app_url_domains: list[str] = ["localhost", "127.0.0.1"]
    app_url: str = "http://localhost:3000"  # Frontend URL for invite links

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_task_queue: str = "membership-jobs"
    cascade_sweep_schedule: str | None = None  # Cron syntax, e.g. "*/15 * * * *"

    @field_validator("tenant_initial_status")
    @classmethod
    def validate_initial_status(cls, v: TenantStatus) -> TenantStatus:
        if v == TenantStatus.ARCHIVED:
            raise ValueError("TENANT_INITIAL_STATUS must be 'pending' or 'active'")
        return v

    @field_validator("invite_code_max_attempts", "optimistic_retry_attempts", "cascade_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Retry budgets must allow at least one attempt")
        return v

    @field_validator("invite_code_bytes")
    @classmethod
    def validate_code_bytes(cls, v: int) -> int:
        if v < 8:
            raise ValueError("INVITE_CODE_BYTES must be at least 8")
        return v

    @field_validator("app_url")
    @classmethod
    def validate_app_url(cls, v: str, info: ValidationInfo) -> str:
        """Validate APP_URL is from allowed domain list to prevent SSRF in emails."""
        allowed = info.data.get("allowed_app_url_domains", ["localhost", "127.0.0.1"])
        parsed = urlparse(v)
        hostname = parsed.hostname or ""

        if not any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed):
            raise ValueError(
                f"APP_URL domain '{hostname}' not in allowed list. "
                f"Add it to ALLOWED_APP_URL_DOMAINS or use: {allowed}"
            )
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
