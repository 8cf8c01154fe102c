"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here, no scattered magic strings.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_mutations: Rate limit for money-moving endpoints.
        default_opening_deposit: Balance of a new account when none is given.
        default_pin: PIN used when an account is opened without one.
        price_drift_pct: Maximum relative move per simulated quote.
        default_stock_price: Starting price for symbols with no seed.
        notification_webhook_urls: Webhooks every ledger event is POSTed to.

    Database settings: ``database_url`` wins when set; otherwise a
    PostgreSQL DSN is built from the postgres_* values.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "Ledger"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_mutations: str = "20/minute"
    max_request_size_bytes: int = 1_048_576  # 1 MB

    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "ledger"
    db_pool_pre_ping: bool = True
    sqlite_busy_timeout_seconds: float = 30.0

    default_opening_deposit: Decimal = Decimal("1000.00")
    default_pin: str = "1234"
    price_drift_pct: Decimal = Decimal("0.01")
    default_stock_price: Decimal = Decimal("100.00")

    notification_poll_seconds: float = 2.0
    notification_webhook_urls: list[str] = []
    notification_timeout_seconds: float = 5.0
    notification_batch_size: int = 100

    def get_database_dsn(self) -> str:
        """Return the effective SQLAlchemy URL.

        Priority:
        1. Explicit `DATABASE_URL`
        2. PostgreSQL DSN built from postgres_* values (Docker Compose, local setups)
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
