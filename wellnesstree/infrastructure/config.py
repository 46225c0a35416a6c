"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings

from wellnesstree.domain.value_objects import CommissionRates


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://wellnesstree:wellnesstree_dev_password@db:5432/wellnesstree"

    # Authentication
    api_key: str = "dev-api-key-change-in-production"

    # Pricing
    currency: str = "ZAR"
    default_tax_rate: Decimal = Decimal("15")
    commission_standard_rate: Decimal = Decimal("0.25")
    commission_pool_rate: Decimal = Decimal("0.05")

    # Credits: "memory" or "sql"
    credit_store_backend: str = "memory"

    # Couriers
    shiplogic_url: str = "https://api.shiplogic.com"
    shiplogic_api_key: str = ""
    shiplogic_enabled: bool = True

    pudo_url: str = "https://api-pudo.co.za"
    pudo_api_key: str = ""
    pudo_enabled: bool = True

    courier_timeout_seconds: float = 15.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def commission_rates(self) -> CommissionRates:
        """Commission rate table built from the configured tier rates."""
        return CommissionRates(
            standard=self.commission_standard_rate,
            pool=self.commission_pool_rate,
        )


settings = Settings()
