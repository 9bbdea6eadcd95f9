"""Application configuration using pydantic-settings."""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``BUDGET_*`` environment variables or ``.env``."""

    # Analytics
    rollover_enabled: bool = True
    # None = every month since the category's first purchase
    rollover_max_months: Optional[int] = None
    months_back: int = 12
    days_back: int = 30
    large_purchase_ratio: Decimal = Decimal("0.1")

    # Defaults for new users
    default_currency: str = "USD"
    default_income_amount: Decimal = Decimal("2888.72")
    default_income_frequency: str = "biweekly"

    # Files
    seed_path: str = "data/seed.json"
    preferences_path: str = "data/preferences.json"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
