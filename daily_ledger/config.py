"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Daily Ledger Service"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./daily_ledger.db"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Daily ledger
    # Every day opens at this figure. Balances are not carried
    # forward from the previous day's close.
    OPENING_BALANCE: Decimal = Decimal(os.getenv("OPENING_BALANCE", "100000"))
    LEDGER_FETCH_TIMEOUT_SECONDS: float = float(
        os.getenv("LEDGER_FETCH_TIMEOUT_SECONDS", "10")
    )
    REQUIRE_PAYMENT_CHANNEL: bool = (
        os.getenv("REQUIRE_PAYMENT_CHANNEL", "false").lower() == "true"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused for all
    subsequent calls.
    """
    return Settings()
