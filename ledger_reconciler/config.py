"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import json
import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


# Historical transactions recorded only an account *type* label.
# These are mapped to the account that label has always meant.
DEFAULT_LEGACY_ACCOUNT_TYPES = {
    "Cash": ["cash-001", "Cash"],
    "Bank": ["bank-cibanco-001", "CiBanco"],
}

# Hard ceiling imposed by the store on a single atomic batch.
MAX_BATCH_SIZE = 500


def _legacy_account_types() -> dict[str, list[str]]:
    raw = os.getenv("LEGACY_ACCOUNT_TYPES")
    if not raw:
        return DEFAULT_LEGACY_ACCOUNT_TYPES
    return json.loads(raw)


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Ledger Reconciler"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/ledger_reconciler"
    )

    # Environment (dev, staging, prod)
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "dev")

    # Batch writes and retries
    BATCH_SIZE: int = min(int(os.getenv("BATCH_SIZE", "400")), MAX_BATCH_SIZE)
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
    RETRY_BASE_DELAY: float = float(os.getenv("RETRY_BASE_DELAY", "0.5"))

    # Accounting defaults
    DEFAULT_FISCAL_START_MONTH: int = int(
        os.getenv("DEFAULT_FISCAL_START_MONTH", "1")
    )
    LEGACY_ACCOUNT_TYPES: dict[str, list[str]] = _legacy_account_types()


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls. This avoids reading
    environment variables repeatedly.
    """
    return Settings()
