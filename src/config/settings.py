"""
Configuration Management for BillSplit

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what the app depends on and
ensures configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BILLSPLIT_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="json",
        pattern="^(json|memory)$",
        description="Where expense lists live: JSON files on disk, or memory only"
    )
    data_dir: str = Field(
        default=".billsplit",
        description="Directory holding one JSON file per store key"
    )

    # Store keys
    users_key: str = Field(
        default="billsplit_users",
        description="Key of the local user table"
    )
    expenses_key_prefix: str = Field(
        default="expenses_",
        description="Prefix of each user's expense list key"
    )

    audit_key: str = Field(
        default="billsplit_audit",
        description="Key of the append-only audit log"
    )

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Refuse a data_dir that points at an existing regular file."""
        path = Path(v).expanduser()
        if path.exists() and not path.is_dir():
            raise ValueError(f"Storage data_dir is not a directory: {v}")
        return str(path)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Currencies
    default_currency: str = Field(
        default="USD",
        pattern="^[A-Z]{3}$",
        description="Currency preselected in the add-expense form"
    )
    supported_currencies: str = Field(
        default="USD,GBP,EUR,NGN,CAD,AUD",
        description="Comma-separated list of currencies offered in the form"
    )

    # Ledger
    settlement_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        ge=Decimal("0.01"),
        le=1,
        description="Net amounts at or below this are shown as settled (never below a cent)"
    )

    # Account rules
    min_username_length: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Minimum username length at signup"
    )
    min_password_length: int = Field(
        default=6,
        ge=1,
        le=128,
        description="Minimum password length at signup"
    )

    # Validation thresholds
    future_date_tolerance_days: int = Field(
        default=365,
        ge=0,
        description="How far in the future an expense date can be before we warn"
    )
    max_participants: int = Field(
        default=50,
        ge=1,
        description="Largest group a single expense can be split among"
    )

    @property
    def supported_currencies_list(self) -> list[str]:
        """Get supported currencies as a list."""
        return [
            code.strip().upper()
            for code in self.supported_currencies.split(",")
            if code.strip()
        ]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
