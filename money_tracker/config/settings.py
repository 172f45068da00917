"""
Configuration Management for Money Tracker

Every setting comes from the environment or a .env file, parsed and
validated by pydantic-settings.

DESIGN DECISION: One module owns all configuration.
Backend endpoint addresses are the only external configuration the
tracker needs, and they are all validated at startup.
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file (JSON)"
    )
    spreadsheet_id: str = Field(
        ...,
        min_length=1,
        description="Spreadsheet holding the Users and AuditLog worksheets"
    )

    # Worksheet titles; created on first use if absent
    users_sheet_name: str = Field(
        default="Users",
        description="Name of the sheet holding one document per user"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Worksheet that receives audit rows"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; containers often mount it after startup."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Remote ledgers stay unavailable until it is in place."
            )
        return v


class BankingSettings(BaseSettings):
    """Remote bank balance lookup configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BANKING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        ...,
        description="Base URL of the balance lookup service"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent with balance requests"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Request timeout in seconds"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("BANKING_BASE_URL is empty")
        return v


class AppSettings(BaseSettings):
    """
    Tracker-wide settings: log level, storage backend, input limits.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Show extra diagnostics in the UI"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Storage
    storage_backend: Literal["local", "google_sheets"] = Field(
        default="local",
        description="Where ledgers are persisted"
    )
    local_storage_dir: str = Field(
        default=".money_tracker",
        description="Directory for the local key-value store"
    )
    local_storage_key: str = Field(
        default="santi-money-tracker-state",
        min_length=1,
        description="Fixed device key the local ledger snapshot lives under"
    )

    # Sanity limits
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        le=1_000_000_000_000.0,
        description="Largest amount accepted for a single entry"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Currency symbol shown next to amounts"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()


class Settings(BaseSettings):
    """
    Entry point for all settings.

    Each group is parsed only when first asked for, so the app runs
    with just the groups it needs configured.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def banking(self) -> BankingSettings:
        return BankingSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide Settings instance.

    Call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Try to parse every settings group.

    Returns a dict of {setting_name: is_valid} plus
    {setting_name_error: message} for each failure.
    Drives the Settings page status list.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    for name in ("google_sheets", "banking", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
