"""Configuration Management with Pydantic Settings."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ORDER_STEPS = "customer_selection,product_selection,measurements,review_and_payment"


class Settings(BaseSettings):
    """
    Application Settings.

    Loaded from environment variables and ``.env``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Tailoring backend (customers, fabrics, measurements, orders)
    api_base_url: str = "http://localhost:5000/api"
    api_token: Optional[str] = None
    request_timeout: float = Field(default=30.0, gt=0)

    # Order wizard
    order_steps: str = DEFAULT_ORDER_STEPS
    measurement_unit: str = "inch"
    default_urgency: str = "medium"
    advance_percentage: float = Field(default=50.0, ge=0, le=100)
    sync_measurements_on_submit: bool = True

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    @field_validator("measurement_unit")
    @classmethod
    def _check_unit(cls, v: str) -> str:
        unit = v.strip().lower()
        if unit not in {"inch", "cm", "mm"}:
            raise ValueError("measurement_unit must be one of inch, cm, mm")
        return unit

    @field_validator("default_urgency")
    @classmethod
    def _check_urgency(cls, v: str) -> str:
        urgency = v.strip().lower()
        if urgency not in {"low", "medium", "high", "urgent"}:
            raise ValueError("default_urgency must be one of low, medium, high, urgent")
        return urgency

    @property
    def step_keys(self) -> list[str]:
        """Configured wizard steps in order."""
        return [key.strip().lower() for key in self.order_steps.split(",") if key.strip()]


_settings: Optional[Settings] = None


def get_settings(*, force_reload: bool = False, env_file: Optional[Path] = None) -> Settings:
    """
    Get application settings, cached for the process.

    Args:
        force_reload: Re-read environment and ``.env``
        env_file: Alternative env file to read instead of ``.env``

    Returns:
        Settings instance
    """
    global _settings
    if force_reload or _settings is None:
        _settings = Settings(_env_file=env_file) if env_file else Settings()
    return _settings
