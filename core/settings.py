"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings; variables use the PAYMENT__ prefix,
e.g. PAYMENT__DATA_FILE or PAYMENT__PROCESSING__MAX_DELAY_MS.
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, model_validator


class ProcessingSettings(BaseModel):
    """Knobs of the simulated gateway."""
    min_delay_ms: float = Field(default=1000, ge=0)
    max_delay_ms: float = Field(default=5000, ge=0)
    base_failure_rate: float = Field(default=0.10, ge=0, le=1)
    high_amount_threshold: int = 10000
    high_amount_surcharge: float = Field(default=0.10, ge=0, le=1)
    credit_card_surcharge: float = Field(default=0.05, ge=0, le=1)
    max_failure_rate: float = Field(default=0.50, ge=0, le=1)

    @model_validator(mode="after")
    def _check_delay_bounds(self):
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        return self


class PaymentSettings(BaseSettings):
    data_file: str = "data/payments.json"
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
