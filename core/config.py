"""
Application settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional


class Settings(BaseSettings):
    """Project settings"""

    # Basics
    PROJECT_NAME: str = Field(default="Payment Service", validation_alias="PROJECT_NAME")
    VERSION: str = Field(default="1.0.0", validation_alias="VERSION")
    DEBUG: bool = Field(default=True, validation_alias="DEBUG")
    ENVIRONMENT: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Comma separated list of accepted X-API-Key values
    API_KEYS: str = Field(default="", validation_alias="API_KEYS")

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        validation_alias="CORS_ORIGINS",
    )

    # Pagination (overridable through env)
    DEFAULT_PAGE_SIZE: int = Field(default=10, validation_alias="DEFAULT_PAGE_SIZE")
    MAX_PAGE_SIZE: int = Field(default=100, validation_alias="MAX_PAGE_SIZE")

    # Logging
    LOG_LEVEL: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")
    LOG_DIR: Optional[str] = Field(default=None, validation_alias="LOG_DIR")
    LOG_FILE_MAX_BYTES: int = Field(default=5 * 1024 * 1024, validation_alias="LOG_FILE_MAX_BYTES")
    LOG_FILE_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_FILE_BACKUP_COUNT")
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048, validation_alias="LOG_REQUEST_BODY_MAX_BYTES")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    @staticmethod
    def _split(raw: str) -> list[str]:
        """Accept a JSON array or a comma separated string."""
        s = (raw or "").strip()
        if s.startswith("[") and s.endswith("]"):
            import json
            try:
                arr = json.loads(s)
                if isinstance(arr, list):
                    return [str(item).strip() for item in arr if str(item).strip()]
            except ValueError:
                pass
        return [item.strip() for item in s.split(",") if item.strip()]

    @property
    def api_keys(self) -> list[str]:
        return self._split(self.API_KEYS)

    @property
    def cors_origins(self) -> list[str]:
        return self._split(self.CORS_ORIGINS)


settings = Settings()
