"""Application configuration with validation."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scoring engine settings, read from the environment and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Evaluator Scoring Engine"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # Scoring
    WEIGHT_SUM_TOLERANCE: float = Field(default=0.01, gt=0, le=1.0)
    SCORE_DECIMAL_PLACES: int = Field(default=4, ge=2, le=8)

    # Reconciliation thresholds (population variance / score spread)
    VARIANCE_HIGH_THRESHOLD: float = Field(default=2.0, ge=0)
    VARIANCE_MEDIUM_THRESHOLD: float = Field(default=0.5, ge=0)
    SPREAD_RECONCILE_THRESHOLD: float = Field(default=1.0, ge=0)

    # Redis result cache (caller side only)
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = False
    CACHE_TTL_RESULTS: int = Field(default=3600, ge=1)

    @model_validator(mode="after")
    def validate_variance_thresholds(self):
        """Medium variance band must sit below the high band."""
        if self.VARIANCE_MEDIUM_THRESHOLD >= self.VARIANCE_HIGH_THRESHOLD:
            raise ValueError(
                "VARIANCE_MEDIUM_THRESHOLD must be lower than VARIANCE_HIGH_THRESHOLD, "
                f"got {self.VARIANCE_MEDIUM_THRESHOLD} >= {self.VARIANCE_HIGH_THRESHOLD}"
            )
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production runs without debug output."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
