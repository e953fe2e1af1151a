"""Runtime settings read from the environment."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tunables for ingestion, extraction and reporting.

    Every field can be set through an ``APPRAISAL_``-prefixed environment
    variable, e.g. ``APPRAISAL_ALERT_THRESHOLD=5``.
    """

    model_config = SettingsConfigDict(env_prefix="APPRAISAL_", case_sensitive=False)

    request_delay_seconds: float = Field(default=1.0, ge=0.0, description="Pause between page fetches")
    max_pages: int = Field(default=1000, ge=1)
    max_empty_pages: int = Field(default=3, ge=1)

    # Strategy chain / health monitor
    alert_threshold: int = Field(default=3, ge=1)
    alert_debounce: bool = True
    min_document_length: int = Field(default=100, ge=0)

    # Value extraction / aggregation
    value_window: int = Field(default=100, ge=1)
    preview_limit: int = Field(default=50, ge=0)
    top_actors: int = Field(default=10, ge=1)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def load_settings() -> Settings:
    """Build Settings from APPRAISAL_* environment variables.

    Raises:
        pydantic.ValidationError: if a variable holds an invalid value
    """
    return Settings()
