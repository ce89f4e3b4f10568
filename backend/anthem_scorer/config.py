"""Scoring engine configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (prefix ``ANTHEM_``)."""

    model_config = SettingsConfigDict(
        env_prefix="ANTHEM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Scoring defaults
    pass_threshold_percent: float = Field(default=75.0, ge=0.0, le=100.0)
    case_sensitive: bool = False
    normalize_whitespace: bool = True
    expand_input_digraphs: bool = False  # "a:" -> "ā", "s^" -> "š"

    # Report shaping
    max_error_examples: int = Field(default=5, ge=0)
    accuracy_precision: int = Field(default=2, ge=0, le=10)

    # Input limits
    max_submission_chars: int = Field(default=5000, ge=1)
    expected_line_count: int = Field(default=8, ge=1)

    # Timing signals
    long_pause_ms: int = Field(default=5000, ge=0)
    paste_speed_cpm: int = Field(default=1000, ge=1)


# Global settings instance
settings = Settings()
