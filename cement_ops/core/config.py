"""Application configuration using Pydantic Settings.

Environment variables are loaded with the CEMENT_OPS_ prefix, optionally from a
local .env file.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pattern: Pydantic Settings with Environment Variables
    """

    # Service configuration
    service_name: str = "cement-ops-advisor"
    port: int = 8090
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Generative model (Gemini REST API)
    gemini_api_key: SecretStr | None = Field(
        default=None,
        description="API key for the generative language API",
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Model used for every advisory prompt",
    )
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generative language API",
    )
    llm_timeout_seconds: float = Field(default=60.0, gt=0, description="LLM request timeout")

    # Image recognition
    vision_api_key: SecretStr | None = Field(
        default=None,
        description="API key for the image annotation API",
    )
    vision_api_url: str = Field(
        default="https://vision.googleapis.com/v1/images:annotate",
        description="Image annotation endpoint",
    )
    vision_timeout_seconds: float = Field(default=30.0, gt=0)

    # Telemetry
    telemetry_history_window: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Number of snapshots kept in the live history",
    )
    telemetry_store_fetch_limit: int = Field(
        default=50,
        ge=1,
        description="Records fetched from the telemetry store on startup",
    )
    telemetry_min_store_records: int = Field(
        default=10,
        ge=0,
        description="Below this many stored records the CSV fallback is used",
    )
    telemetry_csv_path: str = Field(
        default="records_export.csv",
        description="CSV export used when the store has too little history",
    )

    # Proposal pipeline
    pipeline_max_retries: int = Field(default=2, ge=0, le=10)
    pipeline_retry_initial_delay: float = Field(default=0.5, ge=0.0, le=60.0)
    pipeline_retry_backoff_factor: float = Field(default=2.0, ge=1.0, le=10.0)
    pipeline_repair_enabled: bool = Field(
        default=False,
        description="Send a repair prompt when a stage returns unparseable JSON",
    )
    pipeline_parallel_fan_out: bool = Field(
        default=True,
        description="Run the four telemetry sub-agents concurrently",
    )
    safety_fail_closed: bool = Field(
        default=True,
        description="Escalate when the safety gate output cannot be decoded",
    )

    # Recommendations
    recommendation_interval_seconds: int = Field(
        default=180,
        ge=0,
        description="Background recommendation refresh interval, 0 disables it",
    )

    model_config = SettingsConfigDict(
        env_prefix="CEMENT_OPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
