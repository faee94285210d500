"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="JIT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "JIT Prep Engine API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the service.")

    eta_provider: Literal["google", "osrm"] = Field(
        default="google",
        description="Routing provider used for live travel durations.",
    )
    google_maps_key: Optional[str] = Field(default=None, description="Google Maps Distance Matrix API key.")
    google_maps_base_url: str = Field(default="https://maps.googleapis.com")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(default="driving")
    provider_timeout_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Hard timeout for one provider call; a timeout counts as a failure.",
    )
    provider_max_retries: int = Field(default=0, ge=0)
    provider_backoff_seconds: float = Field(default=0.2, ge=0.0)

    throttle_cooldown_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Minimum spacing between provider calls for the same order.",
    )
    slack_buffer_minutes: int = Field(
        default=1,
        description="Preparation starts once slack (ETA minus prep time) is at or below this value.",
    )
    prefilter_max_speed_kmh: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="If set, skip provider calls for samples that cannot arrive in time even at this speed.",
    )
    degraded_eta_on_failure: bool = Field(
        default=False,
        description="Publish a great-circle ETA estimate (flagged degraded) when the provider fails.",
    )
    fallback_speed_kmh: float = Field(default=40.0, gt=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    orders_table: str = Field(default="orders")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:8081", "http://127.0.0.1:8081"),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
