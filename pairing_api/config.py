from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with validation.

    Values are read from environment variables or a local .env file.
    """

    # Environment
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Listen host")
    port: int = Field(default=3000, description="Listen port")

    # CORS - comma-separated origins or * for development
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed origins, or * for all (dev only)"
    )

    # Pairing sessions
    auth_root: str = Field(
        default="tmp",
        description="Directory holding one auth-state folder per pairing session"
    )
    session_ttl_seconds: int = Field(
        default=600, description="Age after which a pairing session is discarded"
    )
    cleanup_interval_seconds: int = Field(
        default=600, description="How often expired sessions are swept"
    )

    # Protocol client timings
    socket_ready_delay_seconds: float = Field(
        default=2.0, description="Wait after connecting before asking for a pairing code"
    )
    credentials_flush_delay_seconds: float = Field(
        default=3.0, description="Wait after the device links before reading credentials"
    )
    message_interval_seconds: float = Field(
        default=1.5, description="Pause between the messages sent to the user"
    )
    socket_close_delay_seconds: float = Field(
        default=15.0, description="Delay before the linked client is closed after delivery"
    )
    connect_timeout_seconds: float = Field(
        default=60.0,
        description="Limit for connecting and for the pairing code request"
    )

    # Branding
    browser_name: str = Field(
        default="ALMEER XMD", description="Display name of the linked device"
    )
    brand_name: str = Field(
        default="ALMEER XMD", description="Brand used in the messages sent to the user"
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True, description="Enable rate limiting of pairing requests"
    )
    rate_limit_requests_per_minute: int = Field(
        default=5, description="Max pairing requests per minute per client"
    )
    rate_limit_requests_per_hour: int = Field(
        default=30, description="Max pairing requests per hour per client"
    )
    trust_proxy_headers: bool = Field(
        default=False,
        description="Take the client IP from X-Forwarded-For / X-Real-IP (only behind a proxy that sets them)"
    )

    # Misc
    log_level: str = "INFO"
    log_json: bool = False
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v.lower()

    @field_validator("session_ttl_seconds", "cleanup_interval_seconds", "connect_timeout_seconds")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that required settings are properly configured in production."""
        if self.environment != "production":
            return self

        errors = []

        # CORS should not be wildcard in production
        if self.cors_origins == "*":
            errors.append("CORS_ORIGINS must not be '*' in production")

        if self.debug:
            errors.append("DEBUG must be disabled in production")

        if errors:
            raise ValueError(
                "Production configuration errors:\n- " + "\n- ".join(errors)
            )

        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def auth_root_path(self) -> Path:
        return Path(self.auth_root).resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
