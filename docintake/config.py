"""Configuration management for the document intake service.

This module uses Pydantic Settings to load configuration from environment
variables. Everything has a working default so the service can start without
a Gemini key or a Supabase project: classification then degrades to its
fallback path and documents are kept in memory.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Sensitive values (API keys, database credentials) must be provided via
    environment variables or .env file, never committed.
    """

    # Gemini API Configuration
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key used by the AI classifier"
    )
    model_name: str = Field(
        default="gemini-3-flash-preview",
        description="Gemini model to use for classification"
    )
    ai_timeout_seconds: float = Field(
        default=8.0,
        description="Upper bound on a single classification request to Gemini"
    )

    # Supabase Configuration (optional, in-memory store when absent)
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase anonymous/service role key"
    )
    supabase_table: str = Field(
        default="documents",
        description="Table holding processed document records"
    )

    # Uploads
    upload_dir: str = Field(
        default="uploads",
        description="Directory where original uploaded files are kept"
    )
    max_upload_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted upload size in bytes"
    )

    # HTTP surface
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5000",
        description="Comma-separated CORS allow-list"
    )
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs whose X-Forwarded-For is trusted"
    )
    requests_per_minute: int = Field(
        default=100,
        description="Global per-client request budget per minute"
    )
    upload_rate_limit: str = Field(
        default="5/minute",
        description="slowapi limit applied to the upload endpoint"
    )

    # Notifications
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="HTTPS endpoint notified after each processed document"
    )
    notification_secret: Optional[str] = Field(
        default=None,
        description="HMAC key used to sign notification payloads"
    )

    log_level: str = Field(default="INFO", description="Root log level")
    environment: str = Field(default="development", description="Deployment environment")

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("gemini_api_key", "supabase_key", "notification_secret")
    @classmethod
    def blank_secret_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or whitespace-only secrets as not configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the Supabase URL, when given, is HTTPS."""
        if v is None or not v.strip():
            return None

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("ai_timeout_seconds")
    @classmethod
    def validate_ai_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("AI_TIMEOUT_SECONDS must be greater than zero")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return level

    @property
    def supabase_enabled(self) -> bool:
        """True when both Supabase URL and key are configured."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def trusted_proxy_list(self) -> List[str]:
        return [ip.strip() for ip in self.trusted_proxies.split(",") if ip.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If an environment variable is present but invalid
    """
    return Settings()
