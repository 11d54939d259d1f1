# ABOUTME: Configuration settings for the Chatterbox relay using Pydantic Settings.
# ABOUTME: Loads environment variables for queues, Slack OAuth, error tracking and the HTTP listener.

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MODE_DEV = "dev"
MODE_TEST = "test"
MODE_PROD = "prod"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    # Runtime mode
    mode: Literal["dev", "test", "prod"] = Field(
        default=MODE_DEV,
        description="Runtime mode: dev, test or prod"
    )

    # Redis / queue configuration
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for queues and stores"
    )
    queue_suffix: str = Field(
        default="local",
        description="Suffix appended to the in/out queue names"
    )
    event_queue: str = Field(
        default="event_queue",
        description="Queue receiving fire-and-forget telemetry events"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for rotating log files (console only when unset)"
    )

    # Error tracking
    sentry_url: str | None = Field(
        default=None,
        description="Sentry DSN used outside development"
    )

    # Tokens
    verification_token: str = Field(
        description="Shared-secret token Slack includes in every payload"
    )
    cns_api_token: str | None = Field(
        default=None,
        description="Token accepted on payment callbacks"
    )

    # Slack OAuth
    client_id: str | None = Field(
        default=None,
        description="Slack app client ID"
    )
    client_secret: str | None = Field(
        default=None,
        description="Slack app client secret"
    )
    site_url: str = Field(
        default="https://www.chatandslash.com",
        description="Base URL of the install result pages"
    )

    # HTTP listener
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP ingress binds to"
    )
    port: int = Field(
        default=8080,
        description="Port the HTTP ingress listens on"
    )
    cert_dir: str = Field(
        default="certs",
        description="Directory holding TLS files"
    )
    cert_key: str | None = Field(default=None, description="TLS private key file name")
    cert_crt: str | None = Field(default=None, description="TLS certificate file name")
    cert_ca: str | None = Field(default=None, description="TLS CA bundle file name")

    # Relay behaviour
    startup_delay_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Delay before connecting outside dev, so reconnect loops don't flood Sentry"
    )
    initial_ack_delay_ms: int = Field(
        default=0,
        ge=0,
        description="Starting value of the adaptive acknowledgment delay"
    )
    ack_delay_step_ms: int = Field(
        default=10,
        ge=0,
        description="Amount the acknowledgment delay drops after each ack"
    )
    channel_name_max_attempts: int = Field(
        default=20,
        ge=1,
        description="Maximum channel names tried when provisioning a game channel"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_dev(self) -> bool:
        return self.mode == MODE_DEV

    @property
    def is_production(self) -> bool:
        return self.mode == MODE_PROD

    @property
    def in_queue_name(self) -> str:
        """Queue the game engine consumes"""
        return f"in_queue-{self.queue_suffix}"

    @property
    def out_queue_name(self) -> str:
        """Queue the game engine publishes actions onto"""
        return f"out_queue-{self.queue_suffix}"

    @property
    def oauth_success_url(self) -> str:
        return f"{self.site_url}/installed/"

    @property
    def oauth_error_url(self) -> str:
        return f"{self.site_url}/install_problem/?id={self.client_id or ''}"

    @property
    def oauth_cancel_url(self) -> str:
        return f"{self.site_url}/install_cancel/?id={self.client_id or ''}"

    @property
    def ssl_files(self) -> tuple[Path, Path, Path | None] | None:
        """
        Resolve TLS key, certificate and CA paths.

        Returns:
            (key, cert, ca) tuple, or None in dev or when key/cert are unset
        """
        if self.is_dev or not (self.cert_key and self.cert_crt):
            return None

        base = Path(self.cert_dir)
        ca = base / self.cert_ca if self.cert_ca else None
        return base / self.cert_key, base / self.cert_crt, ca


# Singleton settings instance - lazy initialization to allow import without .env
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
