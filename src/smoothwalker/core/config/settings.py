"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """SmoothWalker server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: there is no auth layer in front of health data.
    smoothwalker_host: str = "127.0.0.1"
    smoothwalker_port: int = 8001
    smoothwalker_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    smoothwalker_allow_insecure_bind: bool = False

    # Connectors
    apple_health_export_path: str = ""

    # Storage (pushed-sample bank)
    db_path: str = "~/.smoothwalker/samples.db"

    # Encryption; storage is disabled while empty
    encryption_key: str = ""

    # Charts: 0 = Monday ... 6 = Sunday
    first_weekday: int = 0


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
