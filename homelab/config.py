"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration is driven by ``HOMELAB_*`` environment variables."""

    # External CLIs
    kubectl_bin: str = "kubectl"
    flux_bin: str = "flux"
    talosctl_bin: str = "talosctl"

    # Command limits
    command_timeout_seconds: float = Field(default=30.0, gt=0)
    max_output_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    # Upper bound on subprocesses one aggregation may run at once
    max_concurrent_commands: int = Field(default=8, ge=1)

    # Events kept per resource in flux_status / helmrelease_debug
    event_limit: int = 10

    # Mimir reached through the API server service proxy
    mimir_proxy_base: str = (
        "/api/v1/namespaces/monitoring/services/http:mimir-nginx:80/proxy/prometheus"
    )

    # API key
    api_key: str = ""

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_prefix="HOMELAB_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


# Singleton – import this from anywhere
settings = Settings()
