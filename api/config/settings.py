"""Gateway settings configuration
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from gateway.noise import DEFAULT_NOISE_FILTER_FILE


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MIAW_",
        extra="ignore",  # Ignore extra environment variables
    )

    # Remote messaging deployment
    scrt_url: str | None = None
    org_id: str | None = None
    es_developer_name: str | None = None
    capabilities_version: str = "1"
    platform: str = "Web"
    http_timeout_seconds: float = 30.0

    # Response polling
    poll_timeout_seconds: float = 25.0
    poll_interval_seconds: float = 0.5

    # Sessions and conversations
    session_ttl_seconds: float = 3600.0
    close_message: str = "Chat ended by user."
    noise_filter_file: Path = DEFAULT_NOISE_FILTER_FILE

    # Live-chat surface
    public_url: str = "http://localhost:8000"

    # REST server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # MCP server settings
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 3000

    # Logging
    log_level: str = "INFO"
    log_format_json: bool = True

    @property
    def messaging_configured(self) -> bool:
        return bool(self.scrt_url and self.org_id and self.es_developer_name)


@lru_cache
def get_settings() -> Settings:
    """Get global settings instance"""
    return Settings()
