"""Configuration management for the LMS MCP Gateway.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """HTTP gateway configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Tenancy
    api_base_url: Optional[str] = Field(
        default=None,
        description="Static backend base URL; enables single-tenant mode"
    )
    platform_domain: str = Field(
        default="docebosaas.com",
        description="Domain tenant slugs are mounted under in multi-tenant mode"
    )

    # OAuth resource server
    server_url: Optional[str] = Field(
        default=None,
        description="Public URL of this gateway; derived from Host when unset"
    )
    oauth_enabled: bool = Field(default=True)
    authorization_server_url: Optional[str] = Field(default=None)
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)

    # Tool execution
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    character_limit: int = Field(default=25000, gt=0)
    fail_closed_without_token: bool = Field(default=False)

    # Audit
    enable_audit: bool = Field(default=True)
    audit_log_path: str = Field(default="logs/audit.log")

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        extra="ignore"
    )


class CredentialSettings(BaseSettings):
    """Credentials for interactive (stdio) token acquisition."""
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    token_cache_path: str = Field(
        default_factory=lambda: str(Path.home() / ".docebo-mcp" / "tokens.json")
    )
    expiry_buffer_seconds: int = Field(default=300, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="DOCEBO_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Component settings
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Nested sections go through their own constructors so the
        # environment still fills whatever the file leaves unset
        return cls(
            gateway=GatewaySettings(**(data.pop("gateway", None) or {})),
            credentials=CredentialSettings(**(data.pop("credentials", None) or {})),
            **data,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("GATEWAY_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
