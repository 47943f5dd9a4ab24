"""Configuration loading from environment and YAML files."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOOLSETS = ["vector_stores", "vector_store_files", "file_batches", "files"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend credential - may also be supplied per session
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    credential_prefix: str = "sk-"

    # "lazy" defers the credential check to the first tool call,
    # "eager" checks it during initialize
    credential_validation: Literal["lazy", "eager"] = "lazy"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Timeouts and limits
    backend_timeout: float = 30.0
    max_message_bytes: int = 4 * 1024 * 1024

    # Server info
    server_name: str = "openai-vector-store-mcp"
    server_version: str = "1.2.0"
    protocol_version: str = "2024-11-05"

    # HTTP bridge
    host: str = "127.0.0.1"
    port: int = 8000

    # Optional YAML file selecting the enabled tool groups
    tools_config_path: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def has_credential(self) -> bool:
        """Check if a backend credential was configured at startup."""
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_tools_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load tool configuration from YAML file.

    Args:
        config_path: Path to the config file. If None, uses the configured
            path or the default location.

    Returns:
        Dictionary with configuration data.
    """
    if config_path is None:
        configured = get_settings().tools_config_path
        possible_paths = [Path(configured)] if configured else []
        possible_paths.append(Path("config/tools.yaml"))
        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            return {"enabled_toolsets": list(DEFAULT_TOOLSETS)}

    config_path = Path(config_path)
    if not config_path.exists():
        return {"enabled_toolsets": list(DEFAULT_TOOLSETS)}

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    return config


def get_enabled_toolsets(config: dict[str, Any] | None = None) -> list[str]:
    """Get list of enabled tool group names."""
    if config is None:
        config = load_tools_config()
    return config.get("enabled_toolsets") or list(DEFAULT_TOOLSETS)
