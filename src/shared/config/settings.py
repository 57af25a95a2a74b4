"""Configuration management with Pydantic Settings.

Settings are loaded from:
1. Command-line flags (applied by the entry point, highest priority)
2. Environment variables
3. .env file (development)
4. Defaults (lowest priority)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunMode(str, Enum):
    """Role of the running process.

    The same artifact acts as dispatcher locally and as collector on the
    remote hosts it was copied to.
    """

    DISPATCHER = "dispatcher"
    COLLECTOR = "collector"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Logging format."""

    JSON = "json"
    TEXT = "text"


class KubernetesSettings(BaseSettings):
    """Cluster access and scan configuration."""

    model_config = SettingsConfigDict(env_prefix="POD_ANALYZER_KUBE_")

    config_path: str = Field(default=".kube/config", description="Path to kubeconfig file")
    image_pattern: str = Field(
        default="qbox/qbox-docker:6.2.1",
        description="Literal image substring identifying target containers",
    )
    page_size: int = Field(default=500, description="Items requested per list call")
    report_file: str = Field(default="report.json", description="Detail report file name")

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Ensure page size is at least 1."""
        return max(1, v)


class SSHSettings(BaseSettings):
    """SSH login configuration for remote hosts."""

    model_config = SettingsConfigDict(env_prefix="POD_ANALYZER_SSH_")

    username: str = Field(default="root", description="SSH login user")
    port: int = Field(default=22, description="Default SSH port")
    private_key_path: str | None = Field(default=None, description="Private key file")
    passphrase: str | None = Field(default=None, description="Private key passphrase")
    password: str | None = Field(default=None, description="SSH password")
    known_hosts: str | None = Field(
        default=None,
        description="known_hosts file; unset disables host key verification",
    )
    connect_timeout_seconds: float = Field(default=30.0, description="SSH connect timeout")


class DispatchSettings(BaseSettings):
    """Fleet dispatch configuration."""

    model_config = SettingsConfigDict(env_prefix="POD_ANALYZER_DISPATCH_")

    hosts_file: str = Field(default="hosts.txt", description="Newline-delimited host list")
    remote_binary_path: str = Field(
        default="/tmp/agent", description="Where the collector is placed on remote hosts"
    )
    host_timeout_seconds: float = Field(
        default=300.0, description="Per-host ceiling for the whole connect/copy/run sequence"
    )
    chunk_size: int = Field(default=65536, description="Remote output read size in bytes")

    @field_validator("host_timeout_seconds")
    @classmethod
    def validate_host_timeout(cls, v: float) -> float:
        """Ensure the per-host timeout is positive."""
        if v <= 0:
            raise ValueError("host_timeout_seconds must be positive")
        return v


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use the section prefix (e.g., POD_ANALYZER_SSH_USERNAME).
    """

    model_config = SettingsConfigDict(
        env_prefix="POD_ANALYZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="pod-analyzer", description="Application name")

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.TEXT, description="Logging format")

    # Nested settings
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    ssh: SSHSettings = Field(default_factory=SSHSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment variables.
    """
    return Settings()
