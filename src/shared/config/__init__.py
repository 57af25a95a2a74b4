"""Configuration management module.

This module provides:
- Environment-based configuration with validation
- Section settings classes for Kubernetes, SSH and dispatch
- Cached settings access via get_settings()
"""

from .settings import (
    DispatchSettings,
    KubernetesSettings,
    LogFormat,
    LogLevel,
    RunMode,
    Settings,
    SSHSettings,
    get_settings,
)

__all__ = [
    # Main settings
    "Settings",
    "get_settings",
    # Enums
    "RunMode",
    "LogLevel",
    "LogFormat",
    # Section settings
    "KubernetesSettings",
    "SSHSettings",
    "DispatchSettings",
]
