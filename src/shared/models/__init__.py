"""Shared data models for pod-analyzer.

All models follow these conventions:
- Resource magnitudes: exact Decimal (cores for CPU, bytes for memory)
- Field names: lowercase snake_case
- Enums: uppercase SNAKE_CASE
"""

# Base
from .base import AnalyzerBaseModel

# Dispatch domain
from .dispatch import (
    CollectorArgs,
    DEFAULT_SSH_PORT,
    DispatchRun,
    HostResult,
    HostStatus,
    HostTarget,
    SSHCredentials,
)

# Resource quantities
from .quantity import (
    ResourceAmounts,
    ResourceQuantity,
    ResourceUnit,
    UnitMismatchError,
    ratio,
)

# Reports
from .report import (
    ClusterReport,
    ContainerResourceUsage,
    DetailTree,
)

__all__ = [
    # Base
    "AnalyzerBaseModel",
    # Quantities
    "ResourceUnit",
    "ResourceQuantity",
    "ResourceAmounts",
    "UnitMismatchError",
    "ratio",
    # Reports
    "ContainerResourceUsage",
    "ClusterReport",
    "DetailTree",
    # Dispatch
    "DEFAULT_SSH_PORT",
    "CollectorArgs",
    "HostStatus",
    "HostTarget",
    "SSHCredentials",
    "HostResult",
    "DispatchRun",
]
