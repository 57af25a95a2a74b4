"""Cluster report models."""

from __future__ import annotations

from pydantic import Field, model_validator

from .base import AnalyzerBaseModel
from .quantity import ResourceAmounts

# namespace -> pod -> container image -> {"limits": {...}, "requests": {...}}
DetailTree = dict[str, dict[str, dict[str, dict[str, dict[str, str]]]]]


class ContainerResourceUsage(AnalyzerBaseModel):
    """Limits and requests summed over a set of containers."""

    image: str = ""
    limits: ResourceAmounts = Field(default_factory=ResourceAmounts)
    requests: ResourceAmounts = Field(default_factory=ResourceAmounts)

    def add(self, limits: ResourceAmounts, requests: ResourceAmounts) -> ContainerResourceUsage:
        """Return a copy with ``limits`` and ``requests`` added."""
        return ContainerResourceUsage(
            image=self.image,
            limits=self.limits + limits,
            requests=self.requests + requests,
        )

    def fits_within(self, other: ContainerResourceUsage) -> bool:
        return self.limits.fits_within(other.limits) and self.requests.fits_within(
            other.requests
        )


class ClusterReport(AnalyzerBaseModel):
    """Resource inventory of one cluster scan."""

    pattern: str = Field(description="Image substring used to select target containers")
    total_by_image: dict[str, ContainerResourceUsage] = Field(default_factory=dict)
    target_totals: ContainerResourceUsage = Field(default_factory=ContainerResourceUsage)
    grand_totals: ContainerResourceUsage = Field(default_factory=ContainerResourceUsage)
    target_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    detail: DetailTree = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_target_within_total(self) -> ClusterReport:
        if self.target_count > self.total_count:
            raise ValueError(
                f"target_count ({self.target_count}) exceeds total_count ({self.total_count})"
            )
        if not self.target_totals.fits_within(self.grand_totals):
            raise ValueError("target_totals exceed grand_totals")
        return self
