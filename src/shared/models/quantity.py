"""Resource quantity models.

CPU and memory amounts are kept as exact ``Decimal`` magnitudes so that
fractional values such as ``100m`` (0.1 core) survive summation.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum

from kubernetes.utils import parse_quantity
from pydantic import ConfigDict, Field

from .base import AnalyzerBaseModel

MILLI = Decimal("0.001")


class UnitMismatchError(Exception):
    """Raised when quantities of different units are combined."""

    pass


class ResourceUnit(str, Enum):
    """Unit of a resource quantity."""

    CPU = "CPU"  # cores
    MEMORY = "MEMORY"  # bytes


class ResourceQuantity(AnalyzerBaseModel):
    """A CPU (cores) or memory (bytes) amount."""

    model_config = ConfigDict(frozen=True)

    unit: ResourceUnit
    magnitude: Decimal = Field(default=Decimal(0))

    @classmethod
    def zero(cls, unit: ResourceUnit) -> ResourceQuantity:
        return cls(unit=unit, magnitude=Decimal(0))

    @classmethod
    def parse(cls, value: str | int | float | None, unit: ResourceUnit) -> ResourceQuantity:
        """Parse a Kubernetes quantity string ("500m", "256Mi", "1.5").

        Raises:
            ValueError: If the string is not a valid quantity.
        """
        if value is None or value == "":
            return cls.zero(unit)
        return cls(unit=unit, magnitude=parse_quantity(value))

    def __add__(self, other: ResourceQuantity) -> ResourceQuantity:
        if not isinstance(other, ResourceQuantity):
            return NotImplemented
        if other.unit != self.unit:
            raise UnitMismatchError(
                f"Cannot add {other.unit.value} quantity to {self.unit.value} quantity"
            )
        return ResourceQuantity(unit=self.unit, magnitude=self.magnitude + other.magnitude)

    def __le__(self, other: ResourceQuantity) -> bool:
        if other.unit != self.unit:
            raise UnitMismatchError(
                f"Cannot compare {self.unit.value} and {other.unit.value} quantities"
            )
        return self.magnitude <= other.magnitude

    def __str__(self) -> str:
        if self.unit == ResourceUnit.CPU:
            if self.magnitude == self.magnitude.to_integral_value():
                return str(int(self.magnitude))
            millicores = self.magnitude / MILLI
            if millicores == millicores.to_integral_value():
                return f"{int(millicores)}m"
            return format(self.magnitude.normalize(), "f")
        if self.magnitude == self.magnitude.to_integral_value():
            return str(int(self.magnitude))
        return format(self.magnitude.normalize(), "f")


def ratio(part: ResourceQuantity, whole: ResourceQuantity) -> float:
    """Return ``part / whole``.

    A zero ``whole`` has no meaningful ratio and yields ``math.nan``.
    """
    if part.unit != whole.unit:
        raise UnitMismatchError(
            f"Cannot divide {part.unit.value} quantity by {whole.unit.value} quantity"
        )
    if whole.magnitude == 0:
        return math.nan
    return float(part.magnitude / whole.magnitude)


class ResourceAmounts(AnalyzerBaseModel):
    """CPU and memory amounts for one accounting class (limits or requests)."""

    model_config = ConfigDict(frozen=True)

    cpu: ResourceQuantity = Field(default_factory=lambda: ResourceQuantity.zero(ResourceUnit.CPU))
    memory: ResourceQuantity = Field(
        default_factory=lambda: ResourceQuantity.zero(ResourceUnit.MEMORY)
    )

    @classmethod
    def from_k8s(cls, resources: Mapping[str, str] | None) -> ResourceAmounts:
        """Build from a Kubernetes ``limits``/``requests`` mapping.

        Missing keys count as zero. Other resource names are ignored.
        """
        resources = resources or {}
        return cls(
            cpu=ResourceQuantity.parse(resources.get("cpu"), ResourceUnit.CPU),
            memory=ResourceQuantity.parse(resources.get("memory"), ResourceUnit.MEMORY),
        )

    def __add__(self, other: ResourceAmounts) -> ResourceAmounts:
        if not isinstance(other, ResourceAmounts):
            return NotImplemented
        return ResourceAmounts(cpu=self.cpu + other.cpu, memory=self.memory + other.memory)

    def fits_within(self, other: ResourceAmounts) -> bool:
        """True when every field is less than or equal to ``other``'s."""
        return self.cpu <= other.cpu and self.memory <= other.memory
