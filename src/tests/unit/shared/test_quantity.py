"""Unit tests for resource quantity arithmetic."""

import itertools
import math
from decimal import Decimal

import pytest
from pydantic import ValidationError

from shared.models import (
    ResourceAmounts,
    ResourceQuantity,
    ResourceUnit,
    UnitMismatchError,
    ratio,
)


def cpu(value: str) -> ResourceQuantity:
    return ResourceQuantity.parse(value, ResourceUnit.CPU)


def memory(value: str) -> ResourceQuantity:
    return ResourceQuantity.parse(value, ResourceUnit.MEMORY)


class TestParse:
    """Test Kubernetes quantity parsing."""

    def test_millicores_are_exact(self) -> None:
        assert cpu("100m").magnitude == Decimal("0.1")

    def test_whole_and_fractional_cores(self) -> None:
        assert cpu("2").magnitude == Decimal(2)
        assert cpu("1.5").magnitude == Decimal("1.5")

    def test_binary_memory_suffixes(self) -> None:
        assert memory("256Mi").magnitude == Decimal(256 * 1024**2)
        assert memory("1Gi").magnitude == Decimal(1024**3)

    def test_decimal_memory_suffixes(self) -> None:
        assert memory("1G").magnitude == Decimal(10**9)

    def test_missing_value_is_zero(self) -> None:
        assert cpu(None).magnitude == 0
        assert memory("").magnitude == 0

    def test_malformed_value_raises(self) -> None:
        with pytest.raises(ValueError):
            cpu("lots")


class TestAddition:
    """Test exact, unit-checked addition."""

    def test_fractional_cpu_does_not_lose_precision(self) -> None:
        total = cpu("100m") + cpu("100m") + cpu("100m")
        assert total.magnitude == Decimal("0.3")
        assert str(total) == "300m"

    def test_sum_is_order_independent(self) -> None:
        values = [cpu("1m"), cpu("250m"), cpu("1.5"), cpu("333m")]
        sums = {
            sum(perm[1:], perm[0]).magnitude for perm in itertools.permutations(values)
        }
        assert sums == {Decimal("2.084")}

    def test_unit_mismatch_raises(self) -> None:
        with pytest.raises(UnitMismatchError):
            cpu("1") + memory("1Mi")

    def test_quantities_are_immutable(self) -> None:
        quantity = cpu("1")
        with pytest.raises(ValidationError):
            quantity.magnitude = Decimal(2)


class TestRatio:
    """Test ratio computation."""

    def test_ratio(self) -> None:
        assert ratio(cpu("200m"), cpu("700m")) == pytest.approx(0.2857, abs=1e-4)

    def test_zero_denominator_is_nan(self) -> None:
        result = ratio(cpu("0"), cpu("0"))
        assert math.isnan(result)

    def test_real_zero_ratio_is_not_nan(self) -> None:
        assert ratio(cpu("0"), cpu("1")) == 0.0

    def test_unit_mismatch_raises(self) -> None:
        with pytest.raises(UnitMismatchError):
            ratio(cpu("1"), memory("1Gi"))


class TestFormatting:
    """Test canonical rendering."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("2", "2"), ("700m", "700m"), ("1.5", "1500m"), ("0", "0")],
    )
    def test_cpu(self, value: str, expected: str) -> None:
        assert str(cpu(value)) == expected

    def test_memory_renders_bytes(self) -> None:
        assert str(memory("1Ki")) == "1024"


class TestResourceAmounts:
    """Test limits/requests amounts."""

    def test_from_k8s_ignores_other_resources(self) -> None:
        amounts = ResourceAmounts.from_k8s(
            {"cpu": "500m", "memory": "256Mi", "ephemeral-storage": "1Gi"}
        )
        assert amounts.cpu.magnitude == Decimal("0.5")
        assert amounts.memory.magnitude == Decimal(256 * 1024**2)

    def test_from_k8s_none_is_zero(self) -> None:
        amounts = ResourceAmounts.from_k8s(None)
        assert amounts.cpu.magnitude == 0
        assert amounts.memory.magnitude == 0

    def test_addition(self) -> None:
        total = ResourceAmounts.from_k8s({"cpu": "500m"}) + ResourceAmounts.from_k8s(
            {"cpu": "200m", "memory": "128Mi"}
        )
        assert str(total.cpu) == "700m"
        assert total.memory.magnitude == Decimal(128 * 1024**2)

    def test_fits_within(self) -> None:
        small = ResourceAmounts.from_k8s({"cpu": "200m", "memory": "128Mi"})
        large = ResourceAmounts.from_k8s({"cpu": "700m", "memory": "384Mi"})
        assert small.fits_within(large)
        assert not large.fits_within(small)
