"""
Tests for usage-to-cost conversion
"""
import pytest
from unittest.mock import Mock

from app.core.exceptions import QueryUnavailable
from app.models.costs import MetricKind, RateModel, UsageSample
from app.services.pricing import (
    STORAGE_COST_PER_POD, cost_of, network_cost, resolve_usage
)

GIB = 1024 ** 3


def test_cpu_cost_is_cores_times_hourly_rate(rates):
    sample = UsageSample.of(MetricKind.CPU, 0.5)
    assert cost_of(sample, rates) == pytest.approx(0.024)


def test_memory_cost_uses_binary_gigabytes(rates):
    sample = UsageSample.of(MetricKind.MEMORY, 1 * GIB)
    assert cost_of(sample, rates) == pytest.approx(0.0067)

    # 1e9 bytes is less than one GiB
    sample = UsageSample.of(MetricKind.MEMORY, 1_000_000_000)
    assert cost_of(sample, rates) < 0.0067


def test_network_cost_is_fixed_per_byte(rates):
    rx = UsageSample.of(MetricKind.NETWORK_RX, 1500.0)
    tx = UsageSample.of(MetricKind.NETWORK_TX, 500.0)

    assert cost_of(rx, rates) == pytest.approx(0.0015)
    assert network_cost(rx, tx) == pytest.approx(0.002)


def test_network_cost_ignores_rate_model():
    cheap = RateModel(cpu_cost_per_core_hour=0.0, memory_cost_per_gb=0.0)
    sample = UsageSample.of(MetricKind.NETWORK_TX, 1_000_000.0)
    assert cost_of(sample, cheap) == pytest.approx(1.0)


def test_storage_placeholder():
    assert STORAGE_COST_PER_POD == 0.01


@pytest.mark.parametrize("kind", list(MetricKind))
def test_cost_is_monotonic_in_usage(kind, rates):
    values = [0.0, 0.001, 0.5, 1.0, 3.0, 1024.0, float(GIB), 64.0 * GIB]
    costs = [cost_of(UsageSample.of(kind, value), rates) for value in values]
    assert costs == sorted(costs)


@pytest.mark.parametrize("kind", list(MetricKind))
def test_zero_usage_costs_nothing(kind, rates):
    assert cost_of(UsageSample.zero(kind), rates) == 0.0


def test_zero_sample_carries_unit():
    assert UsageSample.zero(MetricKind.CPU).unit.value == "cores"
    assert UsageSample.zero(MetricKind.MEMORY).unit.value == "bytes"
    assert UsageSample.zero(MetricKind.NETWORK_RX).unit.value == "bytes"


def test_resolve_usage_passes_through_successful_query():
    sample = UsageSample.of(MetricKind.CPU, 0.75)
    fetch = Mock(return_value=sample)

    assert resolve_usage(MetricKind.CPU, fetch) is sample
    fetch.assert_called_once_with()


def test_resolve_usage_substitutes_zero_on_query_failure():
    fetch = Mock(side_effect=QueryUnavailable("connection refused"))

    result = resolve_usage(MetricKind.MEMORY, fetch)

    assert result.metric_kind == MetricKind.MEMORY
    assert result.value == 0.0


def test_resolve_usage_does_not_hide_other_errors():
    fetch = Mock(side_effect=RuntimeError("bug"))

    with pytest.raises(RuntimeError):
        resolve_usage(MetricKind.CPU, fetch)


def test_rate_model_is_immutable(rates):
    with pytest.raises(Exception):
        rates.cpu_cost_per_core_hour = 1.0
