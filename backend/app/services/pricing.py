"""
Unit conversion from observed usage to cost.

CPU usage is a 5-minute rate in cores and is priced as cost per hour at that
rate; no elapsed-time integral is applied. Memory is priced per GiB held.
Storage is a flat placeholder per pod and network a fixed per-byte rate,
neither of which is part of the configurable rate model.
"""

import logging
from typing import Callable

from app.core.exceptions import QueryUnavailable
from app.models.costs import MetricKind, RateModel, UsageSample

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1024 ** 3
NETWORK_COST_PER_BYTE = 0.000001
STORAGE_COST_PER_POD = 0.01


def cost_of(usage: UsageSample, rate: RateModel) -> float:
    """Convert a usage sample into its cost contribution"""
    if usage.metric_kind == MetricKind.CPU:
        return usage.value * rate.cpu_cost_per_core_hour
    if usage.metric_kind == MetricKind.MEMORY:
        return usage.value / BYTES_PER_GB * rate.memory_cost_per_gb
    if usage.metric_kind in (MetricKind.NETWORK_RX, MetricKind.NETWORK_TX):
        return usage.value * NETWORK_COST_PER_BYTE
    raise ValueError(f"Unsupported metric kind: {usage.metric_kind}")


def network_cost(rx: UsageSample, tx: UsageSample) -> float:
    return (rx.value + tx.value) * NETWORK_COST_PER_BYTE


def resolve_usage(kind: MetricKind, fetch: Callable[[], UsageSample]) -> UsageSample:
    """
    Run a usage query, substituting zero usage if the query is unavailable.

    A single missing signal must not block costing of the others, so
    QueryUnavailable stops here and never reaches the caller.
    """
    try:
        return fetch()
    except QueryUnavailable as e:
        logger.warning(f"{kind.value} usage unavailable, treating as zero: {e}")
        return UsageSample.zero(kind)
