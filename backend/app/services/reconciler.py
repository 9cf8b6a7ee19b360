"""
Reconciles independently sampled CPU and memory series into one cost history.

Samples are bucketed by their Unix timestamp truncated to whole seconds; two
samples only meet in a bucket when those seconds are equal. A bucket seen in
one input only keeps zero for the other dimension. Each point carries the
cost per hour observed at that instant, not the cost accrued over the step.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from app.models.costs import CostHistoryPoint, MetricKind, RateModel, UsageSample
from app.models.metrics import LabeledSeries
from app.services.pricing import cost_of

Buckets = Dict[int, Dict[str, float]]


def _accumulate(buckets: Buckets, series: Iterable[LabeledSeries], kind: MetricKind,
                field: str, rates: RateModel):
    for item in series:
        for sample in item.samples:
            second = int(sample.timestamp)
            bucket = buckets.setdefault(second, {"cpu_cost": 0.0, "memory_cost": 0.0})
            bucket[field] += cost_of(UsageSample.of(kind, sample.value), rates)


def accumulate_costs(cpu_series: Iterable[LabeledSeries],
                     memory_series: Iterable[LabeledSeries],
                     rates: RateModel) -> Buckets:
    """Sum converted costs per second across every series of both inputs"""
    buckets: Buckets = {}
    _accumulate(buckets, cpu_series, MetricKind.CPU, "cpu_cost", rates)
    _accumulate(buckets, memory_series, MetricKind.MEMORY, "memory_cost", rates)
    return buckets


def finalize_history(buckets: Buckets) -> List[CostHistoryPoint]:
    """Turn buckets into points ordered by timestamp"""
    points = [
        CostHistoryPoint(
            timestamp=datetime.fromtimestamp(second, tz=timezone.utc),
            cpu_cost=costs["cpu_cost"],
            memory_cost=costs["memory_cost"],
            total_cost=costs["cpu_cost"] + costs["memory_cost"]
        )
        for second, costs in buckets.items()
    ]
    points.sort(key=lambda point: point.timestamp)
    return points


def reconcile(cpu_series: Iterable[LabeledSeries],
              memory_series: Iterable[LabeledSeries],
              rates: RateModel) -> List[CostHistoryPoint]:
    return finalize_history(accumulate_costs(cpu_series, memory_series, rates))
