from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MetricKind(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    NETWORK_RX = "network_rx"
    NETWORK_TX = "network_tx"


class UsageUnit(str, Enum):
    CORES = "cores"
    BYTES = "bytes"


UNIT_FOR_KIND = {
    MetricKind.CPU: UsageUnit.CORES,
    MetricKind.MEMORY: UsageUnit.BYTES,
    MetricKind.NETWORK_RX: UsageUnit.BYTES,
    MetricKind.NETWORK_TX: UsageUnit.BYTES,
}


class RateModel(BaseModel):
    """Billing rates, fixed for the lifetime of the process"""
    model_config = ConfigDict(frozen=True)

    cpu_cost_per_core_hour: float = Field(..., ge=0)
    memory_cost_per_gb: float = Field(..., ge=0)
    storage_cost_per_gb: float = Field(0.0, ge=0)


class UsageSample(BaseModel):
    """A single observed usage figure for one metric kind"""
    metric_kind: MetricKind
    value: float
    unit: UsageUnit
    as_of: datetime = Field(default_factory=utcnow)

    @classmethod
    def of(cls, kind: MetricKind, value: float, as_of: Optional[datetime] = None) -> "UsageSample":
        return cls(
            metric_kind=kind,
            value=value,
            unit=UNIT_FOR_KIND[kind],
            as_of=as_of or utcnow()
        )

    @classmethod
    def zero(cls, kind: MetricKind) -> "UsageSample":
        return cls.of(kind, 0.0)


class CostBreakdown(BaseModel):
    """Cost split by resource dimension; total is always derived"""
    cpu_cost: float = 0.0
    memory_cost: float = 0.0
    storage_cost: float = 0.0
    network_cost: float = 0.0

    @computed_field
    @property
    def total_cost(self) -> float:
        return self.cpu_cost + self.memory_cost + self.storage_cost + self.network_cost


class PodCost(CostBreakdown):
    """Cost record for a single pod"""
    name: str
    namespace: str
    cpu_usage: float = 0.0
    memory_usage: int = 0
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=utcnow)


class NodeCost(CostBreakdown):
    """Cost record for a single node"""
    name: str
    cpu_capacity: Optional[str] = None
    memory_capacity: Optional[str] = None
    cpu_usage: float = 0.0
    memory_usage: int = 0
    status: str = "Unknown"
    timestamp: datetime = Field(default_factory=utcnow)


class NamespaceCost(CostBreakdown):
    """Cost rolled up over the pods of one namespace.

    pod_count is the number of pods the inventory listed; pods holds only the
    ones that were costed, so the two can differ.
    """
    namespace: str
    pod_count: int = 0
    pods: List[PodCost] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class CostOverview(BaseModel):
    """Cluster-wide cost rolled up over namespaces"""
    total_cost: CostBreakdown
    namespace_costs: List[NamespaceCost] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class CostHistoryPoint(BaseModel):
    """Reconciled cost at one timestamp bucket"""
    timestamp: datetime
    cpu_cost: float = 0.0
    memory_cost: float = 0.0
    total_cost: float = 0.0


class CostHistory(BaseModel):
    """Cost history over a time window"""
    period: str
    start_time: datetime
    end_time: datetime
    data: List[CostHistoryPoint] = Field(default_factory=list)


class NamespaceCostsResponse(BaseModel):
    namespace_costs: List[NamespaceCost]
    count: int
    timestamp: datetime = Field(default_factory=utcnow)


class PodCostsResponse(BaseModel):
    pod_costs: List[PodCost]
    namespace: str
    count: int
    timestamp: datetime = Field(default_factory=utcnow)


class NodeCostsResponse(BaseModel):
    node_costs: List[NodeCost]
    count: int
    timestamp: datetime = Field(default_factory=utcnow)
