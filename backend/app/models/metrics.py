from pydantic import BaseModel, Field
from typing import List, Dict
from datetime import datetime

from app.models.costs import utcnow


class Sample(BaseModel):
    """One (unix timestamp, value) pair from Prometheus"""
    timestamp: float
    value: float


class LabeledSeries(BaseModel):
    """A Prometheus series: its label set and samples in time order"""
    labels: Dict[str, str] = Field(default_factory=dict)
    samples: List[Sample] = Field(default_factory=list)


class MetricPoint(BaseModel):
    """Single metric value with its labels"""
    timestamp: datetime
    value: float
    labels: Dict[str, str] = Field(default_factory=dict)


class ResourceUsage(BaseModel):
    """Raw resource usage for a scope"""
    cpu_usage: float = 0.0
    memory_usage: int = 0
    storage_usage: int = 0
    network_rx_bytes: float = 0.0
    network_tx_bytes: float = 0.0
    timestamp: datetime = Field(default_factory=utcnow)


class PromMetrics(BaseModel):
    """Instant metric points grouped by resource"""
    cpu_metrics: List[MetricPoint] = Field(default_factory=list)
    memory_metrics: List[MetricPoint] = Field(default_factory=list)
    network_metrics: List[MetricPoint] = Field(default_factory=list)
    storage_metrics: List[MetricPoint] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class ClusterMetrics(BaseModel):
    """Cluster-wide counts and utilization"""
    total_nodes: int
    total_pods: int
    total_namespaces: int
    cpu_utilization: float = 0.0
    memory_utilization: float = 0.0
    storage_utilization: float = 0.0
    resource_usage: ResourceUsage
    timestamp: datetime = Field(default_factory=utcnow)


class ResourceUsageResponse(BaseModel):
    resource_usage: ResourceUsage
    namespace: str
    pod: str
    timestamp: datetime = Field(default_factory=utcnow)


class HealthStatus(BaseModel):
    """Liveness or readiness report"""
    status: str
    timestamp: datetime = Field(default_factory=utcnow)
    checks: Dict[str, str] = Field(default_factory=dict)
