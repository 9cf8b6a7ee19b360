import logging
from datetime import datetime, timezone
from typing import List, Optional

from app.core.context import RequestContext, check_context
from app.core.exceptions import InventoryUnavailable, QueryUnavailable
from app.models.costs import MetricKind, utcnow
from app.models.metrics import ClusterMetrics, LabeledSeries, MetricPoint, PromMetrics, ResourceUsage
from app.services.kubernetes_service import KubernetesService
from app.services.pricing import resolve_usage
from app.services.prometheus_service import PrometheusService, series_expression

logger = logging.getLogger(__name__)

CPU_UTILIZATION_QUERY = '(1 - avg(rate(node_cpu_seconds_total{mode="idle"}[5m]))) * 100'
MEMORY_UTILIZATION_QUERY = '(1 - (sum(node_memory_MemAvailable_bytes) / sum(node_memory_MemTotal_bytes))) * 100'


def to_metric_points(series: List[LabeledSeries]) -> List[MetricPoint]:
    return [
        MetricPoint(
            timestamp=datetime.fromtimestamp(sample.timestamp, tz=timezone.utc),
            value=sample.value,
            labels=item.labels
        )
        for item in series
        for sample in item.samples
    ]


class MetricsService:
    """Service for raw usage views over Prometheus and the inventory"""

    def __init__(self, inventory: KubernetesService, metrics: PrometheusService):
        self.inventory = inventory
        self.metrics = metrics

    def _optional_points(self, query: str) -> List[MetricPoint]:
        try:
            return to_metric_points(self.metrics.instant_query(query))
        except QueryUnavailable as e:
            logger.warning(f"Optional query failed, returning no points: {e}")
            return []

    def _utilization(self, query: str) -> float:
        try:
            series = self.metrics.instant_query(query)
        except QueryUnavailable as e:
            logger.warning(f"Utilization query failed: {e}")
            return 0.0
        if series and series[0].samples:
            return series[0].samples[0].value
        return 0.0

    def get_prometheus_metrics(self, namespace: Optional[str] = None, pod: Optional[str] = None,
                               ctx: Optional[RequestContext] = None) -> PromMetrics:
        """Instant per-container series; CPU and memory failures are fatal, network is best effort"""
        scope = {"namespace": namespace, "pod": pod}

        check_context(ctx)
        cpu_metrics = to_metric_points(self.metrics.instant_query(series_expression(MetricKind.CPU, **scope)))
        check_context(ctx)
        memory_metrics = to_metric_points(self.metrics.instant_query(series_expression(MetricKind.MEMORY, **scope)))
        check_context(ctx)
        network_metrics = self._optional_points(series_expression(MetricKind.NETWORK_RX, **scope))
        check_context(ctx)
        network_metrics += self._optional_points(series_expression(MetricKind.NETWORK_TX, **scope))

        return PromMetrics(
            cpu_metrics=cpu_metrics,
            memory_metrics=memory_metrics,
            network_metrics=network_metrics,
            storage_metrics=[],
            timestamp=utcnow()
        )

    def get_resource_usage(self, namespace: Optional[str] = None, pod: Optional[str] = None,
                           ctx: Optional[RequestContext] = None) -> ResourceUsage:
        """Summed usage for a scope, each signal zero when unavailable"""
        scope = {"namespace": namespace, "pod": pod}
        values = {}
        for kind in MetricKind:
            check_context(ctx)
            values[kind] = resolve_usage(kind, lambda: self.metrics.usage(kind, **scope)).value

        return ResourceUsage(
            cpu_usage=values[MetricKind.CPU],
            memory_usage=int(values[MetricKind.MEMORY]),
            storage_usage=0,
            network_rx_bytes=values[MetricKind.NETWORK_RX],
            network_tx_bytes=values[MetricKind.NETWORK_TX],
            timestamp=utcnow()
        )

    def get_cluster_metrics(self, ctx: Optional[RequestContext] = None) -> ClusterMetrics:
        check_context(ctx)
        nodes = self.inventory.list_nodes()
        namespaces = self.inventory.list_namespaces()

        total_pods = 0
        for ns in namespaces:
            check_context(ctx)
            try:
                total_pods += len(self.inventory.list_pods(ns.name))
            except InventoryUnavailable as e:
                logger.warning(f"Skipping pod count for namespace {ns.name}: {e}")

        check_context(ctx)
        cpu_utilization = self._utilization(CPU_UTILIZATION_QUERY)
        check_context(ctx)
        memory_utilization = self._utilization(MEMORY_UTILIZATION_QUERY)

        return ClusterMetrics(
            total_nodes=len(nodes),
            total_pods=total_pods,
            total_namespaces=len(namespaces),
            cpu_utilization=cpu_utilization,
            memory_utilization=memory_utilization,
            storage_utilization=0.0,
            resource_usage=self.get_resource_usage(ctx=ctx),
            timestamp=utcnow()
        )
