"""
Cost service module.
Computes per-pod and per-node costs from live usage and rolls them up into
namespace and cluster totals.

Failure handling is asymmetric: a failed top-level inventory
listing aborts the request, while failed usage queries degrade to zero and a
child that cannot be costed is left out of its parent's totals.
"""

import logging
from datetime import timedelta
from typing import Callable, Iterable, List, Optional, TypeVar

from app.core.context import RequestContext, check_context
from app.core.durations import format_duration
from app.core.exceptions import EntityCostFailure, InventoryUnavailable, QueryUnavailable
from app.models.costs import (
    CostBreakdown, CostHistory, CostOverview, MetricKind, NamespaceCost,
    NodeCost, PodCost, RateModel, UsageSample, utcnow
)
from app.models.kubernetes import NodeInfo, PodInfo
from app.models.metrics import LabeledSeries
from app.services.kubernetes_service import KubernetesService
from app.services.pricing import STORAGE_COST_PER_POD, cost_of, network_cost, resolve_usage
from app.services.prometheus_service import PrometheusService, series_expression
from app.services.reconciler import reconcile

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")

COST_FIELDS = ("cpu_cost", "memory_cost", "storage_cost", "network_cost")


def sum_costs(records: Iterable[CostBreakdown]) -> CostBreakdown:
    """Sum each dimension independently; the total follows from the four sums"""
    records = list(records)
    return CostBreakdown(**{
        field: sum(getattr(record, field) for record in records)
        for field in COST_FIELDS
    })


class CostService:
    """Service for cost estimation"""

    def __init__(self, inventory: KubernetesService, metrics: PrometheusService, rates: RateModel):
        self.inventory = inventory
        self.metrics = metrics
        self.rates = rates

    def _usage(self, kind: MetricKind, ctx: Optional[RequestContext], **scope) -> UsageSample:
        check_context(ctx)
        return resolve_usage(kind, lambda: self.metrics.usage(kind, **scope))

    def _cost_children(self, children: Iterable[C], compute: Callable[[C], T],
                       describe: Callable[[C], str]) -> List[T]:
        """Cost each child in order, leaving out the ones that fail"""
        results = []
        for child in children:
            try:
                results.append(compute(child))
            except (EntityCostFailure, InventoryUnavailable) as e:
                logger.warning(f"Skipping {describe(child)}: {e}")
        return results

    # ============================================
    # Entity costs
    # ============================================

    def compute_pod_cost(self, namespace: str, pod_name: str, info: Optional[PodInfo] = None,
                         ctx: Optional[RequestContext] = None) -> PodCost:
        """Cost of one pod at its currently observed usage"""
        scope = {"namespace": namespace, "pod": pod_name}
        cpu = self._usage(MetricKind.CPU, ctx, **scope)
        memory = self._usage(MetricKind.MEMORY, ctx, **scope)
        rx = self._usage(MetricKind.NETWORK_RX, ctx, **scope)
        tx = self._usage(MetricKind.NETWORK_TX, ctx, **scope)

        try:
            return PodCost(
                name=pod_name,
                namespace=namespace,
                cpu_cost=cost_of(cpu, self.rates),
                memory_cost=cost_of(memory, self.rates),
                storage_cost=STORAGE_COST_PER_POD,
                network_cost=network_cost(rx, tx),
                cpu_usage=cpu.value,
                memory_usage=int(memory.value),
                status=info.status if info else None,
                created_at=info.created_at if info else None,
                timestamp=utcnow()
            )
        except (ValueError, ArithmeticError) as e:
            raise EntityCostFailure(f"pod {namespace}/{pod_name}", str(e)) from e

    def compute_node_cost(self, node: NodeInfo, ctx: Optional[RequestContext] = None) -> NodeCost:
        """Cost of the workload running on one node; nodes carry no storage or network cost"""
        cpu = self._usage(MetricKind.CPU, ctx, node=node.name)
        memory = self._usage(MetricKind.MEMORY, ctx, node=node.name)

        try:
            return NodeCost(
                name=node.name,
                cpu_cost=cost_of(cpu, self.rates),
                memory_cost=cost_of(memory, self.rates),
                cpu_capacity=node.cpu,
                memory_capacity=node.memory,
                cpu_usage=cpu.value,
                memory_usage=int(memory.value),
                status=node.status,
                timestamp=utcnow()
            )
        except (ValueError, ArithmeticError) as e:
            raise EntityCostFailure(f"node {node.name}", str(e)) from e

    # ============================================
    # Roll-ups
    # ============================================

    def aggregate_namespace(self, namespace: str, ctx: Optional[RequestContext] = None) -> NamespaceCost:
        """
        Roll pod costs up into a namespace total.

        pod_count reports every pod the inventory listed, including pods whose
        cost could not be computed and which are therefore absent from pods.
        """
        check_context(ctx)
        pods = self.inventory.list_pods(namespace)
        pod_costs = self._cost_children(
            pods,
            lambda pod: self.compute_pod_cost(pod.namespace, pod.name, info=pod, ctx=ctx),
            lambda pod: f"pod {pod.namespace}/{pod.name}"
        )
        totals = sum_costs(pod_costs)

        return NamespaceCost(
            namespace=namespace,
            cpu_cost=totals.cpu_cost,
            memory_cost=totals.memory_cost,
            storage_cost=totals.storage_cost,
            network_cost=totals.network_cost,
            pod_count=len(pods),
            pods=pod_costs,
            timestamp=utcnow()
        )

    def get_namespace_costs(self, ctx: Optional[RequestContext] = None) -> List[NamespaceCost]:
        check_context(ctx)
        namespaces = self.inventory.list_namespaces()
        return self._cost_children(
            namespaces,
            lambda ns: self.aggregate_namespace(ns.name, ctx=ctx),
            lambda ns: f"namespace {ns.name}"
        )

    def aggregate_cluster(self, ctx: Optional[RequestContext] = None) -> CostOverview:
        """Roll namespace costs up into a cluster overview"""
        namespace_costs = self.get_namespace_costs(ctx=ctx)
        return CostOverview(
            total_cost=sum_costs(namespace_costs),
            namespace_costs=namespace_costs,
            timestamp=utcnow()
        )

    def get_pod_costs(self, namespace: str, ctx: Optional[RequestContext] = None) -> List[PodCost]:
        check_context(ctx)
        pods = self.inventory.list_pods(namespace)
        return self._cost_children(
            pods,
            lambda pod: self.compute_pod_cost(pod.namespace, pod.name, info=pod, ctx=ctx),
            lambda pod: f"pod {pod.namespace}/{pod.name}"
        )

    def get_node_costs(self, ctx: Optional[RequestContext] = None) -> List[NodeCost]:
        check_context(ctx)
        nodes = self.inventory.list_nodes()
        return self._cost_children(
            nodes,
            lambda node: self.compute_node_cost(node, ctx=ctx),
            lambda node: f"node {node.name}"
        )

    # ============================================
    # History
    # ============================================

    def _range_series(self, kind: MetricKind, start, end, step: timedelta,
                      ctx: Optional[RequestContext], namespace: Optional[str]) -> List[LabeledSeries]:
        check_context(ctx)
        try:
            return self.metrics.range_query(
                series_expression(kind, namespace=namespace), start, end, step
            )
        except QueryUnavailable as e:
            logger.warning(f"{kind.value} history unavailable, leaving it at zero: {e}")
            return []

    def get_cost_history(self, duration: timedelta, step: timedelta, namespace: Optional[str] = None,
                         ctx: Optional[RequestContext] = None) -> CostHistory:
        """Cost per hour at each step over the trailing window"""
        end_time = utcnow()
        start_time = end_time - duration

        cpu_series = self._range_series(MetricKind.CPU, start_time, end_time, step, ctx, namespace)
        memory_series = self._range_series(MetricKind.MEMORY, start_time, end_time, step, ctx, namespace)

        return CostHistory(
            period=format_duration(duration),
            start_time=start_time,
            end_time=end_time,
            data=reconcile(cpu_series, memory_series, self.rates)
        )
