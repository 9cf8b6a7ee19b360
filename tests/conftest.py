"""
Shared fixtures for cost engine tests
"""
import pytest
from unittest.mock import Mock

from app.models.costs import MetricKind, RateModel, UsageSample
from app.models.kubernetes import NamespaceInfo, NodeInfo, PodInfo
from app.services.cost_service import CostService
from app.services.kubernetes_service import KubernetesService
from app.services.prometheus_service import PrometheusService

GIB = 1024 ** 3


@pytest.fixture
def rates():
    """Default billing rates"""
    return RateModel(
        cpu_cost_per_core_hour=0.048,
        memory_cost_per_gb=0.0067,
        storage_cost_per_gb=0.00014
    )


@pytest.fixture
def usage_table():
    """Usage per (kind, pod or node name); anything missing reads as zero"""
    return {}


@pytest.fixture
def mock_metrics(usage_table):
    """Prometheus service answering usage queries from usage_table"""
    metrics = Mock(spec=PrometheusService)

    def usage(kind, **scope):
        entity = scope.get("pod") or scope.get("node")
        value = usage_table.get((kind, entity), 0.0)
        if isinstance(value, Exception):
            raise value
        return UsageSample.of(kind, value)

    metrics.usage.side_effect = usage
    metrics.range_query.return_value = []
    return metrics


@pytest.fixture
def mock_inventory():
    """Inventory with two namespaces, three pods and two nodes"""
    inventory = Mock(spec=KubernetesService)
    inventory.list_namespaces.return_value = [
        NamespaceInfo(name="default", status="Active"),
        NamespaceInfo(name="payments", status="Active"),
    ]
    pods = {
        "default": [
            PodInfo(name="web-1", namespace="default", status="Running", node="node-a"),
            PodInfo(name="web-2", namespace="default", status="Running", node="node-b"),
        ],
        "payments": [
            PodInfo(name="ledger-0", namespace="payments", status="Running", node="node-a"),
        ],
    }
    inventory.list_pods.side_effect = lambda namespace: list(pods.get(namespace, []))
    inventory.list_nodes.return_value = [
        NodeInfo(name="node-a", cpu="4", memory="16Gi", status="Ready"),
        NodeInfo(name="node-b", cpu="8", memory="32Gi", status="NotReady"),
    ]
    return inventory


@pytest.fixture
def cost_service(mock_inventory, mock_metrics, rates):
    return CostService(mock_inventory, mock_metrics, rates)


@pytest.fixture
def populated_usage(usage_table):
    """Realistic usage for every pod and node in mock_inventory"""
    usage_table.update({
        (MetricKind.CPU, "web-1"): 0.5,
        (MetricKind.MEMORY, "web-1"): 1 * GIB,
        (MetricKind.CPU, "web-2"): 0.25,
        (MetricKind.MEMORY, "web-2"): 2 * GIB,
        (MetricKind.NETWORK_RX, "web-2"): 1500.0,
        (MetricKind.NETWORK_TX, "web-2"): 500.0,
        (MetricKind.CPU, "ledger-0"): 1.0,
        (MetricKind.MEMORY, "ledger-0"): 4 * GIB,
        (MetricKind.CPU, "node-a"): 1.5,
        (MetricKind.MEMORY, "node-a"): 5 * GIB,
        (MetricKind.CPU, "node-b"): 0.25,
        (MetricKind.MEMORY, "node-b"): 2 * GIB,
    })
    return usage_table
