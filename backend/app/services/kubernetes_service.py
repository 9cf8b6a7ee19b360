from kubernetes import client, config
from typing import List, Optional
import logging
import os
import yaml

from app.core.exceptions import InventoryUnavailable
from app.models.kubernetes import NamespaceInfo, PodInfo, NodeInfo

logger = logging.getLogger(__name__)


class KubernetesService:
    """Service for Kubernetes inventory lookups"""

    def __init__(self, kubeconfig_path: Optional[str] = None, context: Optional[str] = None):
        self.kubeconfig_path = kubeconfig_path or os.path.expanduser("~/.kube/config")
        self.current_context = None
        self._load_config(context)
        self.core_v1 = client.CoreV1Api()

    def _load_config(self, context: Optional[str] = None):
        """Load kubeconfig, falling back to the in-cluster service account"""
        try:
            config.load_kube_config(config_file=self.kubeconfig_path, context=context)
            self.current_context = context or self._get_current_context()
            logger.info(f"Loaded kubeconfig {self.kubeconfig_path} (context: {self.current_context})")
            return
        except config.ConfigException as e:
            logger.info(f"kubeconfig not usable ({e}), trying in-cluster configuration")

        try:
            config.load_incluster_config()
            self.current_context = "in-cluster"
            logger.info("Loaded in-cluster Kubernetes configuration")
        except config.ConfigException as e:
            raise InventoryUnavailable(f"Failed to load Kubernetes configuration: {e}") from e

    def _get_current_context(self) -> Optional[str]:
        """Get current active context"""
        try:
            with open(self.kubeconfig_path, 'r') as file:
                kubeconfig = yaml.safe_load(file) or {}
            return kubeconfig.get('current-context') or None
        except (OSError, yaml.YAMLError):
            return None

    @staticmethod
    def _node_status(node) -> str:
        for condition in node.status.conditions or []:
            if condition.type == "Ready":
                return "Ready" if condition.status == "True" else "NotReady"
        return "Unknown"

    def list_namespaces(self) -> List[NamespaceInfo]:
        """List namespaces in API order"""
        try:
            namespaces = self.core_v1.list_namespace()
        except Exception as e:
            raise InventoryUnavailable(f"Failed to get namespaces: {e}") from e

        return [
            NamespaceInfo(
                name=ns.metadata.name,
                status=ns.status.phase if ns.status else None,
                created_at=ns.metadata.creation_timestamp
            )
            for ns in namespaces.items
        ]

    def list_pods(self, namespace: str) -> List[PodInfo]:
        """List the pods of one namespace in API order"""
        try:
            pods = self.core_v1.list_namespaced_pod(namespace)
        except Exception as e:
            raise InventoryUnavailable(f"Failed to get pods for namespace {namespace}: {e}") from e

        return [
            PodInfo(
                name=pod.metadata.name,
                namespace=pod.metadata.namespace,
                status=pod.status.phase if pod.status else None,
                node=pod.spec.node_name if pod.spec else None,
                created_at=pod.metadata.creation_timestamp
            )
            for pod in pods.items
        ]

    def list_nodes(self) -> List[NodeInfo]:
        """List nodes with their capacity"""
        try:
            nodes = self.core_v1.list_node()
        except Exception as e:
            raise InventoryUnavailable(f"Failed to get nodes: {e}") from e

        result = []
        for node in nodes.items:
            capacity = node.status.capacity or {}
            result.append(NodeInfo(
                name=node.metadata.name,
                cpu=capacity.get("cpu"),
                memory=capacity.get("memory"),
                status=self._node_status(node)
            ))
        return result

    def check_connection(self) -> bool:
        """
        Check if the Kubernetes API is reachable.

        Returns:
            bool: True if a namespace listing succeeds, False otherwise
        """
        try:
            self.core_v1.list_namespace(limit=1)
            return True
        except Exception as e:
            logger.error(f"Failed to connect to Kubernetes API: {e}")
            return False
