"""
Error taxonomy for the cost engine.

Inventory failures abort a top-level request, metric query failures are
degraded to zero usage, and per-entity failures drop only that entity.
"""


class CostEngineError(Exception):
    """Base class for cost engine errors"""


class InventoryUnavailable(CostEngineError):
    """The Kubernetes API could not be reached or rejected a listing"""


class QueryUnavailable(CostEngineError):
    """A Prometheus query failed in transport or returned a non-success status"""


class EntityCostFailure(CostEngineError):
    """A single pod, node or namespace could not be costed"""

    def __init__(self, entity: str, reason: str):
        self.entity = entity
        self.reason = reason
        super().__init__(f"Failed to compute cost for {entity}: {reason}")


class RequestCancelled(CostEngineError):
    """The caller timed out or went away while the request was in flight"""
