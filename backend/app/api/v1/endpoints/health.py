from fastapi import APIRouter, Response
from fastapi.concurrency import run_in_threadpool
import logging

from app.api.deps import get_kubernetes_service, get_prometheus_service
from app.core.exceptions import InventoryUnavailable
from app.models.metrics import HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def _readiness_checks() -> dict:
    checks = {"api": "ok"}

    try:
        kubernetes_service = get_kubernetes_service()
        checks["kubernetes"] = "ok" if kubernetes_service.check_connection() else "unreachable"
        checks["kubernetes_context"] = kubernetes_service.current_context or "unknown"
    except InventoryUnavailable as e:
        logger.error(f"Kubernetes client unavailable: {e}")
        checks["kubernetes"] = "unconfigured"

    checks["prometheus"] = "ok" if get_prometheus_service().check_connection() else "unreachable"
    return checks


@router.get("/health", response_model=HealthStatus)
async def health():
    """Liveness check"""
    return HealthStatus(status="healthy", checks={"server": "ok", "api": "ok"})


@router.get("/ready", response_model=HealthStatus)
async def ready(response: Response):
    """Readiness check against Kubernetes and Prometheus"""
    checks = await run_in_threadpool(_readiness_checks)
    backends_ok = checks.get("kubernetes") == "ok" and checks.get("prometheus") == "ok"
    if not backends_ok:
        response.status_code = 503
    return HealthStatus(status="ready" if backends_ok else "degraded", checks=checks)
