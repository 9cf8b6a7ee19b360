from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional

from app.api.deps import get_metrics_service, run_with_context
from app.core.exceptions import RequestCancelled
from app.models.metrics import ClusterMetrics, PromMetrics, ResourceUsageResponse
from app.services.metrics_service import MetricsService

router = APIRouter()


@router.get("/metrics/prometheus", response_model=PromMetrics)
async def get_prometheus_metrics(
    request: Request,
    namespace: Optional[str] = Query(None, description="Limit to one namespace"),
    pod: Optional[str] = Query(None, description="Limit to one pod"),
    metrics_service: MetricsService = Depends(get_metrics_service)
):
    """Get instant CPU, memory and network series"""
    try:
        return await run_with_context(metrics_service.get_prometheus_metrics, namespace, pod, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get Prometheus metrics: {e}")


@router.get("/metrics/cluster", response_model=ClusterMetrics)
async def get_cluster_metrics(request: Request, metrics_service: MetricsService = Depends(get_metrics_service)):
    """Get cluster counts and utilization"""
    try:
        return await run_with_context(metrics_service.get_cluster_metrics, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get cluster metrics: {e}")


@router.get("/metrics/resource-usage", response_model=ResourceUsageResponse)
async def get_resource_usage(
    request: Request,
    namespace: Optional[str] = Query(None, description="Limit to one namespace"),
    pod: Optional[str] = Query(None, description="Limit to one pod"),
    metrics_service: MetricsService = Depends(get_metrics_service)
):
    """Get summed resource usage for a namespace or pod"""
    try:
        usage = await run_with_context(metrics_service.get_resource_usage, namespace, pod, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get resource usage: {e}")
    return ResourceUsageResponse(resource_usage=usage, namespace=namespace or "", pod=pod or "")
