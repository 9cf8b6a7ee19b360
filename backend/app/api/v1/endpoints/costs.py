from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
from datetime import timedelta

from app.api.deps import get_cost_service, run_with_context
from app.core.durations import parse_duration
from app.core.exceptions import RequestCancelled
from app.models.costs import (
    CostHistory, CostOverview, NamespaceCostsResponse, NodeCostsResponse, PodCostsResponse, utcnow
)
from app.services.cost_service import CostService
from app.services.prometheus_service import MAX_RANGE_POINTS, range_points

router = APIRouter()


@router.get("/costs/overview", response_model=CostOverview)
async def get_cost_overview(request: Request, cost_service: CostService = Depends(get_cost_service)):
    """Get cluster-wide cost totals broken down by namespace"""
    try:
        return await run_with_context(cost_service.aggregate_cluster, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get cost overview: {e}")


@router.get("/costs/namespaces", response_model=NamespaceCostsResponse)
async def get_namespace_costs(request: Request, cost_service: CostService = Depends(get_cost_service)):
    """Get cost per namespace, including each namespace's pods"""
    try:
        costs = await run_with_context(cost_service.get_namespace_costs, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get namespace costs: {e}")
    return NamespaceCostsResponse(namespace_costs=costs, count=len(costs))


@router.get("/costs/pods", response_model=PodCostsResponse)
async def get_pod_costs(
    request: Request,
    namespace: str = Query("default", description="Namespace whose pods to cost"),
    cost_service: CostService = Depends(get_cost_service)
):
    """Get cost per pod in a namespace"""
    try:
        costs = await run_with_context(cost_service.get_pod_costs, namespace, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get pod costs: {e}")
    return PodCostsResponse(pod_costs=costs, namespace=namespace, count=len(costs))


@router.get("/costs/nodes", response_model=NodeCostsResponse)
async def get_node_costs(request: Request, cost_service: CostService = Depends(get_cost_service)):
    """Get cost of the workload on each node"""
    try:
        costs = await run_with_context(cost_service.get_node_costs, request=request)
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get node costs: {e}")
    return NodeCostsResponse(node_costs=costs, count=len(costs))


@router.get("/costs/history", response_model=CostHistory)
async def get_cost_history(
    request: Request,
    hours: str = Query("24", description="Length of the window in hours"),
    step: str = Query("1h", description="Resolution, e.g. 15m or 1h"),
    namespace: Optional[str] = Query(None, description="Limit to one namespace"),
    cost_service: CostService = Depends(get_cost_service)
):
    """Get hourly cost rate over a trailing window"""
    try:
        hours_value = int(hours)
        if hours_value <= 0:
            raise ValueError(hours)
        duration = timedelta(hours=hours_value)
        # window start must still be a representable datetime
        utcnow() - duration
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail="Invalid hours parameter")

    try:
        step_value = parse_duration(step)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail="Invalid step parameter")

    if range_points(duration, step_value) > MAX_RANGE_POINTS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid step parameter: more than {MAX_RANGE_POINTS} points per series"
        )

    try:
        return await run_with_context(
            cost_service.get_cost_history,
            duration,
            step_value,
            namespace or None,
            request=request
        )
    except RequestCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get cost history: {e}")
