import asyncio
import logging
from functools import lru_cache
from typing import Any, Callable, Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.context import RequestContext
from app.core.exceptions import RequestCancelled
from app.models.costs import RateModel
from app.services.cost_service import CostService
from app.services.kubernetes_service import KubernetesService
from app.services.metrics_service import MetricsService
from app.services.prometheus_service import PrometheusService

logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5


@lru_cache
def get_rate_model() -> RateModel:
    return settings.rate_model()


@lru_cache
def get_kubernetes_service() -> KubernetesService:
    return KubernetesService(settings.kubeconfig_path, settings.default_context)


@lru_cache
def get_prometheus_service() -> PrometheusService:
    return PrometheusService(
        settings.prometheus_url,
        timeout=settings.prometheus_timeout,
        username=settings.prometheus_username,
        password=settings.prometheus_password,
        bearer_token=settings.prometheus_bearer_token
    )


def get_cost_service(
    inventory: KubernetesService = Depends(get_kubernetes_service),
    metrics: PrometheusService = Depends(get_prometheus_service),
    rates: RateModel = Depends(get_rate_model)
) -> CostService:
    return CostService(inventory, metrics, rates)


def get_metrics_service(
    inventory: KubernetesService = Depends(get_kubernetes_service),
    metrics: PrometheusService = Depends(get_prometheus_service)
) -> MetricsService:
    return MetricsService(inventory, metrics)


async def watch_disconnect(request: Request, ctx: RequestContext):
    """Cancel ctx as soon as the client behind request goes away"""
    while not ctx.cancelled:
        if await request.is_disconnected():
            logger.info(f"Client disconnected from {request.url.path}, cancelling request")
            ctx.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


async def run_with_context(func: Callable[..., Any], *args, request: Optional[Request] = None, **kwargs) -> Any:
    """
    Run a blocking service call in a worker thread under a RequestContext.

    If the request times out or the client goes away the context is
    cancelled, so the worker stops before its next backend call and the
    request fails as a whole.
    """
    timeout = settings.request_timeout_seconds
    ctx = RequestContext(timeout)
    watcher = asyncio.create_task(watch_disconnect(request, ctx)) if request is not None else None
    try:
        return await asyncio.wait_for(run_in_threadpool(func, *args, ctx=ctx, **kwargs), timeout=timeout)
    except asyncio.TimeoutError as e:
        ctx.cancel()
        raise RequestCancelled(f"Request did not complete within {timeout} seconds") from e
    except asyncio.CancelledError:
        ctx.cancel()
        raise
    finally:
        if watcher is not None:
            watcher.cancel()
