from fastapi import APIRouter
from .endpoints import costs, health, metrics

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(costs.router, tags=["costs"])
api_router.include_router(metrics.router, tags=["metrics"])
