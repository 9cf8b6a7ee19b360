import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from app.core.config import settings
from app.core.exceptions import InventoryUnavailable
from app.core.logging import setup_logging
from app.models.kubernetes import ErrorResponse
from app.api.v1.api import api_router

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Kubernetes workload cost estimation API",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)

# Include API router
app.include_router(api_router, prefix="/api/v1")


# Kubernetes client construction happens in dependencies, outside endpoint handlers
@app.exception_handler(InventoryUnavailable)
async def inventory_unavailable_handler(request: Request, exc: InventoryUnavailable):
    logger.error(f"Inventory unavailable for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Kubernetes inventory unavailable", detail=str(exc)).model_dump()
    )


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.app_version}


def run():
    """Console entry point"""
    setup_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
