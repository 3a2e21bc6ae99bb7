"""
Lambda Warmup Service - Keeps remote functions hot
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import uvicorn

from core.config import get_settings
from core.posthog_client import PostHogClient
from core.warmup_setup import setup_warmup
from api import warmup

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    # Initialize PostHog for error tracking
    PostHogClient.initialize(settings.posthog_api_key, settings.posthog_host)

    # Tests may attach their own service
    if getattr(app.state, "warmup_service", None) is None:
        app.state.warmup_service = setup_warmup(settings)

    yield

    # Shutdown
    logger.info("Shutting down warmup service")

    PostHogClient.shutdown()
    app.state.warmup_service.shutdown()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Mount Prometheus metrics
if settings.enable_metrics:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

# Include routers
app.include_router(warmup.router, prefix="/api/v1")

# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": type(exc).__name__,
        }
    )

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Lambda Warmup Service",
        "version": settings.app_version,
        "status": "running",
        "endpoints": {
            "warmup": "/api/v1/warmup",
            "strategies": "/api/v1/warmup/strategies",
            "targets": "/api/v1/warmup/targets",
            "health": "/health",
            "metrics": "/metrics" if settings.enable_metrics else None,
            "docs": "/docs" if settings.debug else None,
        }
    }

# Health check
@app.get("/health")
async def health(request: Request):
    """Health check endpoint"""
    service = getattr(request.app.state, "warmup_service", None)

    return {
        "status": "healthy" if service is not None else "degraded",
        "service": "lambda-warmup",
        "version": settings.app_version,
        "checks": {
            "warmup_service": service is not None,
        },
        "strategies": service.router.registry.names() if service is not None else [],
        "targets": len(service.targets) if service is not None else 0,
    }

def main():
    """Main entry point"""
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers if not settings.debug else 1,
        log_level="info" if not settings.debug else "debug",
    )

if __name__ == "__main__":
    main()
