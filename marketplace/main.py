"""
FastAPI Application Entry Point - Marketplace Order Service
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from marketplace.config import settings
from marketplace.database import init_db
from marketplace.exceptions import OrderError
from marketplace.services.catalog_client import CatalogServiceUnavailableError
from marketplace.api import orders, health

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Marketplace Order Service",
    description="Checkout, seller-scoped orders and order fulfillment for the marketplace",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(orders.router)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    """Map order errors to their HTTP status"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(CatalogServiceUnavailableError)
async def catalog_unavailable_handler(request: Request, exc: CatalogServiceUnavailableError):
    logger.error("Request to %s failed, catalog unavailable: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.on_event("startup")
def startup_event():
    """Initialize database on startup"""
    logger.info("Starting %s...", settings.SERVICE_NAME)
    init_db()
    logger.info("Catalog backend: %s", settings.CATALOG_BACKEND)
    if settings.CATALOG_BACKEND == "http":
        logger.info("Catalog Service URL: %s", settings.CATALOG_SERVICE_URL)
    logger.info("RabbitMQ URL: %s (events %s)", settings.RABBITMQ_URL,
                "enabled" if settings.EVENTS_ENABLED else "disabled")
    logger.info("%s is running on port %s", settings.SERVICE_NAME, settings.SERVICE_PORT)


@app.on_event("shutdown")
def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down %s...", settings.SERVICE_NAME)
