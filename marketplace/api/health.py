"""
Health check endpoint
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.database import get_db
from marketplace.services.catalog_client import CatalogServiceClient

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Checks:
    - Service status
    - Database connectivity
    - Catalog Service connectivity (http catalog backend only)
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"

    result = {
        "service": settings.SERVICE_NAME,
        "database": db_status,
        "catalog_backend": settings.CATALOG_BACKEND,
    }
    healthy = db_status == "healthy"

    if settings.CATALOG_BACKEND == "http":
        catalog_ok = CatalogServiceClient().ping()
        result["catalog_service"] = "healthy" if catalog_ok else "unhealthy"
        healthy = healthy and catalog_ok

    result["status"] = "healthy" if healthy else "unhealthy"
    result["timestamp"] = datetime.now(timezone.utc).isoformat()
    return result


@router.get("/")
def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }
