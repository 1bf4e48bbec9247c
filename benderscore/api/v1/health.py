"""
Health check endpoints
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from benderscore.api.deps import CatalogDep, DbManagerDep
from benderscore.core.config import settings
from benderscore.core.database import check_database_health
from benderscore.core.exceptions import DataSourceError
from benderscore.core.logging import log
from benderscore.schemas.common import HealthCheckResponse


router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Basic health check"""
    return HealthCheckResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.VERSION,
        database="unknown"
    )


@router.get("/health/ready", response_model=Dict[str, Any])
async def readiness_probe(db: DbManagerDep, catalog: CatalogDep) -> Dict[str, Any]:
    """
    Readiness probe - checks the database and the base catalog
    """
    checks = {
        "database": False,
        "catalog": False
    }

    database = await check_database_health(db)
    checks["database"] = database["status"] == "healthy"

    try:
        checks["catalog"] = len(catalog.list_products()) > 0
    except DataSourceError as e:
        log.error(f"Catalog health check failed: {e.detail}")

    all_healthy = all(checks.values())

    return {
        "status": "ok" if all_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks
    }
