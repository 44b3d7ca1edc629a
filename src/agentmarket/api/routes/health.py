"""Health check and service index endpoints."""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from agentmarket.config import APP_VERSION
from agentmarket.api.dependencies import get_services
from agentmarket.bootstrap import MarketplaceServices
from agentmarket.observability.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


async def check_database_health(services: MarketplaceServices) -> Optional[str]:
    """Return an error message when the database is unreachable."""
    if services.database is None:
        return None
    try:
        await services.database.health_check()
    except SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e))
        return f"Database error: {e}"
    return None


@router.get("/api/health")
async def health_check(services: MarketplaceServices = Depends(get_services)) -> JSONResponse:
    """Liveness plus storage connectivity.

    Returns:
        200 with ``status: OK`` when storage is reachable, 503 otherwise
    """
    error = await check_database_health(services)
    content: dict[str, Any] = {
        "status": "OK" if error is None else "UNAVAILABLE",
        "message": "AI Agent Marketplace API is running" if error is None else error,
        "storage": services.config.storage,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    code = status.HTTP_200_OK if error is None else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=content)


@router.get("/")
async def index() -> dict[str, Any]:
    return {
        "message": "AI Agent Marketplace API",
        "version": APP_VERSION,
        "endpoints": {
            "health": "/api/health",
            "agents": "/api/agents",
            "executions": "/api/executions",
            "submit": "/api/submit-execution",
            "metrics": "/metrics",
        },
    }
