"""
Health and readiness endpoints
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from cityfix.core.config import config
from cityfix.core.logger import logger
from cityfix.db.mongodb import ping

router = APIRouter()

# Track service start time
start_time = time.time()


@router.get("/health")
def health_check(request: Request):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": request.app.state.service_role,
        "timestamp": datetime.now().isoformat(),
        "version": config.api_version,
    }


@router.get("/health/live")
def liveness_check(request: Request):
    """Liveness probe - check if the app is running"""
    return {
        "status": "alive",
        "service": request.app.state.service_role,
        "timestamp": datetime.now().isoformat(),
        "uptime": time.time() - start_time,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe - database and message broker must both answer"""
    checks = await perform_health_checks(request)
    failed_checks = [check for check in checks if check["status"] != "healthy"]

    body = {
        "status": "ready" if not failed_checks else "not ready",
        "service": request.app.state.service_role,
        "timestamp": datetime.now().isoformat(),
        "checks": checks,
    }
    if not failed_checks:
        return body

    logger.warning(
        f"Readiness check failed - {len(failed_checks)} checks failed",
        metadata={
            "failed_checks": [check["name"] for check in failed_checks],
            "event": "readiness_check_failed"
        }
    )
    return JSONResponse(status_code=503, content=body)


async def perform_health_checks(request: Request) -> List[Dict[str, Any]]:
    results = await asyncio.gather(
        check_database_health(),
        check_message_broker_health(request),
    )
    return list(results)


async def check_database_health() -> Dict[str, Any]:
    """Check MongoDB database connectivity"""
    check_start = time.time()
    healthy = await ping()
    return {
        "name": "database",
        "status": "healthy" if healthy else "unhealthy",
        "database": config.mongodb_database,
        "response_time_ms": round((time.time() - check_start) * 1000, 2),
    }


async def check_message_broker_health(request: Request) -> Dict[str, Any]:
    broker = getattr(request.app.state, "broker", None)
    healthy = broker is not None and broker.is_healthy()
    return {
        "name": "message_broker",
        "status": "healthy" if healthy else "unhealthy",
        "type": config.message_broker_type,
    }
