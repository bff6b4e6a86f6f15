"""
Health Check Router

Provides health check endpoints for monitoring application status.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from portal.db.config import get_session
import logging
import time
import os
from datetime import datetime

logger = logging.getLogger(__name__)

# Initialize router
router = APIRouter()

# Application start time for uptime calculation
_start_time = time.time()


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    environment: str
    timestamp: datetime
    uptime: float


@router.get("/health", response_model=HealthCheckResponse, summary="Basic Health Check")
async def health_check():
    """
    Basic health check endpoint

    Returns application status, version, and environment information.
    This endpoint is used by load balancers and monitoring systems.
    """
    uptime = time.time() - _start_time

    return HealthCheckResponse(
        status="healthy",
        version=os.getenv("APP_VERSION", "1.0.0"),
        environment=os.getenv("ENVIRONMENT", "development"),
        timestamp=datetime.utcnow(),
        uptime=uptime
    )


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(session: AsyncSession = Depends(get_session)):
    """
    Kubernetes-style readiness probe

    Returns 200 if the catalog database answers, 503 otherwise.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Application not ready: database unavailable"
        )
    return {"status": "ready", "timestamp": datetime.utcnow().isoformat()}


@router.get("/health/live", summary="Liveness Check")
async def liveness_check():
    """
    Kubernetes-style liveness probe

    Returns 200 if the application is alive and responding.
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "pid": os.getpid()
    }
