import time
from typing import Dict, Any

import redis
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.redis import get_redis_client
from app.db.session import get_db

router = APIRouter()


@router.get("/health", response_model=Dict[str, Any])
def health_check(
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client)
):
    """Basic health check endpoint"""
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": settings.VERSION
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = "healthy"
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["database"] = f"unhealthy: {str(e)}"

    # Check Redis
    try:
        redis_client.ping()
        health_status["redis"] = "healthy"
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["redis"] = f"unhealthy: {str(e)}"

    return health_status


@router.get("/health/db", response_model=Dict[str, Any])
def database_health(db: Session = Depends(get_db)):
    """Check database connectivity and table status"""
    try:
        applications = db.execute(text("SELECT COUNT(*) FROM applications")).scalar()
        agency_applications = db.execute(
            text("SELECT COUNT(*) FROM agency_applications")
        ).scalar()

        return {
            "status": "healthy",
            "database": "connected",
            "records": {
                "applications": applications,
                "agency_applications": agency_applications
            }
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }
