"""
LearnChat Health Check Routes
Service liveness, readiness and resource monitoring
"""
from fastapi import APIRouter, Depends
from datetime import datetime
import sys
import psutil
from sqlalchemy import text, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, Any

from ..config import get_settings
from ..database import get_db
from ..logging_config import db_logger
from ..models import User, TrainingExample, LearningPattern, TrainingJob

router = APIRouter(prefix="/api/health", tags=["health"])

settings = get_settings()

START_TIME = datetime.utcnow()

ROW_COUNT_MODELS = {
    "users": User,
    "training_data": TrainingExample,
    "learning_patterns": LearningPattern,
    "training_jobs": TrainingJob,
}


def get_uptime() -> str:
    """Get service uptime as human-readable string"""
    delta = datetime.utcnow() - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session, with_counts: bool = False) -> Dict[str, Any]:
    """Check database connectivity and, optionally, row counts"""
    try:
        db.execute(text("SELECT 1"))
        result: Dict[str, Any] = {"status": "healthy", "dialect": db.get_bind().dialect.name}
        if with_counts:
            result["row_counts"] = {
                name: db.query(func.count(model.id)).scalar()
                for name, model in ROW_COUNT_MODELS.items()
            }
        return result
    except SQLAlchemyError as e:
        db_logger.error("Database health check failed", error=e)
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
        }


def check_system() -> Dict[str, Any]:
    """Check system resources"""
    try:
        cpu_percent = psutil.cpu_percent(interval=0.1)
        memory = psutil.virtual_memory()

        return {
            "status": "healthy" if memory.percent < 90 else "warning",
            "cpu_percent": cpu_percent,
            "memory_percent": memory.percent,
            "memory_available_gb": round(memory.available / (1024**3), 2),
            "python_version": sys.version.split()[0],
        }
    except (psutil.Error, OSError) as e:
        return {
            "status": "unknown",
            "error": str(e),
        }


# ============================================================
# ROUTES
# ============================================================

@router.get("")
@router.get("/live")
def health_live():
    """
    Liveness probe - is the service running?
    Returns 200 if the service is alive.
    """
    return {
        "ok": True,
        "status": "alive",
        "environment": settings.environment,
        "uptime": get_uptime(),
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get("/ready")
def health_ready(db: Session = Depends(get_db)):
    """
    Readiness probe - is the service ready to accept traffic?
    Checks database connectivity.
    """
    database = check_database(db)
    ready = database["status"] == "healthy"

    return {
        "ok": ready,
        "status": "ready" if ready else "not_ready",
        "checks": {
            "database": database["status"],
        },
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get("/full")
def health_full(db: Session = Depends(get_db)):
    """
    Full health check - detailed status of all components.
    Use for monitoring dashboards.
    """
    database = check_database(db, with_counts=True)
    system = check_system()

    statuses = [database["status"], system["status"]]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "warning" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "ok": overall == "healthy",
        "status": overall,
        "uptime": get_uptime(),
        "started_at": START_TIME.isoformat() + "Z",
        "checks": {
            "database": database,
            "system": system,
        },
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
