# reconciler/routers/health.py

from fastapi import APIRouter

from reconciler.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "statement-reconciler",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness check - reports the configured storage backend."""
    return {
        "status": "ready",
        "checks": {
            "storage": get_settings().storage_backend,
        }
    }
