"""
Health check endpoint.
"""

from fastapi import APIRouter

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "OK", "message": "Server is running"}
