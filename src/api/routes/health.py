"""Health check endpoint."""

from datetime import datetime, timezone
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from adapter.mongodb.connection import user_store_status

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Service status, with the user store's reachability and size."""
    store = user_store_status()
    healthy = store["status"] == "healthy"
    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "services": {"mongodb": store},
        },
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
