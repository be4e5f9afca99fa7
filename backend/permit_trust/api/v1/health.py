"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health", operation_id="healthCheck")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
