from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from ..schemas import HealthOut

router = APIRouter(prefix="/api", tags=["health"])


# PUBLIC_INTERFACE
@router.get("/health", response_model=HealthOut, summary="Health Check")
def health_check(request: Request) -> HealthOut:
    """
    Health check endpoint.

    Returns:
        Service status, server time, number of todos and whether photo
        storage is available in this environment.
    """
    settings = request.app.state.settings
    return HealthOut(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        todos=request.app.state.registry.count(),
        environment={
            "name": settings.app_env,
            "photoStorage": request.app.state.photos.storage_configured,
            "bucket": settings.photo_bucket,
            "region": settings.aws_region,
        },
    )
