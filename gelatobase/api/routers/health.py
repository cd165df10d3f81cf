"""System health endpoints for frontend polling."""

from typing import Any

from fastapi import APIRouter, Depends

from ...api.dependencies import get_settings
from ...config import Settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
def healthcheck(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Return coarse-grained backend readiness information."""

    return {
        "status": "ok",
        "environment": settings.environment,
        "adminConfigured": settings.admin_password is not None,
        "shops": list(settings.shops.options),
        "defaultShop": settings.shops.default,
    }
