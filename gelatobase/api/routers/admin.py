"""Admin password verification endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...api.dependencies import get_admin_gate
from ...domain.entries import (
    AdminGate,
    ConfigurationError,
    ValidationError,
)
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api", tags=["admin"])
logger = get_logger(__name__)
metrics = get_metrics_client()


class VerifyAdminRequest(BaseModel):
    password: Optional[str] = None


@router.post("/verify-admin", summary="Verify Admin Password")
def verify_admin(
    payload: VerifyAdminRequest,
    gate: AdminGate = Depends(get_admin_gate),
) -> JSONResponse:
    metrics.increment("admin_verify_requests_total")
    try:
        valid = gate.verify(payload.password)
    except ValidationError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "error": exc.message, "error_code": exc.error_code},
        )
    except ConfigurationError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"valid": False, "error": exc.message, "error_code": exc.error_code},
        )
    if not valid:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"valid": False, "error": "Invalid password"},
        )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"valid": True, "message": "Authentication successful"},
    )
