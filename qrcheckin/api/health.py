"""
Health check and system status endpoints.
"""

from datetime import UTC, datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from qrcheckin import __version__
from qrcheckin.auth import require_api_key
from qrcheckin.config import settings
from qrcheckin.schemas import HealthResponse
from qrcheckin.utils.settings_validator import validate_settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Always answers 200 and never touches the database.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": str(settings.current_env).lower(),
    }


@router.get(
    "/health/settings", dependencies=[Depends(require_api_key("maintenance"))]
)
async def settings_validation_check():
    """Configuration validation report; 503 when the configuration is invalid."""
    report = validate_settings()
    return JSONResponse(
        status_code=status.HTTP_200_OK
        if report["valid"]
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"version": __version__, **report},
    )
