"""
API key authentication.

Routes belong to one of four groups: directory, maintenance, scan and
checkin. When an API key is configured, every group listed in
API_KEY_ROUTE_GROUPS requires the ``x-api-key`` header. Without a
configured key the service runs in open-access mode.
"""

import hmac

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from qrcheckin.config import ROUTE_GROUPS, get_api_key, settings
from qrcheckin.exceptions import AuthenticationError
from qrcheckin.logging_config import get_logger

logger = get_logger("security")

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


def group_requires_key(group: str) -> bool:
    """Whether the given route group is gated under the current settings."""
    if not get_api_key():
        return False
    return group in settings.get("API_KEY_ROUTE_GROUPS", [])


def require_api_key(group: str):
    """Build a dependency enforcing the API key for one route group."""
    if group not in ROUTE_GROUPS:
        raise ValueError(f"Unknown route group: {group}")

    async def dependency(
        request: Request, provided: str | None = Depends(api_key_header)
    ) -> None:
        if not group_requires_key(group):
            return

        if not provided or not hmac.compare_digest(
            provided.encode(), get_api_key().encode()
        ):
            logger.warning(
                f"Rejected request to {request.url.path}: missing or invalid API key",
                extra={"operation": f"auth:{group}"},
            )
            raise AuthenticationError()

    return dependency
