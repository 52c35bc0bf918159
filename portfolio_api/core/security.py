"""
=============================================================================
PORTFOLIO CONTACT API - SECURITY MODULE
=============================================================================
Admin API key authentication for the submissions dashboard endpoints.

Usage:
    from portfolio_api.core.security import require_admin

    @router.get("/admin-only", dependencies=[Depends(require_admin)])
    def admin_endpoint(): ...
=============================================================================
"""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from pydantic import SecretStr

from portfolio_api.core.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    description="Admin API key for the submissions dashboard",
)


def _get_secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    """Helper to extract string from SecretStr safely."""
    if secret is None:
        return None
    value = secret.get_secret_value()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


async def require_admin(api_key: str = Security(api_key_header)) -> str:
    """
    Dependency that verifies the X-API-Key header against ADMIN_API_KEY.

    Raises:
        HTTPException: 403 if the key is missing, invalid or no admin key is set
    """
    if not api_key:
        logger.warning("Admin request without API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API Key. Include 'X-API-Key' header.",
        )

    admin_key = _get_secret_value(settings.ADMIN_API_KEY)
    if admin_key and secrets.compare_digest(api_key, admin_key):
        return "admin"

    logger.warning(f"Invalid API key attempt: {api_key[:8]}...")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API Key")
