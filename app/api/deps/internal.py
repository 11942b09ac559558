"""Dependencies for internal (service-to-service) endpoints."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_db

DbSession = Annotated[AsyncSession, Depends(get_db)]


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Validate the X-Internal-Secret header against the configured secret."""
    if not settings.internal_api_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Internal API secret not configured",
        )
    if not secrets.compare_digest(
        x_internal_secret.encode(), settings.internal_api_secret.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid internal API secret",
        )
