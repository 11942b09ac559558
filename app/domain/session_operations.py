"""Domain operations for UserSession (session/IP records)."""

import uuid as uuid_pkg

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.user_session import UserSession


class SessionOperations(BaseOperations[UserSession]):
    """Read operations for session/IP records."""

    def __init__(self) -> None:
        super().__init__(UserSession)

    async def get_latest_ip(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> str | None:
        """
        Get the most recent originating IP recorded for a user.

        Sessions whose capture failed (NULL ip_address) are ignored.
        Returns None when no session carries an IP.
        """
        statement = (
            select(UserSession.ip_address)
            .where(
                UserSession.user_id == user_id,  # type: ignore[arg-type]
                UserSession.ip_address.is_not(None),  # type: ignore[union-attr]
            )
            .order_by(UserSession.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()


session_ops = SessionOperations()
