"""Domain operations for the User (account) model."""

import uuid as uuid_pkg
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.user import User


class UserOperations(BaseOperations[User]):
    """Read operations for User model."""

    def __init__(self) -> None:
        super().__init__(User)

    async def get_created_at(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> datetime | None:
        """Get the account creation time, or None if the account does not exist."""
        statement = select(User.created_at).where(User.id == user_id)  # type: ignore[arg-type]
        result = await db.execute(statement)
        return result.scalar_one_or_none()


user_ops = UserOperations()
