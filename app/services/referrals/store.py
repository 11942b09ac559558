"""Referral store - the query contract the activation pipeline depends on.

The pipeline only talks to a ReferralStore. SqlReferralStore binds the domain
operations to one AsyncSession; tests substitute an in-memory store.
"""

import uuid as uuid_pkg
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain import referral_ops, session_ops, user_ops
from app.models.referral import ActivationState, Referral

from .exceptions import StorageError


class ReferralStore(ABC):
    """Read/write access to referral records and the guards' inputs."""

    @abstractmethod
    async def find_pending_referral(self, referred_user_id: uuid_pkg.UUID) -> Referral | None:
        """Return the pending referral for a referred user, if any."""
        ...

    @abstractmethod
    async def get_account_created_at(self, user_id: uuid_pkg.UUID) -> datetime | None:
        """Return the account creation time, or None if there is no account."""
        ...

    @abstractmethod
    async def count_activations_for_referrer(
        self, referrer_user_id: uuid_pkg.UUID, since: datetime | None
    ) -> int:
        """Count activations already credited to a referrer since a cutoff."""
        ...

    @abstractmethod
    async def get_session_ip(self, user_id: uuid_pkg.UUID) -> str | None:
        """Return the originating IP on record for a user's session."""
        ...

    @abstractmethod
    async def count_prior_activations_with_ip(self, ip: str, since: datetime | None) -> int:
        """Count prior activations by anyone from exactly this IP."""
        ...

    @abstractmethod
    async def try_finalize(
        self,
        referral_id: uuid_pkg.UUID,
        to_state: ActivationState,
        *,
        activation_ip: str | None = None,
        event_type: str | None = None,
        rejection_reason: str | None = None,
    ) -> bool:
        """Conditionally move pending -> to_state. True if this caller won."""
        ...

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Scope whose writes are undone if the block raises."""
        ...


@asynccontextmanager
async def _storage_errors(operation: str) -> AsyncIterator[None]:
    # OSError covers the driver failing to reach the server
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        raise StorageError(f"{operation} failed: {e}", operation=operation) from e


class SqlReferralStore(ReferralStore):
    """ReferralStore backed by Postgres through the domain operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_pending_referral(self, referred_user_id: uuid_pkg.UUID) -> Referral | None:
        async with _storage_errors("find_pending_referral"):
            return await referral_ops.get_pending_for_referred(self.db, referred_user_id)

    async def get_account_created_at(self, user_id: uuid_pkg.UUID) -> datetime | None:
        async with _storage_errors("get_account_created_at"):
            return await user_ops.get_created_at(self.db, user_id)

    async def count_activations_for_referrer(
        self, referrer_user_id: uuid_pkg.UUID, since: datetime | None
    ) -> int:
        async with _storage_errors("count_activations_for_referrer"):
            return await referral_ops.count_activations_for_referrer(
                self.db, referrer_user_id, since
            )

    async def get_session_ip(self, user_id: uuid_pkg.UUID) -> str | None:
        async with _storage_errors("get_session_ip"):
            return await session_ops.get_latest_ip(self.db, user_id)

    async def count_prior_activations_with_ip(self, ip: str, since: datetime | None) -> int:
        async with _storage_errors("count_prior_activations_with_ip"):
            return await referral_ops.count_activations_with_ip(self.db, ip, since)

    async def try_finalize(
        self,
        referral_id: uuid_pkg.UUID,
        to_state: ActivationState,
        *,
        activation_ip: str | None = None,
        event_type: str | None = None,
        rejection_reason: str | None = None,
    ) -> bool:
        async with _storage_errors("try_finalize"):
            return await referral_ops.try_finalize(
                self.db,
                referral_id,
                to_state,
                activation_ip=activation_ip,
                event_type=event_type,
                rejection_reason=rejection_reason,
            )

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """
        SAVEPOINT around the block.

        If the block raises (e.g. GrantError), the savepoint is rolled back
        and the exception propagates unchanged.
        """
        async with _storage_errors("atomic"):
            savepoint = await self.db.begin_nested()
        try:
            yield
        except BaseException:
            if savepoint.is_active:
                await savepoint.rollback()
            raise
        else:
            async with _storage_errors("atomic"):
                await savepoint.commit()
