"""Domain operations for referrals."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import func, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.referral import TERMINAL_STATES, ActivationState, Referral

# Mirrors the column lengths on Referral
_EVENT_TYPE_MAX_LENGTH = 50
_REASON_MAX_LENGTH = 100


class ReferralOperations(BaseOperations[Referral]):
    """Query and transition operations for Referral model."""

    def __init__(self) -> None:
        super().__init__(Referral)

    async def get_by_referred(
        self,
        db: AsyncSession,
        referred_user_id: uuid_pkg.UUID,
    ) -> Referral | None:
        """Get the referral (in any state) for a referred user."""
        statement = select(Referral).where(
            Referral.referred_user_id == referred_user_id  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_pending_for_referred(
        self,
        db: AsyncSession,
        referred_user_id: uuid_pkg.UUID,
    ) -> Referral | None:
        """
        Get the still-pending referral for a referred user.

        This is the first query of every activation check and the only one
        issued for users who were never referred.
        """
        statement = select(Referral).where(
            Referral.referred_user_id == referred_user_id,  # type: ignore[arg-type]
            Referral.activation_state == ActivationState.PENDING.value,  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def create_referral(
        self,
        db: AsyncSession,
        referrer_user_id: uuid_pkg.UUID,
        referred_user_id: uuid_pkg.UUID,
        referral_code: str | None = None,
    ) -> Referral:
        """
        Register a referral when a user signs up through a referral link.

        Validates that:
        - Referrer and referred user differ (self-referral)
        - The referred user has not already been referred

        Raises ValueError on validation failure.
        """
        if referrer_user_id == referred_user_id:
            raise ValueError("Cannot refer yourself")

        existing = await self.get_by_referred(db, referred_user_id)
        if existing:
            raise ValueError("User has already been referred")

        return await self.create(
            db,
            {
                "referrer_user_id": referrer_user_id,
                "referred_user_id": referred_user_id,
                "referral_code": referral_code.upper() if referral_code else None,
            },
        )

    async def count_activations_for_referrer(
        self,
        db: AsyncSession,
        referrer_user_id: uuid_pkg.UUID,
        since: datetime | None = None,
    ) -> int:
        """
        Count referrals of this referrer that already left PENDING.

        Both terminal states count, so withheld rewards still consume the
        referrer's velocity budget. since=None counts all time.
        """
        statement = (
            select(func.count())
            .select_from(Referral)
            .where(
                Referral.referrer_user_id == referrer_user_id,  # type: ignore[arg-type]
                Referral.activation_state.in_(TERMINAL_STATES),  # type: ignore[attr-defined]
            )
        )
        if since is not None:
            statement = statement.where(Referral.activated_at >= since)  # type: ignore[operator]
        result = await db.execute(statement)
        count = result.scalar()
        return int(count) if count else 0

    async def count_activations_with_ip(
        self,
        db: AsyncSession,
        ip: str,
        since: datetime | None = None,
    ) -> int:
        """Count prior activations (by anyone) recorded from exactly this IP."""
        statement = (
            select(func.count())
            .select_from(Referral)
            .where(
                Referral.activation_ip == ip,  # type: ignore[arg-type]
                Referral.activation_state.in_(TERMINAL_STATES),  # type: ignore[attr-defined]
            )
        )
        if since is not None:
            statement = statement.where(Referral.activated_at >= since)  # type: ignore[operator]
        result = await db.execute(statement)
        count = result.scalar()
        return int(count) if count else 0

    async def try_finalize(
        self,
        db: AsyncSession,
        referral_id: uuid_pkg.UUID,
        to_state: ActivationState,
        *,
        activation_ip: str | None = None,
        event_type: str | None = None,
        rejection_reason: str | None = None,
    ) -> bool:
        """
        Move a referral from PENDING to a terminal state in one conditional UPDATE.

        Returns True if this call performed the transition. Returns False when
        the row is already terminal (or missing): a concurrent caller won, or
        this is a retry. That is not an error.
        """
        if not to_state.is_terminal:
            raise ValueError("Referrals can only be finalized into a terminal state")

        now = datetime.now(UTC)
        result = await db.execute(
            update(Referral)
            .where(Referral.id == referral_id)  # type: ignore[arg-type]
            .where(Referral.activation_state == ActivationState.PENDING.value)  # type: ignore[arg-type]
            .values(
                activation_state=to_state.value,
                activated_at=now,
                activation_ip=activation_ip,
                activation_event_type=event_type[:_EVENT_TYPE_MAX_LENGTH] if event_type else None,
                rejection_reason=(
                    rejection_reason[:_REASON_MAX_LENGTH] if rejection_reason else None
                ),
                updated_at=now,
            )
        )

        cursor_result = cast(CursorResult[tuple[()]], result)
        return cursor_result.rowcount == 1

    async def get_referral_stats(
        self,
        db: AsyncSession,
        referrer_user_id: uuid_pkg.UUID,
    ) -> dict[str, Any]:
        """
        Get referral statistics for a referrer.

        Returns dict with:
        - total: Number of referrals registered by this referrer
        - pending: Signed up but not yet activated
        - activated_with_reward: Activated and rewarded
        - activated_no_reward: Activated but reward withheld by a guard
        """
        statement = (
            select(Referral.activation_state, func.count())
            .where(Referral.referrer_user_id == referrer_user_id)  # type: ignore[arg-type]
            .group_by(Referral.activation_state)
        )
        result = await db.execute(statement)
        counts = {state: int(count) for state, count in result.all()}

        stats: dict[str, Any] = {state.value: counts.get(state.value, 0) for state in ActivationState}
        stats["total"] = sum(counts.values())
        return stats


# Singleton instance
referral_ops = ReferralOperations()
