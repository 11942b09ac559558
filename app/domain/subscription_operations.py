"""Domain operations for Subscription model."""

import uuid as uuid_pkg
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.subscription import PlanTier, Subscription, SubscriptionStatus


class SubscriptionOperations:
    """CRUD operations for Subscription model."""

    async def get_by_user(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        for_update: bool = False,
    ) -> Subscription | None:
        """
        Get the subscription for a user.

        With for_update, the row is locked until the transaction ends and any
        copy already in the session is refreshed from the locked read.
        """
        statement = select(Subscription).where(
            Subscription.user_id == user_id  # type: ignore[arg-type]
        )
        if for_update:
            statement = statement.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def ensure_exists(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> None:
        """Insert a free subscription row for the user unless one exists."""
        stmt = (
            insert(Subscription)
            .values(
                id=uuid_pkg.uuid4(),
                user_id=user_id,
                plan_tier=PlanTier.FREE.value,
                status=SubscriptionStatus.FREE.value,
                referral_bonus_days=0,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await db.execute(stmt)

    async def extend_trial(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        days: int,
        now: datetime | None = None,
    ) -> Subscription:
        """
        Extend a user's Lunary+ trial by a number of days.

        The extension starts from the later of now and the current trial end,
        so stacked rewards add up instead of overlapping. A user without a
        subscription row gets a fresh trial. Paid subscriptions keep their
        status; only the bonus days and trial end move.

        The row is read with FOR UPDATE, so concurrent extensions for the same
        user apply one after the other.
        """
        if days <= 0:
            raise ValueError("Trial extension must be a positive number of days")

        now = now or datetime.now(UTC)
        await self.ensure_exists(db, user_id)
        subscription = await self.get_by_user(db, user_id, for_update=True)
        if subscription is None:
            raise LookupError(f"Subscription row for {user_id} vanished after upsert")

        base = subscription.trial_ends_at
        if base is None or base < now:
            base = now
        subscription.trial_ends_at = base + timedelta(days=days)
        subscription.referral_bonus_days += days
        if not subscription.is_paid:
            subscription.plan_tier = PlanTier.LUNARY_PLUS.value
            subscription.status = SubscriptionStatus.TRIAL.value

        db.add(subscription)
        await db.flush()
        await db.refresh(subscription)
        return subscription


subscription_ops = SubscriptionOperations()
