"""Domain operations for the referral reward ledger."""

import uuid as uuid_pkg
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.reward_grant import RewardGrant


class RewardGrantOperations(BaseOperations[RewardGrant]):
    """Ledger operations for RewardGrant model."""

    def __init__(self) -> None:
        super().__init__(RewardGrant)

    async def record_grant(
        self,
        db: AsyncSession,
        referral_id: uuid_pkg.UUID,
        beneficiary_user_id: uuid_pkg.UUID,
        reward_days: int,
    ) -> bool:
        """
        Insert the ledger row for a (referral, beneficiary) pair.

        Uses INSERT ... ON CONFLICT DO NOTHING on the idempotency key, so a
        retry never raises. Returns True only when this call created the row.
        """
        stmt = (
            insert(RewardGrant)
            .values(
                id=uuid_pkg.uuid4(),
                referral_id=referral_id,
                beneficiary_user_id=beneficiary_user_id,
                reward_days=reward_days,
                granted_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(
                constraint="uq_reward_grant_referral_beneficiary",
            )
            .returning(RewardGrant.id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_for_referral(
        self,
        db: AsyncSession,
        referral_id: uuid_pkg.UUID,
    ) -> list[RewardGrant]:
        """Get all grants issued for a referral."""
        statement = (
            select(RewardGrant)
            .where(RewardGrant.referral_id == referral_id)  # type: ignore[arg-type]
            .order_by(RewardGrant.granted_at)  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())


reward_grant_ops = RewardGrantOperations()
