"""Reward granting for activated referrals."""

import logging
import uuid as uuid_pkg
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain import reward_grant_ops, subscription_ops

from .exceptions import GrantError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrantResult:
    """Result of granting a referral benefit to one account."""

    account_id: uuid_pkg.UUID
    referral_id: uuid_pkg.UUID
    granted: bool  # False = already granted earlier (idempotent replay)
    reward_days: int


class RewardGranter(ABC):
    """Grants a referral benefit to one account.

    Implementations must be safe to invoke at least once per
    (account, referral): a repeated call must not compound the benefit.
    """

    @abstractmethod
    async def grant_benefit(
        self, account_id: uuid_pkg.UUID, referral_id: uuid_pkg.UUID
    ) -> GrantResult:
        """Grant the benefit, or report that it was already granted."""
        ...


class SubscriptionRewardGranter(RewardGranter):
    """Extends the beneficiary's Lunary+ trial, keyed by (referral, beneficiary)."""

    def __init__(self, db: AsyncSession, reward_days: int):
        if reward_days <= 0:
            raise ValueError("reward_days must be positive")
        self.db = db
        self.reward_days = reward_days

    async def grant_benefit(
        self, account_id: uuid_pkg.UUID, referral_id: uuid_pkg.UUID
    ) -> GrantResult:
        try:
            created = await reward_grant_ops.record_grant(
                self.db, referral_id, account_id, self.reward_days
            )
            if created:
                await subscription_ops.extend_trial(self.db, account_id, self.reward_days)
        except (SQLAlchemyError, OSError) as e:
            raise GrantError(
                f"Failed to grant referral reward to {account_id}: {e}",
                account_id=account_id,
                operation="grant_benefit",
            ) from e

        if created:
            logger.info(
                f"Granted {self.reward_days} Lunary+ days to {account_id} "
                f"for referral {referral_id}"
            )
        else:
            logger.info(f"Reward for referral {referral_id} already granted to {account_id}")

        return GrantResult(
            account_id=account_id,
            referral_id=referral_id,
            granted=created,
            reward_days=self.reward_days,
        )
