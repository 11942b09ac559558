"""Anti-abuse guards for referral activation.

Each guard looks at one aspect of a pending referral and returns a
GuardResult. The chain runs them in a fixed order and stops at the first
result that is not PASS, so earlier guards keep later (costlier) queries off
the hot path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from app.config.referral_policy import ReferralPolicy
from app.models.referral import Referral

from .store import ReferralStore
from .types import (
    ACCOUNT_NOT_FOUND,
    ACCOUNT_TOO_YOUNG,
    IP_ALREADY_USED,
    SELF_REFERRAL,
    VELOCITY_CAP_REACHED,
    GuardResult,
)


@dataclass
class GuardContext:
    """Per-evaluation state shared by the guards of one activation check."""

    referral: Referral
    store: ReferralStore
    policy: ReferralPolicy
    now: datetime
    event_type: str
    # Set by IPCollusionGuard; stored on the referral when it is finalized
    session_ip: str | None = None


class ActivationGuard(ABC):
    """Abstract base for a single pass/reject check."""

    name: str = "guard"

    @abstractmethod
    async def check(self, ctx: GuardContext) -> GuardResult:
        """Evaluate the guard for the referral in ctx."""
        ...


class SelfReferralGuard(ActivationGuard):
    """Referrer and referred user are the same account. Costs no store call."""

    name = "self_referral"

    async def check(self, ctx: GuardContext) -> GuardResult:
        if ctx.referral.referrer_user_id == ctx.referral.referred_user_id:
            return GuardResult.defer(SELF_REFERRAL)
        return GuardResult.passed()


class AccountAgeGuard(ActivationGuard):
    """Referred account must be older than the minimum age.

    Blocks farms that create a throwaway account and "activate" it at once.
    The referral stays pending, so the same user can still activate later.
    """

    name = "account_age"

    async def check(self, ctx: GuardContext) -> GuardResult:
        created_at = await ctx.store.get_account_created_at(ctx.referral.referred_user_id)
        if created_at is None:
            return GuardResult.defer(ACCOUNT_NOT_FOUND)
        if ctx.now - created_at < ctx.policy.min_account_age:
            return GuardResult.defer(ACCOUNT_TOO_YOUNG)
        return GuardResult.passed()


class VelocityGuard(ActivationGuard):
    """Caps activations credited to one referrer inside the velocity window."""

    name = "velocity"

    async def check(self, ctx: GuardContext) -> GuardResult:
        window = ctx.policy.velocity_window
        since = ctx.now - window if window else None
        count = await ctx.store.count_activations_for_referrer(
            ctx.referral.referrer_user_id, since
        )
        if count >= ctx.policy.velocity_cap:
            return GuardResult.reject(VELOCITY_CAP_REACHED)
        return GuardResult.passed()


class IPCollusionGuard(ActivationGuard):
    """Rejects activations from an IP that already produced an activation.

    A missing IP (capture failed) cannot prove collusion: the guard passes
    without a second query.
    """

    name = "ip_collusion"

    async def check(self, ctx: GuardContext) -> GuardResult:
        ip = await ctx.store.get_session_ip(ctx.referral.referred_user_id)
        if not ip:
            return GuardResult.passed()

        ctx.session_ip = ip
        window = ctx.policy.ip_window
        since = ctx.now - window if window else None
        count = await ctx.store.count_prior_activations_with_ip(ip, since)
        if count > 0:
            return GuardResult.reject(IP_ALREADY_USED)
        return GuardResult.passed()


def default_guards() -> list[ActivationGuard]:
    """The production guard order. Earlier rejections preempt later checks."""
    return [
        SelfReferralGuard(),
        AccountAgeGuard(),
        VelocityGuard(),
        IPCollusionGuard(),
    ]
