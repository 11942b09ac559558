"""Invite activation - the guard chain run when a referred user does something.

Flow for one activity event of a referred user:

1. Look up their pending referral (the only query for never-referred users)
2. Run the guards in order; the first non-PASS result decides:
   - DEFER  -> no-op, nothing written, referral stays pending
   - REJECT -> finalize as activated_no_reward, no grant
3. All guards passed -> inside one savepoint, win the pending -> rewarded
   transition first, then grant to referrer and referred user. A grant
   failure rolls the transition back so a retry can try again.
"""

import logging
import uuid as uuid_pkg
from collections.abc import Callable
from datetime import UTC, datetime

from app.config.referral_policy import ReferralPolicy, get_referral_policy
from app.models.referral import ActivationState

from .exceptions import GrantError
from .guards import ActivationGuard, GuardContext, default_guards
from .recorder import ActivationRecorder
from .rewards import RewardGranter
from .store import ReferralStore
from .types import (
    ALREADY_ACTIVATED,
    NO_PENDING_REFERRAL,
    ActivationOutcome,
    ActivityEventType,
    GuardVerdict,
    OutcomeKind,
    is_known_event_type,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InviteActivationService:
    """Decides whether a referred user's activity pays out the referral reward."""

    def __init__(
        self,
        store: ReferralStore,
        granter: RewardGranter,
        policy: ReferralPolicy | None = None,
        guards: list[ActivationGuard] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.granter = granter
        self.policy = policy or get_referral_policy()
        self.guards = guards if guards is not None else default_guards()
        self.recorder = ActivationRecorder(store)
        self._clock = clock or _utcnow

    async def check_invite_activation(
        self,
        user_id: uuid_pkg.UUID,
        event_type: str | ActivityEventType,
    ) -> ActivationOutcome:
        """
        Evaluate a referred user's activity against the activation guards.

        Args:
            user_id: The referred user who performed the activity
            event_type: Advisory activity label (logged and stored, never decides)

        Returns:
            ActivationOutcome. No-ops and guard rejections are outcomes, not errors.

        Raises:
            StorageError: A store call failed; nothing was written.
            GrantError: The reward grant failed; the transition was rolled back.
        """
        event = event_type.value if isinstance(event_type, ActivityEventType) else event_type
        if not is_known_event_type(event):
            logger.debug(f"Activation check for {user_id} with unrecognized event type {event!r}")

        referral = await self.store.find_pending_referral(user_id)
        if referral is None:
            return ActivationOutcome.no_op(NO_PENDING_REFERRAL)

        ctx = GuardContext(
            referral=referral,
            store=self.store,
            policy=self.policy,
            now=self._clock(),
            event_type=event,
        )

        for guard in self.guards:
            result = await guard.check(ctx)
            if result.is_pass:
                continue

            reason = result.reason or guard.name
            if result.verdict is GuardVerdict.DEFER:
                logger.info(
                    f"Referral {referral.id} not activated for {user_id} ({event}): {reason}"
                )
                return ActivationOutcome.no_op(reason, referral.id)

            return await self._finalize_without_reward(ctx, reason)

        return await self._finalize_with_reward(ctx)

    async def _finalize_without_reward(
        self, ctx: GuardContext, reason: str
    ) -> ActivationOutcome:
        """A guard rejected: record the activation, withhold the reward."""
        referral = ctx.referral
        won = await self.recorder.finalize(
            referral.id,
            ActivationState.ACTIVATED_NO_REWARD,
            activation_ip=ctx.session_ip,
            event_type=ctx.event_type,
            rejection_reason=reason,
        )
        if not won:
            return ActivationOutcome.no_op(ALREADY_ACTIVATED, referral.id)

        logger.info(
            f"Referral {referral.id} activated without reward "
            f"(referrer={referral.referrer_user_id}, referred={referral.referred_user_id}, "
            f"event={ctx.event_type}): {reason}"
        )
        return ActivationOutcome(
            OutcomeKind.ACTIVATED_NO_REWARD,
            reason=reason,
            referral_id=referral.id,
        )

    async def _finalize_with_reward(self, ctx: GuardContext) -> ActivationOutcome:
        """All guards passed: win the transition, then grant to both parties."""
        referral = ctx.referral
        beneficiaries = (referral.referrer_user_id, referral.referred_user_id)

        try:
            async with self.store.atomic():
                won = await self.recorder.finalize(
                    referral.id,
                    ActivationState.ACTIVATED_WITH_REWARD,
                    activation_ip=ctx.session_ip,
                    event_type=ctx.event_type,
                )
                if not won:
                    return ActivationOutcome.no_op(ALREADY_ACTIVATED, referral.id)

                for account_id in beneficiaries:
                    await self.granter.grant_benefit(account_id, referral.id)
        except GrantError as e:
            logger.warning(
                f"Referral {referral.id} reward grant failed for {e.account_id}, "
                "activation rolled back to pending"
            )
            raise

        logger.info(
            f"Referral {referral.id} activated with reward "
            f"(referrer={referral.referrer_user_id}, referred={referral.referred_user_id}, "
            f"event={ctx.event_type})"
        )
        return ActivationOutcome(
            OutcomeKind.ACTIVATED_WITH_REWARD,
            referral_id=referral.id,
            granted_user_ids=beneficiaries,
        )
