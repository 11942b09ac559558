"""Activation recorder - the single writer of a referral's terminal state."""

import logging
import uuid as uuid_pkg

from app.models.referral import ActivationState

from .store import ReferralStore

logger = logging.getLogger(__name__)


class ActivationRecorder:
    """Finalizes a pending referral exactly once."""

    def __init__(self, store: ReferralStore):
        self.store = store

    async def finalize(
        self,
        referral_id: uuid_pkg.UUID,
        terminal_state: ActivationState,
        *,
        activation_ip: str | None = None,
        event_type: str | None = None,
        rejection_reason: str | None = None,
    ) -> bool:
        """
        Transition a pending referral to terminal_state.

        Returns True if this call won the transition. An already-terminal row
        is a no-op (False), so a retried check converges instead of
        processing the referral twice.
        """
        won = await self.store.try_finalize(
            referral_id,
            terminal_state,
            activation_ip=activation_ip,
            event_type=event_type,
            rejection_reason=rejection_reason,
        )
        if not won:
            logger.info(
                f"Referral {referral_id} already finalized, skipping {terminal_state.value}"
            )
        return won
