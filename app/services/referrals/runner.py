"""Fire-and-forget entry point for invite activation.

Activity events are handled after the response is sent. The runner owns its
own session and transaction, bounds each attempt with a timeout, and never
raises back into the request that scheduled it.
"""

import asyncio
import logging
import uuid as uuid_pkg

from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.config.referral_policy import get_referral_policy
from app.core.database import async_session_maker

from .activation import InviteActivationService
from .exceptions import GrantError, StorageError
from .rewards import SubscriptionRewardGranter
from .store import SqlReferralStore
from .types import ActivationOutcome

logger = logging.getLogger(__name__)

# Seconds to wait before the 2nd, 3rd, ... attempt
RETRY_DELAYS = [0.5, 1, 2]


async def _attempt(
    user_id: uuid_pkg.UUID, event_type: str, timeout_seconds: float
) -> ActivationOutcome:
    """One activation check in one transaction."""
    policy = get_referral_policy()

    async with async_session_maker() as db:
        try:
            async with asyncio.timeout(timeout_seconds):
                service = InviteActivationService(
                    store=SqlReferralStore(db),
                    granter=SubscriptionRewardGranter(db, policy.reward_days),
                    policy=policy,
                )
                outcome = await service.check_invite_activation(user_id, event_type)
                try:
                    await db.commit()
                except (SQLAlchemyError, OSError) as e:
                    raise StorageError(f"commit failed: {e}", operation="commit") from e
        except BaseException:
            await db.rollback()
            raise

    return outcome


async def run_invite_activation(
    user_id: uuid_pkg.UUID,
    event_type: str,
    *,
    timeout_seconds: float | None = None,
    max_attempts: int | None = None,
) -> ActivationOutcome | None:
    """
    Run an activation check for a referred user's activity.

    Retries storage failures, grant failures and timeouts up to max_attempts.
    Every attempt starts over from the pending lookup, so a partially applied
    attempt (rolled back) or one that already won is handled correctly.

    Returns:
        The ActivationOutcome, or None if every attempt failed.
    """
    timeout_seconds = timeout_seconds or settings.referral_activation_timeout_seconds
    max_attempts = max(1, max_attempts or settings.referral_activation_max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            outcome = await _attempt(user_id, event_type, timeout_seconds)
        except TimeoutError:
            error_msg = f"timed out after {timeout_seconds}s"
        except (StorageError, GrantError) as e:
            error_msg = f"{type(e).__name__} in {e.operation}: {e.message}"
        except Exception:
            # Not retryable
            logger.exception(f"[referrals] Activation check for {user_id} crashed")
            return None
        else:
            logger.debug(
                f"[referrals] Activation check for {user_id} ({event_type}): "
                f"{outcome.kind.value} {outcome.reason or ''}".rstrip()
            )
            return outcome

        if attempt < max_attempts:
            delay = RETRY_DELAYS[min(attempt - 1, len(RETRY_DELAYS) - 1)]
            logger.warning(
                f"[referrals] Activation check for {user_id} failed "
                f"(attempt {attempt}/{max_attempts}), retrying in {delay}s: {error_msg}"
            )
            await asyncio.sleep(delay)

    logger.error(
        f"[referrals] Activation check for {user_id} ({event_type}) gave up "
        f"after {max_attempts} attempts: {error_msg}"
    )
    return None
