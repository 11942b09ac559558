"""Internal API endpoints - protected by shared secret, not user auth.

These endpoints are called by the Lunary web/API layer, not by end users.
They validate a shared secret via the X-Internal-Secret header.
"""

import logging
import uuid as uuid_pkg

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

from app.api.deps import DbSession, verify_internal_secret
from app.domain import referral_ops
from app.models.referral import ReferralCreate, ReferralRead
from app.services.referrals import run_invite_activation

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal/referrals",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


# ─────────────────────────────────────────────────────────────────────────────
# Request/Response Schemas
# ─────────────────────────────────────────────────────────────────────────────


class ActivityEventRequest(BaseModel):
    """A qualifying activity performed by a (possibly referred) user."""

    user_id: uuid_pkg.UUID
    event_type: str = Field(min_length=1, max_length=50)


class ActivityEventResponse(BaseModel):
    """Acknowledgement; the activation check runs after the response."""

    accepted: bool = True


class ReferralStatsResponse(BaseModel):
    """Referral statistics for a referrer."""

    pending: int
    activated_no_reward: int
    activated_with_reward: int
    total: int


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────


@router.post(
    "/activity",
    response_model=ActivityEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def report_activity(
    body: ActivityEventRequest,
    background_tasks: BackgroundTasks,
) -> ActivityEventResponse:
    """
    Report a qualifying activity for a user.

    The activation check is scheduled as a background task, so the caller is
    never blocked on guard queries or reward grants. Users without a pending
    referral cost a single lookup.
    """
    background_tasks.add_task(run_invite_activation, body.user_id, body.event_type)
    return ActivityEventResponse()


@router.post(
    "",
    response_model=ReferralRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_referral(
    body: ReferralCreate,
    db: DbSession,
) -> ReferralRead:
    """Register a referral when a user signs up through a referral link."""
    try:
        referral = await referral_ops.create_referral(
            db,
            referrer_user_id=body.referrer_user_id,
            referred_user_id=body.referred_user_id,
            referral_code=body.referral_code,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from None
    except IntegrityError:
        # Unknown user id, or a concurrent registration for the same user
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Referral could not be registered",
        ) from None

    logger.info(
        f"Registered referral {referral.id}: {referral.referrer_user_id} -> "
        f"{referral.referred_user_id}"
    )
    return ReferralRead.model_validate(referral)


@router.get("/{user_id}/stats", response_model=ReferralStatsResponse)
async def get_referral_stats(
    user_id: uuid_pkg.UUID,
    db: DbSession,
) -> ReferralStatsResponse:
    """Get referral statistics for a referrer's dashboard."""
    stats = await referral_ops.get_referral_stats(db, user_id)
    return ReferralStatsResponse(**stats)
