from app.models.referral import (
    TERMINAL_STATES,
    ActivationState,
    Referral,
    ReferralCreate,
    ReferralRead,
)
from app.models.reward_grant import RewardGrant
from app.models.subscription import PlanTier, Subscription, SubscriptionStatus
from app.models.user import User
from app.models.user_session import UserSession

__all__ = [
    "User",
    "UserSession",
    "Referral",
    "ReferralCreate",
    "ReferralRead",
    "ActivationState",
    "TERMINAL_STATES",
    "RewardGrant",
    "Subscription",
    "PlanTier",
    "SubscriptionStatus",
]
