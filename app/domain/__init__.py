from app.domain.referral_operations import referral_ops
from app.domain.reward_grant_operations import reward_grant_ops
from app.domain.session_operations import session_ops
from app.domain.subscription_operations import subscription_ops
from app.domain.user_operations import user_ops

__all__ = [
    "referral_ops",
    "reward_grant_ops",
    "session_ops",
    "subscription_ops",
    "user_ops",
]
