"""Configuration package."""

from app.config.referral_policy import ReferralPolicy, get_referral_policy
from app.config.settings import Settings, settings

__all__ = [
    "ReferralPolicy",
    "get_referral_policy",
    "Settings",
    "settings",
]
