# Services package

from app.services.referrals import InviteActivationService, run_invite_activation

__all__ = [
    # Referral activation
    "InviteActivationService",
    "run_invite_activation",
]
