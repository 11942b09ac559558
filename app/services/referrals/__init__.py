"""Referral activation: guard chain, reward granting and the background runner."""

from .activation import InviteActivationService
from .exceptions import GrantError, ReferralServiceError, StorageError
from .guards import (
    AccountAgeGuard,
    ActivationGuard,
    GuardContext,
    IPCollusionGuard,
    SelfReferralGuard,
    VelocityGuard,
    default_guards,
)
from .recorder import ActivationRecorder
from .rewards import GrantResult, RewardGranter, SubscriptionRewardGranter
from .runner import run_invite_activation
from .store import ReferralStore, SqlReferralStore
from .types import (
    ActivationOutcome,
    ActivityEventType,
    GuardResult,
    GuardVerdict,
    OutcomeKind,
)

__all__ = [
    # Chain
    "InviteActivationService",
    "run_invite_activation",
    # Guards
    "ActivationGuard",
    "GuardContext",
    "SelfReferralGuard",
    "AccountAgeGuard",
    "VelocityGuard",
    "IPCollusionGuard",
    "default_guards",
    # Store / recorder / rewards
    "ReferralStore",
    "SqlReferralStore",
    "ActivationRecorder",
    "RewardGranter",
    "SubscriptionRewardGranter",
    "GrantResult",
    # Types
    "ActivationOutcome",
    "ActivityEventType",
    "GuardResult",
    "GuardVerdict",
    "OutcomeKind",
    # Errors
    "ReferralServiceError",
    "StorageError",
    "GrantError",
]
