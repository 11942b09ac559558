"""Types for the referral activation pipeline."""

import uuid as uuid_pkg
from dataclasses import dataclass, field
from enum import Enum


class ActivityEventType(str, Enum):
    """Qualifying activities that trigger an activation check.

    Advisory only: used for logs and stored on the referral, never for
    guard decisions. Unknown event types are accepted as-is.
    """

    JOURNAL_ENTRY_CREATED = "journal_entry_created"
    TAROT_SPREAD_COMPLETED = "tarot_spread_completed"
    DAILY_RITUAL_COMPLETED = "daily_ritual_completed"
    STREAK_MILESTONE = "streak_milestone"


def is_known_event_type(event_type: str) -> bool:
    return event_type in {e.value for e in ActivityEventType}


class GuardVerdict(str, Enum):
    """What a guard decided."""

    PASS = "pass"
    # Withhold the reward and record activated_no_reward
    REJECT = "reject"
    # Do nothing; the referral stays pending and may activate later
    DEFER = "defer"


@dataclass(frozen=True)
class GuardResult:
    """Tagged result of a single guard check."""

    verdict: GuardVerdict
    reason: str | None = None

    @classmethod
    def passed(cls) -> "GuardResult":
        return cls(GuardVerdict.PASS)

    @classmethod
    def reject(cls, reason: str) -> "GuardResult":
        return cls(GuardVerdict.REJECT, reason)

    @classmethod
    def defer(cls, reason: str) -> "GuardResult":
        return cls(GuardVerdict.DEFER, reason)

    @property
    def is_pass(self) -> bool:
        return self.verdict is GuardVerdict.PASS


class OutcomeKind(str, Enum):
    """Terminal decision of one activation check."""

    NO_OP = "no_op"
    ACTIVATED_NO_REWARD = "activated_no_reward"
    ACTIVATED_WITH_REWARD = "activated_with_reward"


# NoOp reasons
NO_PENDING_REFERRAL = "no unactivated referral"
SELF_REFERRAL = "self-referral"
ACCOUNT_NOT_FOUND = "account not found"
ACCOUNT_TOO_YOUNG = "account too young"
ALREADY_ACTIVATED = "already activated"

# Reject reasons
VELOCITY_CAP_REACHED = "velocity cap reached"
IP_ALREADY_USED = "ip already used"


@dataclass(frozen=True)
class ActivationOutcome:
    """Result of CheckInviteActivation. A normal return value, never an exception."""

    kind: OutcomeKind
    reason: str | None = None
    referral_id: uuid_pkg.UUID | None = None
    granted_user_ids: tuple[uuid_pkg.UUID, ...] = field(default_factory=tuple)

    @classmethod
    def no_op(cls, reason: str, referral_id: uuid_pkg.UUID | None = None) -> "ActivationOutcome":
        return cls(OutcomeKind.NO_OP, reason=reason, referral_id=referral_id)

    @property
    def is_no_op(self) -> bool:
        return self.kind is OutcomeKind.NO_OP

    @property
    def rewarded(self) -> bool:
        return self.kind is OutcomeKind.ACTIVATED_WITH_REWARD
