"""Referral model - invitation relationship and its one-way activation state."""

import uuid as uuid_pkg
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, Relationship, SQLModel

from app.models.base import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.user import User


class ActivationState(str, Enum):
    """Referral activation lifecycle. PENDING moves to exactly one terminal state."""

    PENDING = "pending"
    ACTIVATED_NO_REWARD = "activated_no_reward"
    ACTIVATED_WITH_REWARD = "activated_with_reward"

    @property
    def is_terminal(self) -> bool:
        return self is not ActivationState.PENDING


TERMINAL_STATES: tuple[str, ...] = (
    ActivationState.ACTIVATED_NO_REWARD.value,
    ActivationState.ACTIVATED_WITH_REWARD.value,
)


class Referral(UUIDMixin, TimestampMixin, table=True):
    """
    Referral model - links a referrer to the user who signed up through their link.

    Created at signup, mutated only by the activation recorder (a conditional
    pending -> terminal update), never deleted.
    """

    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint(
            "referrer_user_id <> referred_user_id",
            name="ck_referrals_not_self",
        ),
        Index("ix_referrals_referrer_state", "referrer_user_id", "activation_state"),
        Index("ix_referrals_activation_ip", "activation_ip"),
    )

    referrer_user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    # A person can only be referred once
    referred_user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )
    referral_code: str | None = Field(default=None, max_length=50, nullable=True)

    activation_state: str = Field(
        default=ActivationState.PENDING.value,
        sa_column=Column(
            String(30),
            nullable=False,
            server_default=ActivationState.PENDING.value,
            index=True,
        ),
    )

    # Written once, by the same UPDATE that leaves PENDING
    activated_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None, nullable=True, sa_type=DateTime(timezone=True)
    )
    activation_ip: str | None = Field(
        default=None,
        max_length=45,
        nullable=True,
        sa_column_kwargs={"comment": "Session IP of the referred user at activation"},
    )
    activation_event_type: str | None = Field(default=None, max_length=50, nullable=True)
    rejection_reason: str | None = Field(
        default=None,
        max_length=100,
        nullable=True,
        sa_column_kwargs={"comment": "Guard that withheld the reward, if any"},
    )

    # Relationships
    referrer: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Referral.referrer_user_id]"}
    )
    referred: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Referral.referred_user_id]"}
    )


# Request/Response schemas
class ReferralCreate(SQLModel):
    """Schema for registering a referral at signup."""

    referrer_user_id: uuid_pkg.UUID
    referred_user_id: uuid_pkg.UUID
    referral_code: str | None = None


class ReferralRead(SQLModel):
    """Schema for returning a referral."""

    id: uuid_pkg.UUID
    referrer_user_id: uuid_pkg.UUID
    referred_user_id: uuid_pkg.UUID
    referral_code: str | None
    activation_state: str
    activated_at: datetime | None
    created_at: datetime
