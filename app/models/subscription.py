"""Subscription model - per-user Lunary+ entitlement extended by referral rewards."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel


class PlanTier(str, Enum):
    """Available plan tiers."""

    FREE = "free"
    LUNARY_PLUS = "lunary_plus"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states."""

    FREE = "free"
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class Subscription(SQLModel, table=True):
    """
    Subscription model - one row per user.

    Referral rewards extend trial_ends_at. Paid periods (current_period_end)
    are owned by the payments integration and never touched here.
    """

    __tablename__ = "subscriptions"

    id: uuid_pkg.UUID = Field(
        default_factory=uuid_pkg.uuid4,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"server_default": text("gen_random_uuid()")},
    )
    user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )

    plan_tier: str = Field(
        default=PlanTier.FREE.value,
        sa_column=Column(String(20), nullable=False, server_default=PlanTier.FREE.value),
    )
    status: str = Field(
        default=SubscriptionStatus.FREE.value,
        sa_column=Column(String(20), nullable=False, server_default=SubscriptionStatus.FREE.value),
    )

    trial_ends_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None, nullable=True, sa_type=DateTime(timezone=True)
    )
    current_period_end: datetime | None = Field(  # type: ignore[call-overload]
        default=None, nullable=True, sa_type=DateTime(timezone=True)
    )

    # Referral tracking
    referral_bonus_days: int = Field(
        default=0,
        nullable=False,
        sa_column_kwargs={
            "server_default": text("0"),
            "comment": "Total Lunary+ days granted through referrals",
        },
    )

    created_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )
    updated_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": text("now()")},
    )

    @property
    def is_paid(self) -> bool:
        return self.status in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAST_DUE.value)
