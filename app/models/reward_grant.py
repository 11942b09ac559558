"""Reward grant ledger - one row per (referral, beneficiary)."""

import uuid as uuid_pkg
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import UUIDMixin


class RewardGrant(UUIDMixin, table=True):
    """
    Referral reward ledger.

    The unique (referral_id, beneficiary_user_id) pair is the grant's
    idempotency key: a retried grant hits the constraint and changes nothing.
    """

    __tablename__ = "referral_reward_grants"
    __table_args__ = (
        UniqueConstraint(
            "referral_id",
            "beneficiary_user_id",
            name="uq_reward_grant_referral_beneficiary",
        ),
    )

    referral_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("referrals.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    beneficiary_user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    reward_days: int = Field(nullable=False)

    granted_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )
